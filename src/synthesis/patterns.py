"""
Alarm sound pattern generators.

Six deterministic generators, one per AlarmSound. Each takes a duration in
milliseconds and a numpy Generator (only chimes, birds and ocean draw from
it) and returns an AlarmPattern. Events starting at or after the duration
are dropped.

- gentle:  C4-D4-E4-F4-G4, 800 ms each, 500 ms rest between sequences
- classic: 880 Hz square beep, 300 ms on / 300 ms off
- chimes:  random note from C5-D5-E5-G5-A5 every 0.5-1.0 s, 2 s decay
- birds:   200 ms upward chirps in 0.1-0.4 s slots, ~70% per slot
- ocean:   800 Hz low-passed noise with a 0.3 Hz swell
- piano:   C4-E4-G4-C5-G4-E4 arpeggio over 3 s, exponential decay
"""

import math
from typing import Callable, Dict, List, Optional

import numpy as np

from session.models import AlarmSound
from .oscillators import AlarmPattern, Envelope, NoiseBed, ToneEvent


GENTLE_FREQUENCIES = [261.63, 293.66, 329.63, 349.23, 392.00]
GENTLE_NOTE_S = 0.8
GENTLE_REST_S = 0.5

CLASSIC_FREQUENCY = 880.0
CLASSIC_BEEP_S = 0.3
CLASSIC_SILENCE_S = 0.3

CHIME_FREQUENCIES = [523.25, 587.33, 659.25, 783.99, 880.00]
CHIME_DECAY_S = 2.0
CHIME_SLOT_MS = 3000
CHIME_MIN_GAP_S = 0.5
CHIME_MAX_GAP_S = 1.0

BIRD_CHIRP_S = 0.2
BIRD_SLOT_MS = 100
BIRD_MIN_GAP_S = 0.1
BIRD_MAX_GAP_S = 0.4
BIRD_SKIP_PROBABILITY = 0.3

PIANO_MELODY = [
    (261.63, 0.0),    # C4
    (329.63, 0.5),    # E4
    (392.00, 1.0),    # G4
    (523.25, 1.5),    # C5
    (392.00, 2.0),    # G4
    (329.63, 2.5),    # E4
]
PIANO_LOOP_S = 3.0
PIANO_NOTE_S = 0.8


def _clip_events(events: List[ToneEvent], duration_ms: int) -> List[ToneEvent]:
    limit = duration_ms / 1000.0
    return [e for e in events if e.start < limit]


# =============================================================================
# GENERATORS
# =============================================================================

def gentle_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Soft ascending major-scale tones."""
    envelope = Envelope(peak=0.3, attack_s=0.1, decay="linear", floor=0.0)
    sequence_ms = len(GENTLE_FREQUENCIES) * GENTLE_NOTE_S * 1000 + GENTLE_REST_S * 1000
    loops = math.ceil(duration_ms / sequence_ms)
    
    events = []
    offset = 0.0
    for _ in range(loops):
        for i, freq in enumerate(GENTLE_FREQUENCIES):
            events.append(ToneEvent(offset + i * GENTLE_NOTE_S, GENTLE_NOTE_S, freq, envelope))
        offset += len(GENTLE_FREQUENCIES) * GENTLE_NOTE_S + GENTLE_REST_S
    
    return AlarmPattern(AlarmSound.GENTLE, duration_ms, _clip_events(events, duration_ms))


def classic_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Square-wave beeping with a 50% duty cycle."""
    envelope = Envelope(peak=0.4, decay="hold")
    period = CLASSIC_BEEP_S + CLASSIC_SILENCE_S
    loops = math.ceil(duration_ms / 1000.0 / period)
    
    events = [
        ToneEvent(i * period, CLASSIC_BEEP_S, CLASSIC_FREQUENCY, envelope, waveform="square")
        for i in range(loops)
    ]
    return AlarmPattern(AlarmSound.CLASSIC, duration_ms, _clip_events(events, duration_ms))


def chimes_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Random wind-chime notes with a long decay."""
    rng = rng if rng is not None else np.random.default_rng()
    envelope = Envelope(peak=0.2, attack_s=0.05, decay="exponential", floor=0.01)
    loops = math.ceil(duration_ms / CHIME_SLOT_MS)
    
    events = []
    current = 0.0
    for _ in range(loops):
        freq = CHIME_FREQUENCIES[int(rng.integers(len(CHIME_FREQUENCIES)))]
        events.append(ToneEvent(current, CHIME_DECAY_S, freq, envelope))
        current += rng.uniform(CHIME_MIN_GAP_S, CHIME_MAX_GAP_S)
    
    return AlarmPattern(AlarmSound.CHIMES, duration_ms, _clip_events(events, duration_ms))


def birds_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Short upward-sweeping chirps at random intervals."""
    rng = rng if rng is not None else np.random.default_rng()
    envelope = Envelope(peak=0.15, attack_s=0.05, decay="linear", floor=0.0)
    loops = math.ceil(duration_ms / BIRD_SLOT_MS)
    
    events = []
    current = 0.0
    for _ in range(loops):
        if rng.random() > BIRD_SKIP_PROBABILITY:
            start_freq = 2000.0 + rng.random() * 1000.0
            peak_freq = start_freq + 500.0 + rng.random() * 500.0
            events.append(ToneEvent(current, BIRD_CHIRP_S, start_freq, envelope, sweep_to=peak_freq))
        current += rng.uniform(BIRD_MIN_GAP_S, BIRD_MAX_GAP_S)
    
    return AlarmPattern(AlarmSound.BIRDS, duration_ms, _clip_events(events, duration_ms))


def ocean_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Filtered noise with a slow wave-like swell."""
    rng = rng if rng is not None else np.random.default_rng()
    noise = NoiseBed(seed=int(rng.integers(2**31)))
    return AlarmPattern(AlarmSound.OCEAN, duration_ms, events=[], noise=noise)


def piano_pattern(duration_ms: int, rng: Optional[np.random.Generator] = None) -> AlarmPattern:
    """Looped arpeggio with piano-like decay."""
    envelope = Envelope(peak=0.3, attack_s=0.01, decay="exponential", floor=0.01)
    loops = math.ceil(duration_ms / 1000.0 / PIANO_LOOP_S)
    
    events = []
    for loop in range(loops):
        offset = loop * PIANO_LOOP_S
        for freq, at in PIANO_MELODY:
            events.append(ToneEvent(offset + at, PIANO_NOTE_S, freq, envelope))
    
    return AlarmPattern(AlarmSound.PIANO, duration_ms, _clip_events(events, duration_ms))


PATTERN_GENERATORS: Dict[AlarmSound, Callable[..., AlarmPattern]] = {
    AlarmSound.GENTLE: gentle_pattern,
    AlarmSound.CLASSIC: classic_pattern,
    AlarmSound.CHIMES: chimes_pattern,
    AlarmSound.BIRDS: birds_pattern,
    AlarmSound.OCEAN: ocean_pattern,
    AlarmSound.PIANO: piano_pattern,
}


def generate_pattern(
    sound: AlarmSound,
    duration_ms: int,
    rng: Optional[np.random.Generator] = None,
) -> AlarmPattern:
    """Generate the pattern for ``sound``."""
    if duration_ms <= 0:
        raise ValueError(f"duration_ms must be positive, got {duration_ms}")
    return PATTERN_GENERATORS[sound](duration_ms, rng)
