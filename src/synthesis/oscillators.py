"""
Oscillator primitives for procedural alarm sounds.

A sound is described as an AlarmPattern: a list of ToneEvents (oscillator
notes with a gain envelope) plus an optional NoiseBed. Patterns are pure
data, so their structure can be inspected without rendering; ``render``
turns a pattern into a mono float32 buffer.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from scipy import signal

from session.models import AlarmSound


# =============================================================================
# PATTERN DATA
# =============================================================================

@dataclass(frozen=True)
class Envelope:
    """
    Gain envelope.
    
    Linear attack from 0 to ``peak`` over ``attack_s``, then decay towards
    ``floor`` at the end of the note:
    - "linear": straight line to floor
    - "exponential": exponential curve to floor (floor must be > 0)
    - "hold": stay at peak (gated tone)
    """
    peak: float
    attack_s: float = 0.0
    decay: str = "linear"
    floor: float = 0.0
    
    def shape(self, n_samples: int, sample_rate: int) -> np.ndarray:
        """Envelope values for a note of ``n_samples``."""
        if n_samples <= 0:
            return np.zeros(0)
        t = np.arange(n_samples) / sample_rate
        duration = n_samples / sample_rate
        attack = min(self.attack_s, duration)
        env = np.empty(n_samples)
        
        in_attack = t < attack
        if attack > 0:
            env[in_attack] = self.peak * t[in_attack] / attack
        
        rest = ~in_attack
        remaining = max(duration - attack, 1.0 / sample_rate)
        progress = (t[rest] - attack) / remaining
        
        if self.decay == "hold":
            env[rest] = self.peak
        elif self.decay == "exponential":
            floor = max(self.floor, 1e-4)
            env[rest] = self.peak * (floor / self.peak) ** progress
        elif self.decay == "linear":
            env[rest] = self.peak + (self.floor - self.peak) * progress
        else:
            raise ValueError(f"Unknown envelope decay: {self.decay}")
        return env


@dataclass(frozen=True)
class ToneEvent:
    """One oscillator note, times in seconds from pattern start."""
    start: float
    duration: float
    frequency: float
    envelope: Envelope
    waveform: str = "sine"                  # "sine" or "square"
    sweep_to: Optional[float] = None        # Rise to this at mid-note, then return
    
    @property
    def end(self) -> float:
        return self.start + self.duration


@dataclass(frozen=True)
class NoiseBed:
    """Low-passed white noise with a slow amplitude oscillation."""
    cutoff_hz: float = 800.0
    base_gain: float = 0.15
    lfo_hz: float = 0.3
    lfo_depth: float = 0.1
    loop_s: float = 2.0                     # Length of the repeated noise buffer
    seed: int = 0


@dataclass
class AlarmPattern:
    """A generated alarm sound, ready to render."""
    sound: AlarmSound
    duration_ms: int
    events: List[ToneEvent] = field(default_factory=list)
    noise: Optional[NoiseBed] = None
    
    @property
    def duration_s(self) -> float:
        return self.duration_ms / 1000.0
    
    @property
    def note_count(self) -> int:
        return len(self.events)
    
    def onsets(self) -> np.ndarray:
        return np.array([e.start for e in self.events])


# =============================================================================
# RENDERING
# =============================================================================

def render_tone(event: ToneEvent, sample_rate: int) -> np.ndarray:
    """Render one tone event to samples."""
    n = int(round(event.duration * sample_rate))
    if n <= 0:
        return np.zeros(0)
    
    if event.sweep_to is None:
        freq = np.full(n, event.frequency)
    else:
        # Linear glide up to sweep_to at mid-note and back
        half = n / 2.0
        ramp = 1.0 - np.abs(np.arange(n) - half) / half
        freq = event.frequency + (event.sweep_to - event.frequency) * ramp
    
    phase = 2.0 * np.pi * np.cumsum(freq) / sample_rate
    if event.waveform == "sine":
        wave = np.sin(phase)
    elif event.waveform == "square":
        wave = signal.square(phase)
    else:
        raise ValueError(f"Unknown waveform: {event.waveform}")
    
    return wave * event.envelope.shape(n, sample_rate)


def render_noise(noise: NoiseBed, n_samples: int, sample_rate: int) -> np.ndarray:
    """Render a noise bed of ``n_samples``."""
    if n_samples <= 0:
        return np.zeros(0)
    rng = np.random.default_rng(noise.seed)
    loop_len = max(1, int(noise.loop_s * sample_rate))
    white = rng.uniform(-1.0, 1.0, loop_len)
    
    reps = int(np.ceil(n_samples / loop_len))
    looped = np.tile(white, reps)[:n_samples]
    
    sos = signal.butter(2, noise.cutoff_hz, btype='low', fs=sample_rate, output='sos')
    filtered = signal.sosfilt(sos, looped)
    
    t = np.arange(n_samples) / sample_rate
    gain = noise.base_gain + noise.lfo_depth * np.sin(2.0 * np.pi * noise.lfo_hz * t)
    return filtered * gain


def render(pattern: AlarmPattern, sample_rate: int = 44100, master_gain: float = 1.0) -> np.ndarray:
    """
    Render a pattern to a mono float32 buffer of exactly its duration.
    
    Notes that run past the end are truncated.
    """
    n_total = int(round(pattern.duration_s * sample_rate))
    buffer = np.zeros(n_total)
    
    if pattern.noise is not None:
        buffer += render_noise(pattern.noise, n_total, sample_rate)
    
    for event in pattern.events:
        start = int(round(event.start * sample_rate))
        if start >= n_total:
            continue
        tone = render_tone(event, sample_rate)
        stop = min(n_total, start + len(tone))
        buffer[start:stop] += tone[:stop - start]
    
    buffer *= master_gain
    return np.clip(buffer, -1.0, 1.0).astype(np.float32)
