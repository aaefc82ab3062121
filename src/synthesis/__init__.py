"""Alarm sound synthesis - oscillator primitives, generators and playback."""

from .oscillators import AlarmPattern, Envelope, NoiseBed, ToneEvent, render
from .patterns import PATTERN_GENERATORS, generate_pattern
from .backends import (
    AudioBackend,
    PlaybackHandle,
    TimedPlayback,
    InMemoryAudioBackend,
    WavFileBackend,
)
from .synthesizer import AlarmSynthesizer

__all__ = [
    "AlarmPattern",
    "Envelope",
    "NoiseBed",
    "ToneEvent",
    "render",
    "PATTERN_GENERATORS",
    "generate_pattern",
    "AudioBackend",
    "PlaybackHandle",
    "TimedPlayback",
    "InMemoryAudioBackend",
    "WavFileBackend",
    "AlarmSynthesizer",
]
