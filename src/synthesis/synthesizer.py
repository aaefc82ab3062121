"""
Alarm Synthesizer.

Generates one of six alarm sounds from oscillator primitives and plays it
through an AudioBackend, in one of two modes:
- preview(sound):    3 s, plays once
- play_alarm(sound): 60 s buffer, looped by the backend until stopped

Only one sound plays at a time; starting a new one stops the previous.
``stop()`` silences whatever is in flight and is a no-op when nothing is.
"""

import logging
from typing import Optional

import numpy as np

from config.monitor_config import SynthesisConfig
from session.errors import AudioBackendError
from session.models import AlarmSound
from .backends import AudioBackend, PlaybackHandle
from .oscillators import AlarmPattern, render
from .patterns import generate_pattern

logger = logging.getLogger(__name__)


class AlarmSynthesizer:
    """
    Procedural alarm sound player.
    
    Args:
        backend: Where rendered buffers are played
        config: Sample rate, preview/alarm lengths, master gain
        seed: Seed for the randomized generators (chimes, birds, ocean)
    """
    
    def __init__(
        self,
        backend: AudioBackend,
        config: SynthesisConfig = None,
        seed: Optional[int] = None,
    ):
        self.backend = backend
        self.config = config or SynthesisConfig()
        self.rng = np.random.default_rng(seed)
        self._current: Optional[PlaybackHandle] = None
        self.current_sound: Optional[AlarmSound] = None
    
    def generate(self, sound: AlarmSound, duration_ms: int) -> AlarmPattern:
        """Generate a pattern without playing it."""
        return generate_pattern(sound, duration_ms, self.rng)
    
    def render(self, pattern: AlarmPattern) -> np.ndarray:
        """Render a pattern at the configured sample rate."""
        return render(pattern, self.config.sample_rate, self.config.master_gain)
    
    def _play(self, sound: AlarmSound, duration_ms: int, loop: bool) -> PlaybackHandle:
        self.stop()
        buffer = self.render(self.generate(sound, duration_ms))
        handle = self.backend.play(buffer, self.config.sample_rate, loop=loop)
        self._current = handle
        self.current_sound = sound
        logger.debug(f"Playing {sound.value} for {duration_ms}ms (loop={loop})")
        return handle
    
    def preview(self, sound: AlarmSound) -> PlaybackHandle:
        """Play a short preview of ``sound``."""
        return self._play(sound, self.config.preview_ms, loop=False)
    
    def play_alarm(self, sound: AlarmSound, loop: bool = True) -> PlaybackHandle:
        """Play the full alarm; looped until stopped unless ``loop`` is False."""
        return self._play(sound, self.config.alarm_ms, loop=loop)
    
    @property
    def is_playing(self) -> bool:
        return self._current is not None and self._current.is_active
    
    def stop(self):
        """Silence and release the current playback. Idempotent."""
        handle, self._current = self._current, None
        self.current_sound = None
        if handle is None:
            return
        try:
            handle.stop()
        except AudioBackendError as e:
            logger.warning(f"Audio backend failed to stop playback: {e}")
