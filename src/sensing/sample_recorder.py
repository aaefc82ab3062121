"""
Sample Recorder.

On each sampling tick, reads one movement and one sound level from the
acquired handles and appends a SleepSample to the session buffer. A failed
read drops that sample; it never aborts the session.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from session.errors import SensorReadError
from session.models import SleepSample
from .signal_source import SensorHandle

logger = logging.getLogger(__name__)


class SampleRecorder:
    """
    Pulls samples from sound/motion handles into an in-memory buffer.
    
    Usage:
        recorder = SampleRecorder(sound_handle, motion_handle)
        timers.call_every(30.0, recorder.record)
        ...
        samples = recorder.drain()
    """
    
    def __init__(self, sound: SensorHandle, motion: SensorHandle):
        self.sound = sound
        self.motion = motion
        self._buffer: List[SleepSample] = []
        self.dropped_count = 0
        self.active = True
    
    def record(self, now: float) -> Optional[SleepSample]:
        """
        Take one sample at ``now``.
        
        Returns:
            The appended sample, or None if recording is halted or a read failed
        """
        if not self.active:
            return None
        try:
            movement = self.motion.read_level()
            sound_level = self.sound.read_level()
        except SensorReadError as e:
            self.dropped_count += 1
            logger.warning(f"Dropped sample at {now:.0f}: {e}")
            return None

        if not (np.isfinite(movement) and np.isfinite(sound_level)):
            self.dropped_count += 1
            logger.warning(
                f"Dropped sample at {now:.0f}: non-finite level "
                f"(movement={movement}, sound={sound_level})"
            )
            return None

        sample = SleepSample(
            timestamp=now,
            movement=float(np.clip(movement, 0.0, 100.0)),
            sound_level=float(np.clip(sound_level, 0.0, 100.0)),
        )
        self._buffer.append(sample)
        logger.debug(f"Sample {len(self._buffer)}: movement={sample.movement:.1f} sound={sample.sound_level:.1f}")
        return sample
    
    @property
    def samples(self) -> Tuple[SleepSample, ...]:
        """Read-only view of the buffer."""
        return tuple(self._buffer)
    
    def recent(self, n: int) -> List[SleepSample]:
        """The last ``n`` samples."""
        return self._buffer[-n:] if n > 0 else []
    
    def halt(self):
        """Stop accepting samples."""
        self.active = False
    
    def drain(self) -> List[SleepSample]:
        """Return the buffer contents and clear it."""
        samples = self._buffer
        self._buffer = []
        return samples
    
    def __len__(self) -> int:
        return len(self._buffer)
