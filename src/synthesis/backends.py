"""
Audio backends for rendered alarm buffers.

- InMemoryAudioBackend: keeps every played buffer (simulation, tests)
- WavFileBackend: writes each played buffer as a 16-bit WAV file
"""

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Union

import numpy as np
from scipy.io import wavfile

from session.errors import AudioBackendError

logger = logging.getLogger(__name__)


class PlaybackHandle(ABC):
    """An in-flight playback. ``stop`` is idempotent."""
    
    @abstractmethod
    def stop(self):
        """Silence and release the playback."""
    
    @property
    @abstractmethod
    def is_active(self) -> bool:
        """True while audio is audible."""


class AudioBackend(ABC):
    """Destination for rendered buffers."""
    
    @abstractmethod
    def play(self, buffer: np.ndarray, sample_rate: int, loop: bool = False) -> PlaybackHandle:
        """Start playing ``buffer``. Raises AudioBackendError."""


class TimedPlayback(PlaybackHandle):
    """Playback that ends after the buffer length unless looping or stopped."""
    
    def __init__(self, n_samples: int, sample_rate: int, loop: bool, clock: Callable[[], float]):
        self.duration_s = n_samples / sample_rate
        self.loop = loop
        self._clock = clock
        self.started_at = clock()
        self.stopped = False
    
    def stop(self):
        self.stopped = True
    
    @property
    def is_active(self) -> bool:
        if self.stopped:
            return False
        return self.loop or self._clock() - self.started_at < self.duration_s


class InMemoryAudioBackend(AudioBackend):
    """Records every buffer passed to ``play``."""
    
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.played: List[np.ndarray] = []
        self.handles: List[TimedPlayback] = []
    
    def play(self, buffer: np.ndarray, sample_rate: int, loop: bool = False) -> PlaybackHandle:
        self.played.append(buffer)
        handle = TimedPlayback(len(buffer), sample_rate, loop, self.clock)
        self.handles.append(handle)
        return handle
    
    @property
    def active_count(self) -> int:
        return sum(1 for h in self.handles if h.is_active)


class WavFileBackend(AudioBackend):
    """Writes each buffer to ``<directory>/<prefix>_<n>.wav``."""
    
    def __init__(
        self,
        directory: Union[str, Path],
        prefix: str = "alarm",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = Path(directory)
        self.prefix = prefix
        self.clock = clock
        self.written: List[Path] = []
    
    def play(self, buffer: np.ndarray, sample_rate: int, loop: bool = False) -> PlaybackHandle:
        path = self.directory / f"{self.prefix}_{len(self.written):03d}.wav"
        pcm = (np.clip(buffer, -1.0, 1.0) * 32767).astype(np.int16)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            wavfile.write(str(path), sample_rate, pcm)
        except OSError as e:
            raise AudioBackendError(f"Could not write {path}: {e}") from e
        self.written.append(path)
        logger.info(f"Wrote {len(pcm) / sample_rate:.1f}s alarm audio to {path}")
        return TimedPlayback(len(pcm), sample_rate, loop, self.clock)
