"""
Signal Source boundary for sound and motion sensing.

Platform sensors are external collaborators. The monitor only needs:
- acquire_audio() / acquire_motion(): async, raise PermissionDenied
- handle.read_level(): current 0-100 level, raise SensorReadError on failure
- handle.release(): idempotent

Frame-backed handles convert raw frames into levels:
- Sound: 256-point analyser (Blackman window, magnitude spectrum in dB
  mapped from [-100, -30] dB onto 0..255, averaged, scaled to 0..100)
- Motion: mean absolute deviation of acceleration magnitude, scaled
  against a full-scale constant
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import numpy as np
from scipy import signal

from session.errors import PermissionDenied, SensorKind, SensorReadError

logger = logging.getLogger(__name__)


# =============================================================================
# FEATURE EXTRACTION
# =============================================================================

ANALYSER_FFT_SIZE = 256
ANALYSER_MIN_DB = -100.0
ANALYSER_MAX_DB = -30.0

# Acceleration magnitude deviation (m/s^2) that maps to movement level 100
MOTION_FULL_SCALE = 2.0


def sound_level_from_frame(
    frame: np.ndarray,
    fft_size: int = ANALYSER_FFT_SIZE,
    min_db: float = ANALYSER_MIN_DB,
    max_db: float = ANALYSER_MAX_DB,
) -> float:
    """
    Compute a 0-100 sound level from a PCM frame.
    
    Args:
        frame: Mono PCM samples in [-1, 1]; the most recent fft_size are used
        fft_size: Analyser FFT size
        min_db: dB value mapped to byte 0
        max_db: dB value mapped to byte 255
        
    Returns:
        Rounded sound level in [0, 100]
    """
    frame = np.asarray(frame, dtype=np.float64).ravel()
    if frame.size == 0:
        raise SensorReadError("Empty audio frame")
    if not np.all(np.isfinite(frame)):
        raise SensorReadError("Audio frame contains non-finite samples")
    
    # Zero-pad short frames, keep the most recent samples of long ones
    if frame.size < fft_size:
        frame = np.pad(frame, (fft_size - frame.size, 0))
    else:
        frame = frame[-fft_size:]
    
    window = signal.get_window('blackman', fft_size)
    spectrum = np.abs(np.fft.rfft(frame * window))[:fft_size // 2] / fft_size
    
    with np.errstate(divide='ignore'):
        db = 20.0 * np.log10(spectrum)
    
    byte_values = np.clip((db - min_db) / (max_db - min_db) * 255.0, 0.0, 255.0)
    average = float(np.mean(byte_values))
    return float(round(average / 255.0 * 100.0))


def movement_level_from_motion(
    accel: np.ndarray,
    full_scale: float = MOTION_FULL_SCALE,
) -> float:
    """
    Compute a 0-100 movement level from accelerometer readings.
    
    Args:
        accel: (n, 3) accelerometer samples including gravity, m/s^2
        full_scale: Mean magnitude deviation that maps to 100
        
    Returns:
        Movement level in [0, 100]
    """
    accel = np.asarray(accel, dtype=np.float64)
    if accel.ndim != 2 or accel.shape[1] != 3 or accel.shape[0] == 0:
        raise SensorReadError(f"Expected (n, 3) accelerometer frame, got shape {accel.shape}")
    if not np.all(np.isfinite(accel)):
        raise SensorReadError("Accelerometer frame contains non-finite values")
    
    magnitude = np.linalg.norm(accel, axis=1)
    deviation = float(np.mean(np.abs(magnitude - np.mean(magnitude))))
    return float(np.clip(deviation / full_scale * 100.0, 0.0, 100.0))


# =============================================================================
# HANDLES
# =============================================================================

class SensorHandle(ABC):
    """An acquired sensor. Release is idempotent."""
    
    kind: SensorKind
    
    def __init__(self):
        self.released = False
    
    @abstractmethod
    def read_level(self) -> float:
        """Current 0-100 level. Raises SensorReadError on failure."""
    
    def release(self):
        if not self.released:
            self.released = True
            logger.debug(f"Released {self.kind.value} handle")


class SoundHandle(SensorHandle):
    kind = SensorKind.MICROPHONE


class MotionHandle(SensorHandle):
    kind = SensorKind.MOTION


class FrameSoundHandle(SoundHandle):
    """Sound handle fed by a PCM frame reader."""
    
    def __init__(self, read_frame: Callable[[], np.ndarray], on_release: Optional[Callable[[], None]] = None):
        super().__init__()
        self._read_frame = read_frame
        self._on_release = on_release
    
    def read_level(self) -> float:
        if self.released:
            raise SensorReadError("Sound handle already released")
        try:
            frame = self._read_frame()
        except SensorReadError:
            raise
        except Exception as e:
            raise SensorReadError(f"Audio frame read failed: {e}") from e
        return sound_level_from_frame(frame)
    
    def release(self):
        if not self.released and self._on_release is not None:
            self._on_release()
        super().release()


class FrameMotionHandle(MotionHandle):
    """Motion handle fed by an accelerometer frame reader."""
    
    def __init__(
        self,
        read_frame: Callable[[], np.ndarray],
        full_scale: float = MOTION_FULL_SCALE,
        on_release: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self._read_frame = read_frame
        self.full_scale = full_scale
        self._on_release = on_release
    
    def read_level(self) -> float:
        if self.released:
            raise SensorReadError("Motion handle already released")
        try:
            frame = self._read_frame()
        except SensorReadError:
            raise
        except Exception as e:
            raise SensorReadError(f"Motion frame read failed: {e}") from e
        return movement_level_from_motion(frame, self.full_scale)
    
    def release(self):
        if not self.released and self._on_release is not None:
            self._on_release()
        super().release()


# =============================================================================
# SOURCES
# =============================================================================

class SignalSource(ABC):
    """Acquisition boundary. Acquisition is the only operation that suspends."""
    
    @abstractmethod
    async def acquire_audio(self) -> SoundHandle:
        """Acquire the microphone. Raises PermissionDenied(MICROPHONE)."""
    
    @abstractmethod
    async def acquire_motion(self) -> MotionHandle:
        """Acquire the motion sensor. Raises PermissionDenied(MOTION)."""


class _ScriptedHandle(SensorHandle):
    def __init__(self, kind: SensorKind, levels: Callable[[], Optional[float]]):
        super().__init__()
        self.kind = kind
        self._levels = levels
    
    def read_level(self) -> float:
        if self.released:
            raise SensorReadError(f"{self.kind.value} handle already released")
        level = self._levels()
        if level is None:
            raise SensorReadError(f"{self.kind.value} stream returned no data")
        return level


class SimulatedSignalSource(SignalSource):
    """
    Signal source that replays scripted levels.
    
    Each read pops the next value from the script; once exhausted, values
    are drawn from a seeded uniform distribution over the fallback range.
    A ``None`` entry in a script simulates a failed read.
    
    Example:
        source = SimulatedSignalSource(movement=[10, 10, 60], sound=[10, 10, 70])
    """
    
    def __init__(
        self,
        movement: Optional[Sequence[Optional[float]]] = None,
        sound: Optional[Sequence[Optional[float]]] = None,
        seed: Optional[int] = None,
        fallback_movement: tuple = (0.0, 30.0),
        fallback_sound: tuple = (0.0, 20.0),
        deny: Sequence[SensorKind] = (),
    ):
        self._movement = list(movement or [])
        self._sound = list(sound or [])
        self._rng = np.random.default_rng(seed)
        self.fallback_movement = fallback_movement
        self.fallback_sound = fallback_sound
        self.deny = set(deny)
        self.handles = []
    
    def _next(self, script: list, fallback: tuple) -> Optional[float]:
        if script:
            return script.pop(0)
        return float(self._rng.uniform(*fallback))
    
    async def acquire_audio(self) -> SensorHandle:
        if SensorKind.MICROPHONE in self.deny:
            raise PermissionDenied(SensorKind.MICROPHONE, "simulated denial")
        handle = _ScriptedHandle(SensorKind.MICROPHONE, lambda: self._next(self._sound, self.fallback_sound))
        self.handles.append(handle)
        return handle
    
    async def acquire_motion(self) -> SensorHandle:
        if SensorKind.MOTION in self.deny:
            raise PermissionDenied(SensorKind.MOTION, "simulated denial")
        handle = _ScriptedHandle(SensorKind.MOTION, lambda: self._next(self._movement, self.fallback_movement))
        self.handles.append(handle)
        return handle
