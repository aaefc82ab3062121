# Sensing module
# Signal source boundary, frame feature extraction and sample recording

from .signal_source import (
    SignalSource,
    SensorHandle,
    SoundHandle,
    MotionHandle,
    FrameSoundHandle,
    FrameMotionHandle,
    SimulatedSignalSource,
    sound_level_from_frame,
    movement_level_from_motion,
)
from .sample_recorder import SampleRecorder

__all__ = [
    'SignalSource',
    'SensorHandle',
    'SoundHandle',
    'MotionHandle',
    'FrameSoundHandle',
    'FrameMotionHandle',
    'SimulatedSignalSource',
    'sound_level_from_frame',
    'movement_level_from_motion',
    'SampleRecorder',
]
