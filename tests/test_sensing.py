"""
Unit tests for signal sources, frame feature extraction and the recorder.
"""

import asyncio

import pytest
import numpy as np

from sensing.signal_source import (
    FrameMotionHandle,
    FrameSoundHandle,
    SimulatedSignalSource,
    movement_level_from_motion,
    sound_level_from_frame,
)
from sensing.sample_recorder import SampleRecorder
from session.errors import PermissionDenied, SensorKind, SensorReadError


# =============================================================================
# FEATURE EXTRACTION
# =============================================================================

class TestSoundLevel:
    """Tests for analyser-style sound level."""
    
    def test_silence_is_zero(self):
        assert sound_level_from_frame(np.zeros(256)) == 0.0
    
    def test_loud_noise_is_high(self):
        rng = np.random.default_rng(0)
        level = sound_level_from_frame(rng.uniform(-1, 1, 1024))
        assert 50.0 < level <= 100.0
    
    def test_louder_is_higher(self):
        rng = np.random.default_rng(0)
        noise = rng.uniform(-1, 1, 256)
        assert sound_level_from_frame(noise * 0.001) < sound_level_from_frame(noise)
    
    def test_short_frame_is_padded(self):
        level = sound_level_from_frame(np.full(10, 0.5))
        assert 0.0 <= level <= 100.0
    
    def test_empty_frame(self):
        with pytest.raises(SensorReadError):
            sound_level_from_frame(np.array([]))


class TestMovementLevel:
    """Tests for accelerometer movement level."""
    
    def test_resting_device(self):
        accel = np.tile([0.0, 0.0, 9.81], (50, 1))
        assert movement_level_from_motion(accel) == 0.0
    
    def test_shaking_is_clipped(self):
        rng = np.random.default_rng(0)
        accel = rng.normal(0, 20, size=(50, 3)) + [0, 0, 9.81]
        assert movement_level_from_motion(accel) == 100.0
    
    def test_bad_shape(self):
        with pytest.raises(SensorReadError):
            movement_level_from_motion(np.zeros((10, 2)))


# =============================================================================
# HANDLES & SOURCES
# =============================================================================

class TestHandles:
    """Tests for frame-backed handles."""
    
    def test_release_is_idempotent(self):
        released = []
        handle = FrameSoundHandle(lambda: np.zeros(256), on_release=lambda: released.append(1))
        handle.release()
        handle.release()
        assert released == [1]
        with pytest.raises(SensorReadError):
            handle.read_level()
    
    def test_reader_failure_becomes_sensor_error(self):
        def broken():
            raise IOError("stream died")
        
        handle = FrameMotionHandle(broken)
        with pytest.raises(SensorReadError):
            handle.read_level()


class TestSimulatedSource:
    """Tests for the simulated source."""
    
    def test_scripted_then_fallback(self):
        source = SimulatedSignalSource(movement=[10.0], seed=0, fallback_movement=(0.0, 5.0))
        motion = asyncio.run(source.acquire_motion())
        assert motion.read_level() == 10.0
        assert 0.0 <= motion.read_level() <= 5.0
    
    def test_denial(self):
        source = SimulatedSignalSource(deny=[SensorKind.MOTION])
        with pytest.raises(PermissionDenied) as exc_info:
            asyncio.run(source.acquire_motion())
        assert exc_info.value.kind == SensorKind.MOTION


# =============================================================================
# RECORDER
# =============================================================================

class TestSampleRecorder:
    """Tests for the sample recorder."""
    
    def _recorder(self, movement, sound):
        source = SimulatedSignalSource(movement=movement, sound=sound, seed=0)
        sound_handle = asyncio.run(source.acquire_audio())
        motion_handle = asyncio.run(source.acquire_motion())
        return SampleRecorder(sound_handle, motion_handle)
    
    def test_records_samples(self):
        recorder = self._recorder([10.0, 20.0], [5.0, 6.0])
        recorder.record(30.0)
        recorder.record(60.0)
        assert [(s.timestamp, s.movement, s.sound_level) for s in recorder.samples] == [
            (30.0, 10.0, 5.0), (60.0, 20.0, 6.0),
        ]
    
    def test_failed_read_drops_sample(self):
        """A missing reading is skipped without aborting."""
        recorder = self._recorder([10.0, None, 30.0], [5.0, 5.0, 5.0])
        recorder.record(30.0)
        assert recorder.record(60.0) is None
        recorder.record(90.0)
        assert len(recorder) == 2
        assert recorder.dropped_count == 1
    
    def test_levels_are_clamped(self):
        recorder = self._recorder([150.0], [-3.0])
        sample = recorder.record(0.0)
        assert sample.movement == 100.0
        assert sample.sound_level == 0.0
    
    def test_halt_and_drain(self):
        recorder = self._recorder([1.0, 2.0, 3.0], [1.0, 1.0, 1.0])
        recorder.record(0.0)
        recorder.halt()
        assert recorder.record(30.0) is None
        assert len(recorder.drain()) == 1
        assert len(recorder) == 0
    
    def test_recent(self):
        recorder = self._recorder([1.0, 2.0, 3.0, 4.0], [0.0] * 4)
        for t in range(4):
            recorder.record(float(t))
        assert [s.movement for s in recorder.recent(3)] == [2.0, 3.0, 4.0]


# =============================================================================
# NON-FINITE READINGS
# =============================================================================

class TestNonFiniteReadings:
    """NaN/Inf sensor data is treated as a failed read."""
    
    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_sound_frame_rejected(self, bad):
        frame = np.zeros(256)
        frame[10] = bad
        with pytest.raises(SensorReadError):
            sound_level_from_frame(frame)
        with pytest.raises(SensorReadError):
            FrameSoundHandle(lambda: frame).read_level()
    
    @pytest.mark.parametrize("bad", [np.nan, np.inf])
    def test_motion_frame_rejected(self, bad):
        accel = np.tile([0.0, 0.0, 9.81], (10, 1))
        accel[3, 1] = bad
        with pytest.raises(SensorReadError):
            movement_level_from_motion(accel)
        with pytest.raises(SensorReadError):
            FrameMotionHandle(lambda: accel).read_level()
    
    def test_recorder_drops_nan_frames(self):
        recorder = SampleRecorder(
            FrameSoundHandle(lambda: np.full(256, np.nan)),
            FrameMotionHandle(lambda: np.tile([0.0, 0.0, 9.81], (10, 1))),
        )
        assert recorder.record(30.0) is None
        assert len(recorder) == 0
        assert recorder.dropped_count == 1
    
    @pytest.mark.parametrize("movement,sound", [
        (float("nan"), 10.0),
        (10.0, float("inf")),
    ])
    def test_recorder_drops_non_finite_levels(self, movement, sound):
        """Levels from any handle are checked, not only frame-backed ones."""
        source = SimulatedSignalSource(movement=[movement, 12.0], sound=[sound, 8.0], seed=0)
        recorder = SampleRecorder(
            asyncio.run(source.acquire_audio()),
            asyncio.run(source.acquire_motion()),
        )
        assert recorder.record(30.0) is None
        sample = recorder.record(60.0)
        assert (sample.movement, sample.sound_level) == (12.0, 8.0)
        assert recorder.dropped_count == 1
    
    def test_sampling_timer_survives_bad_frames(self):
        """A run of NaN frames drops samples but sampling keeps going."""
        from session.timers import CooperativeTimers, ManualClock
        
        frames = iter([np.full(256, np.nan), np.zeros(256), np.zeros(256)])
        recorder = SampleRecorder(
            FrameSoundHandle(lambda: next(frames)),
            FrameMotionHandle(lambda: np.tile([0.0, 0.0, 9.81], (10, 1))),
        )
        timers = CooperativeTimers(ManualClock(0.0))
        handle = timers.call_every(30.0, recorder.record, name="sampling")
        
        timers.run_until(90.0)
        assert [s.timestamp for s in recorder.samples] == [60.0, 90.0]
        assert timers.pending == [handle]
