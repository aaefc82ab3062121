"""
pytest configuration and shared fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import pytest
import sys
import os
from datetime import datetime

# Add src to path for all tests
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from session.models import SleepSample
from session.store import InMemorySessionStore
from session.timers import ManualClock
from sensing.signal_source import SimulatedSignalSource
from synthesis.backends import InMemoryAudioBackend
from synthesis.synthesizer import AlarmSynthesizer
from alarm.notifier import LoggingNotifier
from monitor.lifecycle import SessionLifecycleManager


# =============================================================================
# CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# HELPERS
# =============================================================================

def make_samples(levels, start: float = 0.0, interval: float = 30.0):
    """Build samples from (movement, sound) pairs at a fixed cadence."""
    return [
        SleepSample(timestamp=start + i * interval, movement=m, sound_level=s)
        for i, (m, s) in enumerate(levels)
    ]


def local_ts(hour: int, minute: int = 0, second: int = 0, day: int = 20) -> float:
    """Epoch seconds for a local wall-clock time in October 2026."""
    return datetime(2026, 10, day, hour, minute, second).timestamp()


def advance(manager, clock, seconds: float):
    """Run the manager's timers forward and move the clock."""
    target = clock.now + seconds
    manager.timers.run_until(target)
    clock.set(target)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Manual clock starting at 23:00 local."""
    return ManualClock(local_ts(23, 0, day=19))


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def audio_backend(clock):
    return InMemoryAudioBackend(clock=clock)


@pytest.fixture
def synthesizer(audio_backend):
    return AlarmSynthesizer(audio_backend, seed=7)


@pytest.fixture
def quiet_source():
    """Source whose unscripted readings are always deep sleep."""
    return SimulatedSignalSource(seed=1, fallback_movement=(0.0, 5.0), fallback_sound=(0.0, 5.0))


@pytest.fixture
def make_manager(store, synthesizer, notifier, clock):
    """Factory for a manager wired to the shared collaborators."""
    def _make(source=None):
        source = source or SimulatedSignalSource(seed=1)
        return SessionLifecycleManager(
            store=store,
            source=source,
            synthesizer=synthesizer,
            notifier=notifier,
            clock=clock,
        )
    return _make
