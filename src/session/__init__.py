# Session module
# Data model, error taxonomy, persistence collaborators and timers

from .errors import (
    SensorKind,
    SleepMonitorError,
    AlreadyActive,
    NoActiveSession,
    PermissionDenied,
    SensorReadError,
    InvalidAlarmSettings,
    AudioBackendError,
)
from .models import (
    PhaseType,
    QualityLabel,
    AlarmSound,
    AlarmSoundInfo,
    ALARM_SOUNDS,
    SleepSample,
    SleepPhase,
    SleepSession,
    AlarmSettings,
)
from .store import SessionStore, InMemorySessionStore, JsonSessionStore
from .timers import CooperativeTimers, TimerHandle, ManualClock

__all__ = [
    # Errors
    'SensorKind',
    'SleepMonitorError',
    'AlreadyActive',
    'NoActiveSession',
    'PermissionDenied',
    'SensorReadError',
    'InvalidAlarmSettings',
    'AudioBackendError',
    
    # Models
    'PhaseType',
    'QualityLabel',
    'AlarmSound',
    'AlarmSoundInfo',
    'ALARM_SOUNDS',
    'SleepSample',
    'SleepPhase',
    'SleepSession',
    'AlarmSettings',
    
    # Persistence
    'SessionStore',
    'InMemorySessionStore',
    'JsonSessionStore',
    
    # Timers
    'CooperativeTimers',
    'TimerHandle',
    'ManualClock',
]
