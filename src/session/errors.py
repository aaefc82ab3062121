"""
Error taxonomy for the sleep monitor.

Contract violations (AlreadyActive, NoActiveSession) and acquisition
failures (PermissionDenied) are surfaced to callers. SensorReadError and
AudioBackendError are raised by collaborators and recovered locally by
the component that calls them.
"""

from enum import Enum


class SensorKind(Enum):
    """Sensors the monitor needs to acquire."""
    MICROPHONE = "microphone"
    MOTION = "motion"


class SleepMonitorError(Exception):
    """Base class for all sleep monitor errors."""


class AlreadyActive(SleepMonitorError):
    """A session is already active."""
    
    def __init__(self, session_id: str = None):
        self.session_id = session_id
        detail = f" ({session_id})" if session_id else ""
        super().__init__(f"A sleep session is already active{detail}")


class NoActiveSession(SleepMonitorError):
    """No session is active."""
    
    def __init__(self):
        super().__init__("No active sleep session")


class PermissionDenied(SleepMonitorError):
    """A sensor could not be acquired (denied or unsupported)."""
    
    def __init__(self, kind: SensorKind, reason: str = ""):
        self.kind = kind
        self.reason = reason
        message = f"{kind.value} access denied"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SensorReadError(SleepMonitorError):
    """A sensor frame could not be read mid-session."""


class InvalidAlarmSettings(SleepMonitorError, ValueError):
    """Alarm settings failed validation."""


class AudioBackendError(SleepMonitorError):
    """The audio backend could not start or stop playback."""
