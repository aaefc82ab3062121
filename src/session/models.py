"""
Sleep Monitor Data Models

Data classes for sessions, phases, samples and alarm settings.
Timestamps are Unix epoch seconds; serialized forms use local ISO-8601
strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional

from .errors import InvalidAlarmSettings


def _to_iso(ts: Optional[float]) -> Optional[str]:
    """Format an epoch timestamp as a local ISO string with its UTC offset."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts).astimezone().isoformat()


def _from_iso(value: Optional[str]) -> Optional[float]:
    """Parse an ISO string back into an epoch timestamp. Naive strings are local time."""
    if value is None:
        return None
    return datetime.fromisoformat(value).timestamp()


# =============================================================================
# ENUMS
# =============================================================================

class PhaseType(Enum):
    """Sleep phase types."""
    LIGHT = "light"
    DEEP = "deep"
    AWAKE = "awake"


class QualityLabel(Enum):
    """Four-level session quality label."""
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class AlarmSound(Enum):
    """Procedurally generated alarm sounds."""
    GENTLE = "gentle"
    CLASSIC = "classic"
    CHIMES = "chimes"
    BIRDS = "birds"
    OCEAN = "ocean"
    PIANO = "piano"


@dataclass(frozen=True)
class AlarmSoundInfo:
    """Display metadata for an alarm sound."""
    sound: AlarmSound
    name: str
    description: str


ALARM_SOUNDS: Dict[AlarmSound, AlarmSoundInfo] = {
    AlarmSound.GENTLE: AlarmSoundInfo(AlarmSound.GENTLE, "Gentle Wake", "Soft ascending tones"),
    AlarmSound.CLASSIC: AlarmSoundInfo(AlarmSound.CLASSIC, "Classic Alarm", "Traditional beeping"),
    AlarmSound.CHIMES: AlarmSoundInfo(AlarmSound.CHIMES, "Wind Chimes", "Peaceful chimes"),
    AlarmSound.BIRDS: AlarmSoundInfo(AlarmSound.BIRDS, "Morning Birds", "Chirping birds"),
    AlarmSound.OCEAN: AlarmSoundInfo(AlarmSound.OCEAN, "Ocean Waves", "Calming waves"),
    AlarmSound.PIANO: AlarmSoundInfo(AlarmSound.PIANO, "Piano Melody", "Soft piano notes"),
}


# =============================================================================
# SAMPLES & PHASES
# =============================================================================

@dataclass(frozen=True)
class SleepSample:
    """One sensor reading. Lives only in the active session's buffer."""
    timestamp: float
    movement: float         # 0-100
    sound_level: float      # 0-100


@dataclass
class SleepPhase:
    """A typed interval [start, end] within a session."""
    start: float
    end: float
    phase_type: PhaseType
    
    @property
    def duration_sec(self) -> float:
        return self.end - self.start
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": _to_iso(self.start),
            "end_time": _to_iso(self.end),
            "type": self.phase_type.value,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SleepPhase":
        return cls(
            start=_from_iso(data["start_time"]),
            end=_from_iso(data["end_time"]),
            phase_type=PhaseType(data["type"]),
        )


# =============================================================================
# SESSION
# =============================================================================

@dataclass
class SleepSession:
    """One tracked night.
    
    Outcome fields are populated only at finalization. While the session
    is active ``end_time`` and ``duration_minutes`` are None.
    """
    session_id: str
    date: str                               # Local calendar date, YYYY-MM-DD
    start_time: float
    end_time: Optional[float] = None
    duration_minutes: Optional[int] = None
    
    # Outcome
    quality: QualityLabel = QualityLabel.FAIR
    quality_score: int = 50
    movements: int = 0
    sound_level: int = 0
    
    # Phase partition
    light_phases: List[SleepPhase] = field(default_factory=list)
    deep_phases: List[SleepPhase] = field(default_factory=list)
    awake_phases: List[SleepPhase] = field(default_factory=list)
    
    # Alarm outcome
    alarm_time: Optional[float] = None
    alarm_triggered: bool = False
    alarm_window: int = 30
    
    @property
    def is_active(self) -> bool:
        return self.end_time is None
    
    @property
    def phases(self) -> List[SleepPhase]:
        """All phases in start-time order."""
        merged = self.light_phases + self.deep_phases + self.awake_phases
        return sorted(merged, key=lambda p: (p.start, p.end))
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.session_id,
            "date": self.date,
            "start_time": _to_iso(self.start_time),
            "end_time": _to_iso(self.end_time),
            "duration": self.duration_minutes,
            "quality": self.quality.value,
            "quality_score": self.quality_score,
            "movements": self.movements,
            "sound_level": self.sound_level,
            "light_sleep_phases": [p.to_dict() for p in self.light_phases],
            "deep_sleep_phases": [p.to_dict() for p in self.deep_phases],
            "awake_phases": [p.to_dict() for p in self.awake_phases],
            "alarm_time": _to_iso(self.alarm_time),
            "alarm_triggered": self.alarm_triggered,
            "alarm_window": self.alarm_window,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SleepSession":
        return cls(
            session_id=data["id"],
            date=data["date"],
            start_time=_from_iso(data["start_time"]),
            end_time=_from_iso(data.get("end_time")),
            duration_minutes=data.get("duration"),
            quality=QualityLabel(data.get("quality", "fair")),
            quality_score=int(data.get("quality_score", 50)),
            movements=int(data.get("movements", 0)),
            sound_level=int(data.get("sound_level", 0)),
            light_phases=[SleepPhase.from_dict(p) for p in data.get("light_sleep_phases", [])],
            deep_phases=[SleepPhase.from_dict(p) for p in data.get("deep_sleep_phases", [])],
            awake_phases=[SleepPhase.from_dict(p) for p in data.get("awake_phases", [])],
            alarm_time=_from_iso(data.get("alarm_time")),
            alarm_triggered=bool(data.get("alarm_triggered", False)),
            alarm_window=int(data.get("alarm_window", 30)),
        )


# =============================================================================
# ALARM SETTINGS
# =============================================================================

_TARGET_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class AlarmSettings:
    """User alarm settings. Persisted on every mutation."""
    enabled: bool = False
    target_time: str = "07:00"      # HH:mm, local
    window_minutes: int = 30
    sound: AlarmSound = AlarmSound.GENTLE
    vibrate: bool = True
    
    def validate(self) -> bool:
        """Raise InvalidAlarmSettings if any field is malformed."""
        if not isinstance(self.target_time, str) or not _TARGET_TIME_RE.match(self.target_time):
            raise InvalidAlarmSettings(f"target_time must be HH:mm, got {self.target_time!r}")
        if isinstance(self.window_minutes, bool) or not isinstance(self.window_minutes, int):
            raise InvalidAlarmSettings(f"window_minutes must be an integer, got {self.window_minutes!r}")
        if self.window_minutes < 0:
            raise InvalidAlarmSettings(f"window_minutes must be >= 0, got {self.window_minutes}")
        if not isinstance(self.sound, AlarmSound):
            raise InvalidAlarmSettings(f"Unknown alarm sound: {self.sound!r}")
        return True
    
    @property
    def target_hour_minute(self) -> tuple:
        hours, minutes = self.target_time.split(":")
        return int(hours), int(minutes)
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sound"] = self.sound.value
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlarmSettings":
        sound_id = data.get("sound", AlarmSound.GENTLE.value)
        # Older records stored "default" before a sound was picked
        try:
            sound = AlarmSound(sound_id)
        except ValueError:
            if sound_id != "default":
                raise InvalidAlarmSettings(f"Unknown alarm sound: {sound_id!r}")
            sound = AlarmSound.GENTLE
        
        settings = cls(
            enabled=bool(data.get("enabled", False)),
            target_time=data.get("target_time", "07:00"),
            window_minutes=data.get("window_minutes", 30),
            sound=sound,
            vibrate=bool(data.get("vibrate", True)),
        )
        settings.validate()
        return settings
