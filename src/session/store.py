"""
Session Persistence

The monitor treats persistence as a synchronous key-value collaborator.
Two implementations are provided: an in-memory store and a JSON document
store that rewrites one file on every save.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from .models import SleepSession, AlarmSettings

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Persistence collaborator contract."""
    
    @abstractmethod
    def load_active_session(self) -> Optional[SleepSession]:
        """Return the session without an end time, if any."""
    
    @abstractmethod
    def save_session(self, session: SleepSession) -> None:
        """Insert or replace a session by id."""
    
    @abstractmethod
    def get_session(self, session_id: str) -> Optional[SleepSession]:
        """Look up a session by id."""
    
    @abstractmethod
    def list_sessions(self) -> List[SleepSession]:
        """All sessions in start-time order."""
    
    @abstractmethod
    def load_settings(self) -> AlarmSettings:
        """Return alarm settings, creating defaults on first read."""
    
    @abstractmethod
    def save_settings(self, settings: AlarmSettings) -> None:
        """Persist alarm settings."""


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemorySessionStore(SessionStore):
    """Dictionary-backed store. Sessions are copied in and out."""
    
    def __init__(self):
        self._sessions: Dict[str, dict] = {}
        self._settings: Optional[dict] = None
    
    def load_active_session(self) -> Optional[SleepSession]:
        for session in self.list_sessions():
            if session.is_active:
                return session
        return None
    
    def save_session(self, session: SleepSession) -> None:
        self._sessions[session.session_id] = session.to_dict()
    
    def get_session(self, session_id: str) -> Optional[SleepSession]:
        data = self._sessions.get(session_id)
        return SleepSession.from_dict(data) if data is not None else None
    
    def list_sessions(self) -> List[SleepSession]:
        sessions = [SleepSession.from_dict(d) for d in self._sessions.values()]
        return sorted(sessions, key=lambda s: s.start_time)
    
    def load_settings(self) -> AlarmSettings:
        if self._settings is None:
            self.save_settings(AlarmSettings())
        return AlarmSettings.from_dict(self._settings)
    
    def save_settings(self, settings: AlarmSettings) -> None:
        settings.validate()
        self._settings = settings.to_dict()


# =============================================================================
# JSON FILE STORE
# =============================================================================

class JsonSessionStore(SessionStore):
    """
    Single JSON document holding all sessions and the alarm settings.
    
    Layout:
        {"sessions": [<session dict>, ...], "alarm_settings": {...}}
    """
    
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
    
    def _read(self) -> dict:
        if not self.path.exists():
            return {"sessions": [], "alarm_settings": None}
        try:
            with open(self.path, 'r') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            corrupt_path = self.path.with_suffix(self.path.suffix + ".corrupt")
            self.path.replace(corrupt_path)
            logger.warning(f"Unreadable session store {self.path}: {e}; moved to {corrupt_path}")
            return {"sessions": [], "alarm_settings": None}
        document.setdefault("sessions", [])
        document.setdefault("alarm_settings", None)
        return document
    
    def _write(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, 'w') as f:
            json.dump(document, f, indent=2)
        tmp_path.replace(self.path)
    
    def load_active_session(self) -> Optional[SleepSession]:
        for session in self.list_sessions():
            if session.is_active:
                return session
        return None
    
    def save_session(self, session: SleepSession) -> None:
        document = self._read()
        sessions = [s for s in document["sessions"] if s.get("id") != session.session_id]
        sessions.append(session.to_dict())
        document["sessions"] = sessions
        self._write(document)
    
    def get_session(self, session_id: str) -> Optional[SleepSession]:
        for data in self._read()["sessions"]:
            if data.get("id") == session_id:
                return SleepSession.from_dict(data)
        return None
    
    def list_sessions(self) -> List[SleepSession]:
        sessions = []
        for data in self._read()["sessions"]:
            try:
                sessions.append(SleepSession.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed session record {data.get('id')}: {e}")
        return sorted(sessions, key=lambda s: s.start_time)
    
    def load_settings(self) -> AlarmSettings:
        document = self._read()
        if document["alarm_settings"] is None:
            settings = AlarmSettings()
            self.save_settings(settings)
            return settings
        return AlarmSettings.from_dict(document["alarm_settings"])
    
    def save_settings(self, settings: AlarmSettings) -> None:
        settings.validate()
        document = self._read()
        document["alarm_settings"] = settings.to_dict()
        self._write(document)
