"""
Multi-session sleep statistics for reporting collaborators.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from session.models import SleepSession


@dataclass
class SleepStats:
    """Aggregate statistics over finalized sessions."""
    average_duration: int = 0           # minutes, over sessions with a duration
    average_quality: int = 0            # 0-100
    total_sessions: int = 0
    best_sleep: Optional[SleepSession] = None
    worst_sleep: Optional[SleepSession] = None
    last_7_days: List[SleepSession] = field(default_factory=list)
    last_30_days: List[SleepSession] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_duration": self.average_duration,
            "average_quality": self.average_quality,
            "total_sessions": self.total_sessions,
            "best_sleep": self.best_sleep.session_id if self.best_sleep else None,
            "worst_sleep": self.worst_sleep.session_id if self.worst_sleep else None,
            "last_7_days": [s.session_id for s in self.last_7_days],
            "last_30_days": [s.session_id for s in self.last_30_days],
        }


def _within_days(sessions: Sequence[SleepSession], today: date, days: int) -> List[SleepSession]:
    cutoff = (today - timedelta(days=days - 1)).isoformat()
    end = today.isoformat()
    window = [s for s in sessions if cutoff <= s.date <= end]
    return sorted(window, key=lambda s: s.start_time, reverse=True)


def summarize_sessions(sessions: Sequence[SleepSession], today: Optional[date] = None) -> SleepStats:
    """
    Summarize finalized sessions.
    
    Active sessions are ignored. Ties for best/worst go to the earliest
    session.
    
    Args:
        sessions: Stored sessions
        today: Reference date for the 7/30 day windows (default: today)
    """
    today = today or date.today()
    finalized = sorted((s for s in sessions if not s.is_active), key=lambda s: s.start_time)
    if not finalized:
        return SleepStats()
    
    durations = [s.duration_minutes for s in finalized if s.duration_minutes]
    scores = np.array([s.quality_score for s in finalized], dtype=np.float64)
    
    return SleepStats(
        average_duration=int(round(float(np.mean(durations)))) if durations else 0,
        average_quality=int(round(float(np.mean(scores)))),
        total_sessions=len(finalized),
        best_sleep=finalized[int(np.argmax(scores))],
        worst_sleep=finalized[int(np.argmin(scores))],
        last_7_days=_within_days(finalized, today, 7),
        last_30_days=_within_days(finalized, today, 30),
    )
