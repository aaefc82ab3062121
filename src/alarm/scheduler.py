"""
Smart Alarm Scheduler.

Wakes the user during light sleep inside a window before the target time,
or at the target time at the latest.

State Machine:
- DISARMED: no timers
- ARMED_WAITING_FOR_WINDOW: one-shot timer at window start
- CHECKING_FOR_LIGHT_SLEEP: periodic light-sleep check plus a one-shot
  deadline timer at the target time
- FIRED: terminal for the session

Light sleep: the mean movement of the most recent samples lies strictly
inside the light-sleep band (default 20-50).

Firing is a best-effort fan-out, in order:
1. mark the session's alarm fields
2. play the alarm sound (looping)
3. vibrate, if enabled
4. system notification
A failing branch is logged and the remaining branches still run.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from config.monitor_config import SmartAlarmConfig
from session.models import AlarmSettings, SleepSample
from session.timers import CooperativeTimers, TimerHandle
from synthesis.synthesizer import AlarmSynthesizer
from .notifier import Notifier

logger = logging.getLogger(__name__)


# =============================================================================
# STATE & PLAN
# =============================================================================

class AlarmState(Enum):
    """Smart alarm scheduler states."""
    DISARMED = "disarmed"
    ARMED_WAITING_FOR_WINDOW = "armed_waiting_for_window"
    CHECKING_FOR_LIGHT_SLEEP = "checking_for_light_sleep"
    FIRED = "fired"


@dataclass
class AlarmPlan:
    """Resolved trigger window for one night."""
    target_time: float
    window_start: float
    settings: AlarmSettings
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_time": datetime.fromtimestamp(self.target_time).isoformat(),
            "window_start": datetime.fromtimestamp(self.window_start).isoformat(),
            "window_minutes": self.settings.window_minutes,
            "sound": self.settings.sound.value,
        }


def next_target_time(target_time: str, now: float) -> float:
    """
    Next local instant matching ``HH:mm`` that is not in the past.
    
    A target equal to ``now`` is kept; an earlier one rolls to tomorrow.
    """
    hours, minutes = (int(part) for part in target_time.split(":"))
    current = datetime.fromtimestamp(now)
    target = current.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    if target.timestamp() < now:
        target = target + timedelta(days=1)
    return target.timestamp()


# =============================================================================
# SCHEDULER
# =============================================================================

class SmartAlarmScheduler:
    """
    Smart alarm for one session.
    
    Usage:
        scheduler = SmartAlarmScheduler(timers, recorder.recent, synth, notifier,
                                        on_trigger=mark_session)
        scheduler.arm(settings, now)
        ...
        scheduler.disarm()
    """
    
    def __init__(
        self,
        timers: CooperativeTimers,
        recent_samples: Callable[[int], Sequence[SleepSample]],
        synthesizer: AlarmSynthesizer,
        notifier: Notifier,
        on_trigger: Callable[[float], None],
        config: SmartAlarmConfig = None,
    ):
        self.timers = timers
        self.recent_samples = recent_samples
        self.synthesizer = synthesizer
        self.notifier = notifier
        self.on_trigger = on_trigger
        self.config = config or SmartAlarmConfig()
        
        self.state = AlarmState.DISARMED
        self.plan: Optional[AlarmPlan] = None
        self.fired_at: Optional[float] = None
        self.fire_reason: Optional[str] = None
        
        self._window_timer: Optional[TimerHandle] = None
        self._check_timer: Optional[TimerHandle] = None
        self._deadline_timer: Optional[TimerHandle] = None
        
        self.state_history: List[Dict[str, Any]] = []
    
    # -------------------------------------------------------------------------
    # Arming
    # -------------------------------------------------------------------------
    
    def arm(self, settings: AlarmSettings, now: float) -> Optional[AlarmPlan]:
        """
        Arm for the next occurrence of ``settings.target_time``.
        
        Re-arming replaces any pending timers. Disabled settings disarm.
        A fired alarm stays fired.
        
        Returns:
            The plan, or None if nothing was armed
        """
        if self.state == AlarmState.FIRED:
            logger.debug("Alarm already fired; not re-arming")
            return None
        self._cancel_timers()
        if not settings.enabled:
            self._transition(AlarmState.DISARMED, now, "alarm_disabled")
            self.plan = None
            return None
        
        settings.validate()
        target = next_target_time(settings.target_time, now)
        window_start = target - settings.window_minutes * 60.0
        self.plan = AlarmPlan(target_time=target, window_start=window_start, settings=settings)
        
        self._transition(AlarmState.ARMED_WAITING_FOR_WINDOW, now, "armed")
        self._window_timer = self.timers.call_at(
            max(window_start, now), self._enter_window, name="alarm_window"
        )
        logger.info(
            f"Smart alarm armed: target {self.plan.to_dict()['target_time']}, "
            f"window {settings.window_minutes} min"
        )
        return self.plan
    
    def disarm(self, now: Optional[float] = None, reason: str = "disarmed"):
        """Cancel all pending timers. A fired alarm stays fired."""
        self._cancel_timers()
        if self.state != AlarmState.FIRED:
            self._transition(AlarmState.DISARMED, now, reason)
    
    def _cancel_timers(self):
        for handle in (self._window_timer, self._check_timer, self._deadline_timer):
            self.timers.cancel(handle)
        self._window_timer = self._check_timer = self._deadline_timer = None
    
    @property
    def has_pending_timers(self) -> bool:
        return any(
            h is not None and not h.cancelled
            for h in (self._window_timer, self._check_timer, self._deadline_timer)
        )
    
    # -------------------------------------------------------------------------
    # Window checking
    # -------------------------------------------------------------------------
    
    def _enter_window(self, now: float):
        self._window_timer = None
        self._transition(AlarmState.CHECKING_FOR_LIGHT_SLEEP, now, "window_open")
        
        self._deadline_timer = self.timers.call_at(
            self.plan.target_time, self._deadline, name="alarm_deadline"
        )
        self._check_timer = self.timers.call_every(
            self.config.check_interval_sec, self.check,
            name="alarm_check", first_at=now + self.config.check_interval_sec,
        )
        # Checking starts at the window edge, not one interval later
        self.check(now)
    
    def recent_mean_movement(self) -> Optional[float]:
        """Mean movement over the most recent samples, None without data."""
        recent = self.recent_samples(self.config.recent_sample_count)
        if not recent:
            return None
        return float(np.mean([s.movement for s in recent]))
    
    def is_light_sleep(self, mean_movement: Optional[float]) -> bool:
        if mean_movement is None:
            return False
        low, high = self.config.light_sleep_band
        return low < mean_movement < high
    
    def check(self, now: float) -> bool:
        """
        One light-sleep check.
        
        Returns:
            True if the alarm fired
        """
        if self.state != AlarmState.CHECKING_FOR_LIGHT_SLEEP:
            return False
        
        if now >= self.plan.target_time:
            self.fire(now, reason="deadline")
            return True
        
        mean_movement = self.recent_mean_movement()
        if self.is_light_sleep(mean_movement):
            self.fire(now, reason="light_sleep")
            return True
        
        if mean_movement is None:
            logger.debug("Alarm check: no samples yet")
        else:
            logger.debug(f"Alarm check: mean movement {mean_movement:.1f}, waiting")
        return False
    
    def _deadline(self, now: float):
        self._deadline_timer = None
        if self.state == AlarmState.CHECKING_FOR_LIGHT_SLEEP:
            self.fire(now, reason="deadline")
    
    # -------------------------------------------------------------------------
    # Firing
    # -------------------------------------------------------------------------
    
    def fire(self, now: float, reason: str = "manual"):
        """Fire the alarm. Terminal; later calls are ignored."""
        if self.state == AlarmState.FIRED:
            return
        self._cancel_timers()
        self.fired_at = now
        self.fire_reason = reason
        self._transition(AlarmState.FIRED, now, reason)
        logger.info(f"Smart alarm fired ({reason})")
        
        settings = self.plan.settings if self.plan else AlarmSettings()
        
        try:
            self.on_trigger(now)
        except Exception as e:
            logger.warning(f"Could not mark session alarm fields: {e}")
        
        try:
            self.synthesizer.play_alarm(settings.sound)
        except Exception as e:
            logger.warning(f"Alarm sound failed: {e}")
        
        if settings.vibrate:
            try:
                self.notifier.vibrate(self.config.vibration_pattern_ms)
            except Exception as e:
                logger.warning(f"Vibration failed: {e}")
        
        try:
            self.notifier.notify(self.config.notification_title, self.config.notification_body)
        except Exception as e:
            logger.warning(f"Notification failed: {e}")
    
    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------
    
    def _transition(self, new_state: AlarmState, timestamp: Optional[float], reason: str):
        if new_state == self.state and reason != "armed":
            return
        self.state_history.append({
            "from_state": self.state.value,
            "to_state": new_state.value,
            "timestamp": timestamp,
            "reason": reason,
        })
        self.state = new_state
