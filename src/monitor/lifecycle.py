"""
Session Lifecycle Manager.

Owns the overnight session from start to finalization:
- start(): acquire sound + motion, create the session, arm sampling and
  the smart alarm
- stop(): halt sampling, release sensors, cancel every timer, classify
  phases, score quality, persist the finalized record
- recover_stale(): startup cold path that finalizes a session left active
  by a dead process (older than 24h) from elapsed time alone

State Machine:
    NoSession -> Active -> Finalized

Only start() creates Active; only stop(), recover_stale() or
force_end_active() leave it. A session is never partially written.

One manager is created per process and passed to callers explicitly;
``shutdown()`` ends its lifetime.
"""

import logging
import math
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from alarm.notifier import Notifier
from alarm.scheduler import AlarmState, SmartAlarmScheduler
from analysis.phase_classifier import PhaseClassifier
from analysis.quality_scorer import QualityScorer
from config.monitor_config import MonitorConfig, get_default_config
from sensing.sample_recorder import SampleRecorder
from sensing.signal_source import SensorHandle, SignalSource
from session.errors import AlreadyActive, NoActiveSession, SleepMonitorError
from session.models import AlarmSettings, AlarmSound, SleepSample, SleepSession
from session.store import SessionStore
from session.timers import CooperativeTimers, TimerHandle
from synthesis.synthesizer import AlarmSynthesizer

logger = logging.getLogger(__name__)


def _round_minutes(seconds: float) -> int:
    """Round elapsed seconds to whole minutes, halves up."""
    return int(math.floor(seconds / 60.0 + 0.5))


# =============================================================================
# ACTIVE SESSION STATE
# =============================================================================

@dataclass
class ActiveSession:
    """Everything owned by the running session. Dropped as a unit at stop()."""
    session: SleepSession
    sound: SensorHandle
    motion: SensorHandle
    recorder: SampleRecorder
    sampling_timer: TimerHandle
    scheduler: SmartAlarmScheduler


# =============================================================================
# LIFECYCLE MANAGER
# =============================================================================

class SessionLifecycleManager:
    """
    Overnight monitoring engine.
    
    Usage:
        manager = SessionLifecycleManager(store, source, synthesizer, notifier)
        manager.recover_stale()
        session_id = await manager.start()
        await manager.run()            # drives timers until cancelled
        ...
        session = manager.stop()
        manager.shutdown()
    """
    
    def __init__(
        self,
        store: SessionStore,
        source: SignalSource,
        synthesizer: AlarmSynthesizer,
        notifier: Notifier,
        config: MonitorConfig = None,
        clock: Callable[[], float] = time.time,
        timers: CooperativeTimers = None,
    ):
        self.store = store
        self.source = source
        self.synthesizer = synthesizer
        self.notifier = notifier
        self.config = config or get_default_config()
        self.clock = clock
        self.timers = timers or CooperativeTimers(clock)
        
        self.classifier = PhaseClassifier(self.config.phases)
        self.scorer = QualityScorer(self.config.scoring, self.config.sampling.default_score)
        
        self._active: Optional[ActiveSession] = None
        self._starting = False
        self._recovered = False
        self._closed = False
    
    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------
    
    @property
    def is_active(self) -> bool:
        return self._active is not None
    
    @property
    def active_session(self) -> Optional[SleepSession]:
        return self._active.session if self._active else None
    
    @property
    def samples(self) -> Tuple[SleepSample, ...]:
        """Read-only view of the live sample buffer."""
        return self._active.recorder.samples if self._active else ()
    
    @property
    def alarm_state(self) -> AlarmState:
        return self._active.scheduler.state if self._active else AlarmState.DISARMED
    
    @property
    def scheduler(self) -> Optional[SmartAlarmScheduler]:
        return self._active.scheduler if self._active else None
    
    def status(self) -> Dict[str, Any]:
        """Snapshot for UI / diagnostics."""
        return {
            "active": self.is_active,
            "session_id": self.active_session.session_id if self._active else None,
            "sample_count": len(self.samples),
            "dropped_samples": self._active.recorder.dropped_count if self._active else 0,
            "alarm_state": self.alarm_state.value,
            "pending_timers": len(self.timers.pending),
        }
    
    # -------------------------------------------------------------------------
    # Recovery
    # -------------------------------------------------------------------------
    
    def _finalize_from_elapsed(self, session: SleepSession, now: float) -> SleepSession:
        """Finalize without sample data: elapsed duration, default outcome."""
        default_score = self.config.sampling.default_score
        session.end_time = now
        session.duration_minutes = _round_minutes(now - session.start_time)
        session.quality_score = default_score
        session.quality = self.scorer.label_for(default_score)
        session.movements = 0
        session.sound_level = 0
        session.light_phases = []
        session.deep_phases = []
        session.awake_phases = []
        self.store.save_session(session)
        return session
    
    def recover_stale(self) -> Optional[SleepSession]:
        """
        Finalize a persisted active session older than the stale threshold.
        
        Runs before any other lifecycle call; start() invokes it first if the
        caller has not.
        
        Returns:
            The recovered session, or None if there was nothing stale
        """
        self._recovered = True
        stored = self.store.load_active_session()
        if stored is None:
            return None
        if self._active is not None and stored.session_id == self._active.session.session_id:
            return None
        
        now = self.clock()
        age_hours = (now - stored.start_time) / 3600.0
        if age_hours <= self.config.sampling.stale_after_hours:
            logger.info(f"Active session {stored.session_id} is {age_hours:.1f}h old; not stale")
            return None
        
        recovered = self._finalize_from_elapsed(stored, now)
        logger.info(
            f"Recovered stale session {recovered.session_id} "
            f"({recovered.duration_minutes} min, no sample data)"
        )
        return recovered
    
    def _ensure_recovered(self):
        if not self._recovered:
            self.recover_stale()
    
    def force_end_active(self) -> Optional[SleepSession]:
        """
        Finalize a persisted active session this manager does not own,
        regardless of age, from elapsed time alone.
        """
        stored = self.store.load_active_session()
        if stored is None:
            return None
        if self._active is not None and stored.session_id == self._active.session.session_id:
            raise AlreadyActive(stored.session_id)
        ended = self._finalize_from_elapsed(stored, self.clock())
        logger.info(f"Force-ended orphaned session {ended.session_id}")
        return ended
    
    # -------------------------------------------------------------------------
    # Start
    # -------------------------------------------------------------------------
    
    async def start(self) -> str:
        """
        Start a session.
        
        Raises:
            AlreadyActive: a session is active (here or in the store)
            PermissionDenied: sound or motion could not be acquired
        
        Returns:
            The new session id
        """
        if self._closed:
            raise SleepMonitorError("Monitor has been shut down")
        self._ensure_recovered()
        
        if self._active is not None:
            raise AlreadyActive(self._active.session.session_id)
        if self._starting:
            raise AlreadyActive()
        stored = self.store.load_active_session()
        if stored is not None:
            raise AlreadyActive(stored.session_id)
        
        self._starting = True
        try:
            sound = await self.source.acquire_audio()
            try:
                motion = await self.source.acquire_motion()
            except BaseException:
                sound.release()
                raise
        finally:
            self._starting = False
        
        if self._closed:
            sound.release()
            motion.release()
            raise SleepMonitorError("Monitor was shut down during start")
        
        now = self.clock()
        settings = self.store.load_settings()
        default_score = self.config.sampling.default_score
        session = SleepSession(
            session_id=f"sleep_{int(now * 1000)}",
            date=datetime.fromtimestamp(now).date().isoformat(),
            start_time=now,
            quality=self.scorer.label_for(default_score),
            quality_score=default_score,
            alarm_window=settings.window_minutes,
        )
        self.store.save_session(session)
        
        recorder = SampleRecorder(sound, motion)
        sampling_timer = self.timers.call_every(
            self.config.sampling.interval_sec, self._on_sample_tick,
            name="sampling", first_at=now + self.config.sampling.interval_sec,
        )
        scheduler = SmartAlarmScheduler(
            timers=self.timers,
            recent_samples=recorder.recent,
            synthesizer=self.synthesizer,
            notifier=self.notifier,
            on_trigger=self._mark_alarm_triggered,
            config=self.config.alarm,
        )
        self._active = ActiveSession(
            session=session,
            sound=sound,
            motion=motion,
            recorder=recorder,
            sampling_timer=sampling_timer,
            scheduler=scheduler,
        )
        
        if settings.enabled:
            scheduler.arm(settings, now)
        
        logger.info(f"Sleep session {session.session_id} started")
        return session.session_id
    
    def _on_sample_tick(self, now: float):
        if self._active is not None:
            self._active.recorder.record(now)
    
    def _mark_alarm_triggered(self, now: float):
        if self._active is None:
            return
        session = self._active.session
        session.alarm_triggered = True
        session.alarm_time = now
        self.store.save_session(session)
    
    # -------------------------------------------------------------------------
    # Stop
    # -------------------------------------------------------------------------
    
    def stop(self) -> SleepSession:
        """
        Finalize the active session.
        
        Halts sampling, releases sensors, cancels every timer, then classifies
        and scores the buffer and persists the result. If the buffer cannot be
        analysed, the session is still finalized from elapsed time alone.
        
        Raises:
            NoActiveSession: nothing is active
        """
        if self._active is None:
            raise NoActiveSession()
        active = self._active
        now = self.clock()
        
        active.recorder.halt()
        active.scheduler.disarm(now, reason="session_stopped")
        self.timers.cancel(active.sampling_timer)
        self.timers.cancel_all()
        active.sound.release()
        active.motion.release()
        
        samples = active.recorder.drain()
        session = active.session
        try:
            partition = self.classifier.classify(samples)
            quality = self.scorer.score(samples)
            sound_level = int(math.floor(quality.avg_sound + 0.5))
        except Exception:
            logger.exception(
                f"Could not analyse {len(samples)} samples of {session.session_id}; "
                f"finalizing from elapsed time"
            )
            self._active = None
            return self._finalize_from_elapsed(session, now)
        
        session.end_time = now
        session.duration_minutes = _round_minutes(now - session.start_time)
        session.quality = quality.label
        session.quality_score = quality.score
        session.movements = quality.movement_events
        session.sound_level = sound_level
        session.light_phases = partition.light
        session.deep_phases = partition.deep
        session.awake_phases = partition.awake
        self._active = None
        self.store.save_session(session)
        
        logger.info(
            f"Sleep session {session.session_id} finalized: {session.duration_minutes} min, "
            f"{len(samples)} samples, score {session.quality_score} ({session.quality.value})"
        )
        return session
    
    # -------------------------------------------------------------------------
    # Alarm settings & playback
    # -------------------------------------------------------------------------
    
    def alarm_settings(self) -> AlarmSettings:
        return self.store.load_settings()
    
    def update_alarm_settings(self, **changes) -> AlarmSettings:
        """
        Apply and persist a settings change immediately.
        
        While a session is active the alarm is re-armed (enabled) or
        disarmed (disabled). A fired alarm is left alone.
        """
        if "sound" in changes and not isinstance(changes["sound"], AlarmSound):
            changes["sound"] = AlarmSound(changes["sound"])
        settings = replace(self.store.load_settings(), **changes)
        settings.validate()
        self.store.save_settings(settings)
        
        if self._active is not None:
            now = self.clock()
            scheduler = self._active.scheduler
            if scheduler.state != AlarmState.FIRED:
                if settings.enabled:
                    scheduler.arm(settings, now)
                else:
                    scheduler.disarm(now, reason="alarm_disabled")
            self._active.session.alarm_window = settings.window_minutes
            self.store.save_session(self._active.session)
        return settings
    
    def preview_sound(self, sound: AlarmSound):
        """Play a short preview of an alarm sound."""
        return self.synthesizer.preview(sound)
    
    def dismiss_alarm(self):
        """Silence the alarm sound."""
        self.synthesizer.stop()
    
    # -------------------------------------------------------------------------
    # Driving & teardown
    # -------------------------------------------------------------------------
    
    async def run(self, max_sleep_sec: float = 1.0):
        """Drive the timer set against the clock until cancelled."""
        await self.timers.drive(max_sleep_sec)
    
    def shutdown(self) -> Optional[SleepSession]:
        """
        End the manager's lifetime: finalize any active session, cancel all
        timers and silence audio.
        """
        finalized = self.stop() if self._active is not None else None
        self.timers.cancel_all()
        self.synthesizer.stop()
        self._closed = True
        logger.info("Sleep monitor shut down")
        return finalized
    
    def sessions(self) -> List[SleepSession]:
        return self.store.list_sessions()
