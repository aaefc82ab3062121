"""
Configuration for the overnight sleep monitor.

Every tunable used by sampling, phase classification, quality scoring,
the smart alarm and alarm-sound synthesis lives here. Components take
one of these dataclasses in their constructor; nothing reads ad-hoc
module constants.
"""

from dataclasses import dataclass, field
from typing import List, Tuple


# =============================================================================
# SAMPLING & SESSION LIFECYCLE
# =============================================================================

@dataclass
class SamplingConfig:
    """Sampling cadence and session lifecycle parameters."""
    interval_sec: float = 30.0          # One sample per interval
    stale_after_hours: float = 24.0     # Active sessions older than this are recovered
    default_score: int = 50             # Seeded score for new / unsampled sessions
    
    def validate(self) -> bool:
        assert self.interval_sec > 0
        assert self.stale_after_hours > 0
        assert 0 <= self.default_score <= 100
        return True


# =============================================================================
# PHASE CLASSIFICATION
# =============================================================================

@dataclass
class PhaseThresholds:
    """
    Threshold rule for instantaneous phase typing.
    
    Precedence (first match wins):
    1. movement > awake_movement OR sound > awake_sound  -> awake
    2. movement < deep_movement AND sound < deep_sound   -> deep
    3. otherwise                                         -> light
    """
    awake_movement: float = 50.0
    awake_sound: float = 60.0
    deep_movement: float = 20.0
    deep_sound: float = 30.0
    
    def validate(self) -> bool:
        assert 0.0 <= self.deep_movement <= self.awake_movement <= 100.0
        assert 0.0 <= self.deep_sound <= self.awake_sound <= 100.0
        return True


# =============================================================================
# QUALITY SCORING
# =============================================================================

@dataclass
class ScoringWeights:
    """Penalty weights and label cut-offs for the 0-100 quality score."""
    movement_weight: float = 0.5
    sound_weight: float = 0.3
    restless_weight: float = 20.0
    restless_movement: float = 40.0     # A sample above this counts as a movement event
    
    # Label cut-offs (score >= cut-off)
    excellent_cutoff: int = 80
    good_cutoff: int = 60
    fair_cutoff: int = 40
    
    def validate(self) -> bool:
        assert self.movement_weight >= 0
        assert self.sound_weight >= 0
        assert self.restless_weight >= 0
        assert self.excellent_cutoff > self.good_cutoff > self.fair_cutoff >= 0
        return True


# =============================================================================
# SMART ALARM
# =============================================================================

@dataclass
class SmartAlarmConfig:
    """Smart alarm window checking and firing parameters."""
    check_interval_sec: float = 30.0
    recent_sample_count: int = 3        # ~90 seconds of data at the default cadence
    
    # Mean movement strictly inside this band is treated as light sleep
    light_sleep_band: Tuple[float, float] = (20.0, 50.0)
    
    vibration_pattern_ms: List[int] = field(
        default_factory=lambda: [1000, 500, 1000, 500, 1000]
    )
    notification_title: str = "Wake Up!"
    notification_body: str = "Good morning! Time to wake up."
    
    def validate(self) -> bool:
        assert self.check_interval_sec > 0
        assert self.recent_sample_count >= 1
        low, high = self.light_sleep_band
        assert 0.0 <= low < high <= 100.0
        assert all(ms >= 0 for ms in self.vibration_pattern_ms)
        return True


# =============================================================================
# ALARM SOUND SYNTHESIS
# =============================================================================

@dataclass
class SynthesisConfig:
    """Rendering parameters for procedurally generated alarm sounds."""
    sample_rate: int = 44100
    preview_ms: int = 3000
    alarm_ms: int = 60000
    master_gain: float = 1.0
    
    def validate(self) -> bool:
        assert self.sample_rate >= 8000
        assert 0 < self.preview_ms <= self.alarm_ms
        assert 0.0 < self.master_gain <= 1.0
        return True


# =============================================================================
# AGGREGATE
# =============================================================================

@dataclass
class MonitorConfig:
    """Complete monitor configuration."""
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    phases: PhaseThresholds = field(default_factory=PhaseThresholds)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    alarm: SmartAlarmConfig = field(default_factory=SmartAlarmConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    
    def validate(self) -> bool:
        """Validate every section."""
        return all([
            self.sampling.validate(),
            self.phases.validate(),
            self.scoring.validate(),
            self.alarm.validate(),
            self.synthesis.validate(),
        ])


def get_default_config() -> MonitorConfig:
    """Get the production default configuration."""
    config = MonitorConfig()
    config.validate()
    return config
