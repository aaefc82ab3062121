"""
Configuration module for the sleep monitor.

Contains sampling, phase classification, scoring, smart alarm and
synthesis parameters.
"""

from .monitor_config import (
    SamplingConfig,
    PhaseThresholds,
    ScoringWeights,
    SmartAlarmConfig,
    SynthesisConfig,
    MonitorConfig,
    get_default_config,
)

__all__ = [
    'SamplingConfig',
    'PhaseThresholds',
    'ScoringWeights',
    'SmartAlarmConfig',
    'SynthesisConfig',
    'MonitorConfig',
    'get_default_config',
]
