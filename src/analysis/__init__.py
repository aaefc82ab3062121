"""Analysis layer - phase classification, quality scoring and statistics."""

from .phase_classifier import PhaseClassifier, PhasePartition, classify_phases
from .quality_scorer import QualityScorer, QualityScore, score_samples
from .session_stats import SleepStats, summarize_sessions

__all__ = [
    'PhaseClassifier',
    'PhasePartition',
    'classify_phases',
    'QualityScorer',
    'QualityScore',
    'score_samples',
    'SleepStats',
    'summarize_sessions',
]
