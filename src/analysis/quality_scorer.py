"""
Session Quality Scorer

Reduces a sample buffer to a 0-100 quality score and a four-level label:

    score = clamp(100 - avg_movement * 0.5
                      - avg_sound * 0.3
                      - restless_ratio * 20, 0, 100)

restless_ratio is the fraction of samples with movement > 40. An empty
buffer scores 50 / fair, the same value a fresh session is seeded with;
``sample_count == 0`` tells the two apart.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Sequence

import numpy as np

from config.monitor_config import ScoringWeights
from session.models import QualityLabel, SleepSample


@dataclass
class QualityScore:
    """Quality score with the statistics it was derived from."""
    score: int = 50
    label: QualityLabel = QualityLabel.FAIR
    avg_movement: float = 0.0
    avg_sound: float = 0.0
    restless_ratio: float = 0.0
    movement_events: int = 0
    sample_count: int = 0
    
    @property
    def has_data(self) -> bool:
        return self.sample_count > 0
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["label"] = self.label.value
        return data


class QualityScorer:
    """Movement/sound based quality scorer."""
    
    def __init__(self, weights: ScoringWeights = None, default_score: int = 50):
        self.weights = weights or ScoringWeights()
        self.default_score = default_score
    
    def label_for(self, score: float) -> QualityLabel:
        """Map a score onto its label."""
        w = self.weights
        if score >= w.excellent_cutoff:
            return QualityLabel.EXCELLENT
        elif score >= w.good_cutoff:
            return QualityLabel.GOOD
        elif score >= w.fair_cutoff:
            return QualityLabel.FAIR
        return QualityLabel.POOR
    
    def score(self, samples: Sequence[SleepSample]) -> QualityScore:
        """
        Score a sample buffer.
        
        Args:
            samples: Sample buffer (order is irrelevant)
            
        Returns:
            QualityScore; default score for an empty buffer
        """
        if not samples:
            return QualityScore(
                score=self.default_score,
                label=self.label_for(self.default_score),
            )
        
        w = self.weights
        movement = np.array([s.movement for s in samples], dtype=np.float64)
        sound = np.array([s.sound_level for s in samples], dtype=np.float64)
        
        avg_movement = float(np.mean(movement))
        avg_sound = float(np.mean(sound))
        movement_events = int(np.sum(movement > w.restless_movement))
        restless_ratio = movement_events / len(samples)
        
        raw = (
            100.0
            - avg_movement * w.movement_weight
            - avg_sound * w.sound_weight
            - restless_ratio * w.restless_weight
        )
        raw = float(np.clip(raw, 0.0, 100.0))
        
        # Label from the unrounded score, same as the stored record
        return QualityScore(
            score=int(np.floor(raw + 0.5)),
            label=self.label_for(raw),
            avg_movement=avg_movement,
            avg_sound=avg_sound,
            restless_ratio=restless_ratio,
            movement_events=movement_events,
            sample_count=len(samples),
        )


def score_samples(samples: Sequence[SleepSample], weights: ScoringWeights = None) -> QualityScore:
    """Score with default (or given) weights."""
    return QualityScorer(weights).score(samples)
