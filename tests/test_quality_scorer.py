"""
Unit tests for the quality scorer and session statistics.
"""

import pytest
import numpy as np
from datetime import date

from analysis.quality_scorer import QualityScorer, score_samples
from analysis.session_stats import summarize_sessions
from session.models import QualityLabel, SleepSession

from .conftest import make_samples


# =============================================================================
# SCORING
# =============================================================================

class TestQualityScorer:
    """Tests for score computation."""
    
    def test_empty_buffer_defaults(self):
        """No samples scores 50 / fair and reports no data."""
        result = score_samples([])
        assert result.score == 50
        assert result.label == QualityLabel.FAIR
        assert not result.has_data
    
    def test_silent_still_night(self):
        """All-zero readings score 100 / excellent."""
        result = score_samples(make_samples([(0, 0)] * 20))
        assert result.score == 100
        assert result.label == QualityLabel.EXCELLENT
    
    def test_formula(self):
        """Penalties combine movement, sound and restlessness."""
        samples = make_samples([(10, 20), (50, 40)])
        result = score_samples(samples)
        # 100 - 30*0.5 - 30*0.3 - 0.5*20 = 66
        assert result.avg_movement == pytest.approx(30.0)
        assert result.avg_sound == pytest.approx(30.0)
        assert result.restless_ratio == pytest.approx(0.5)
        assert result.movement_events == 1
        assert result.score == 66
        assert result.label == QualityLabel.GOOD
    
    def test_all_max_is_clamped(self):
        """Adversarial max readings clamp to 0 / poor."""
        result = score_samples(make_samples([(100, 100)] * 10))
        assert result.score == 0
        assert result.label == QualityLabel.POOR
    
    def test_score_always_in_range(self):
        """Random buffers never leave [0, 100]."""
        rng = np.random.default_rng(11)
        scorer = QualityScorer()
        for _ in range(100):
            n = int(rng.integers(1, 50))
            levels = rng.uniform(0, 100, size=(n, 2))
            result = scorer.score(make_samples([tuple(row) for row in levels]))
            assert 0 <= result.score <= 100
    
    @pytest.mark.parametrize("score,label", [
        (80, QualityLabel.EXCELLENT),
        (79.9, QualityLabel.GOOD),
        (60, QualityLabel.GOOD),
        (40, QualityLabel.FAIR),
        (39.99, QualityLabel.POOR),
        (0, QualityLabel.POOR),
    ])
    def test_label_cutoffs(self, score, label):
        assert QualityScorer().label_for(score) == label
    
    def test_rounds_half_up(self):
        """Scores round to the nearest integer, halves up."""
        # 100 - 1*0.5 = 99.5
        result = score_samples(make_samples([(1, 0)]))
        assert result.score == 100


# =============================================================================
# STATISTICS
# =============================================================================

def _session(sid, day, score, duration=420, active=False):
    start = float(day * 86400)
    return SleepSession(
        session_id=sid,
        date=f"2026-10-{day:02d}",
        start_time=start,
        end_time=None if active else start + duration * 60,
        duration_minutes=None if active else duration,
        quality_score=score,
    )


class TestSessionStats:
    """Tests for multi-session summaries."""
    
    def test_no_sessions(self):
        stats = summarize_sessions([], today=date(2026, 10, 20))
        assert stats.total_sessions == 0
        assert stats.best_sleep is None
    
    def test_summary(self):
        sessions = [
            _session("a", 1, 40, duration=300),
            _session("b", 15, 90, duration=480),
            _session("c", 19, 70, duration=450),
            _session("d", 20, 10, active=True),
        ]
        stats = summarize_sessions(sessions, today=date(2026, 10, 20))
        
        assert stats.total_sessions == 3
        assert stats.average_duration == 410
        assert stats.average_quality == 67
        assert stats.best_sleep.session_id == "b"
        assert stats.worst_sleep.session_id == "a"
        assert [s.session_id for s in stats.last_7_days] == ["c", "b"]
        assert [s.session_id for s in stats.last_30_days] == ["c", "b", "a"]
