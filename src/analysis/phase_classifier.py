"""
Sleep Phase Classifier

Converts a session's sample buffer into a gap-free, non-overlapping
sequence of awake / light / deep phases.

Each sample is typed by a threshold rule (first match wins):
1. movement > 50 or sound > 60   -> awake
2. movement < 20 and sound < 30  -> deep
3. otherwise                     -> light

Phase boundaries:
- The running phase starts as light at the first timestamp.
- Every sample after the first types the interval that ends at it.
- A type change at sample i closes the running phase at the previous
  sample's timestamp; the last sample closes the final phase.

So the phases tile [first timestamp, last timestamp] exactly, with each
phase's end equal to the next phase's start. Zero-length phases are only
produced for a single-sample buffer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from config.monitor_config import PhaseThresholds
from session.models import PhaseType, SleepPhase, SleepSample


# Integer codes used for vectorised typing
_CODES = {0: PhaseType.LIGHT, 1: PhaseType.DEEP, 2: PhaseType.AWAKE}


@dataclass
class PhasePartition:
    """Classifier output: ordered phases per type."""
    light: List[SleepPhase] = field(default_factory=list)
    deep: List[SleepPhase] = field(default_factory=list)
    awake: List[SleepPhase] = field(default_factory=list)
    
    def append(self, phase: SleepPhase):
        if phase.phase_type == PhaseType.LIGHT:
            self.light.append(phase)
        elif phase.phase_type == PhaseType.DEEP:
            self.deep.append(phase)
        else:
            self.awake.append(phase)
    
    @property
    def timeline(self) -> List[SleepPhase]:
        """All phases in time order."""
        return sorted(self.light + self.deep + self.awake, key=lambda p: (p.start, p.end))
    
    @property
    def is_empty(self) -> bool:
        return not (self.light or self.deep or self.awake)
    
    def minutes_by_type(self) -> Dict[str, float]:
        """Total minutes spent in each phase type."""
        return {
            PhaseType.LIGHT.value: sum(p.duration_sec for p in self.light) / 60.0,
            PhaseType.DEEP.value: sum(p.duration_sec for p in self.deep) / 60.0,
            PhaseType.AWAKE.value: sum(p.duration_sec for p in self.awake) / 60.0,
        }


class PhaseClassifier:
    """
    Threshold-based sleep phase classifier.
    
    Usage:
        classifier = PhaseClassifier()
        partition = classifier.classify(samples)
        for phase in partition.timeline:
            print(phase.phase_type, phase.start, phase.end)
    """
    
    def __init__(self, thresholds: PhaseThresholds = None):
        self.thresholds = thresholds or PhaseThresholds()
    
    def instantaneous_types(self, samples: Sequence[SleepSample]) -> List[PhaseType]:
        """Type every sample independently by the threshold rule."""
        if not samples:
            return []
        t = self.thresholds
        movement = np.array([s.movement for s in samples], dtype=np.float64)
        sound = np.array([s.sound_level for s in samples], dtype=np.float64)
        
        awake = (movement > t.awake_movement) | (sound > t.awake_sound)
        deep = (movement < t.deep_movement) & (sound < t.deep_sound)
        codes = np.where(awake, 2, np.where(deep, 1, 0))
        return [_CODES[int(c)] for c in codes]
    
    def classify(self, samples: Sequence[SleepSample]) -> PhasePartition:
        """
        Partition the buffer into phases.
        
        Args:
            samples: Sample buffer (sorted by timestamp here)
            
        Returns:
            PhasePartition; empty for an empty buffer
        """
        partition = PhasePartition()
        if not samples:
            return partition
        
        ordered = sorted(samples, key=lambda s: s.timestamp)
        types = self.instantaneous_types(ordered)
        
        if len(ordered) == 1:
            ts = ordered[0].timestamp
            partition.append(SleepPhase(ts, ts, types[0]))
            return partition
        
        current = PhaseType.LIGHT
        phase_start = ordered[0].timestamp
        last_index = len(ordered) - 1
        
        for i in range(1, len(ordered)):
            new_type = types[i]
            prev_ts = ordered[i - 1].timestamp
            
            if new_type != current:
                if prev_ts > phase_start:
                    partition.append(SleepPhase(phase_start, prev_ts, current))
                phase_start = prev_ts
                current = new_type
            
            if i == last_index:
                partition.append(SleepPhase(phase_start, ordered[i].timestamp, current))
        
        return partition


def classify_phases(
    samples: Sequence[SleepSample],
    thresholds: PhaseThresholds = None,
) -> PhasePartition:
    """Classify with default (or given) thresholds."""
    return PhaseClassifier(thresholds).classify(samples)
