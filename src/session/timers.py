"""
Cooperative Timer Set.

One owned timer set replaces the interval/timeout callback chains that
drive sampling, the alarm window and alarm checks. All timers run on a
single logical timeline and never concurrently with each other; the owner
can cancel the whole set at once.

Callbacks receive the timer's scheduled instant (``now``) so that runs
against a simulated clock produce the same timestamps as live runs.

Usage:
    timers = CooperativeTimers(clock=time.time)
    timers.call_every(30.0, recorder.record, name="sampling")
    
    # Simulation / tests
    timers.run_until(start + 3600)
    
    # Live
    await timers.drive()
"""

import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# CLOCKS
# =============================================================================

class ManualClock:
    """Settable clock for simulation. Call it to read the time."""
    
    def __init__(self, start: float = 0.0):
        self.now = float(start)
    
    def __call__(self) -> float:
        return self.now
    
    def set(self, timestamp: float):
        self.now = float(timestamp)
    
    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# =============================================================================
# TIMER HANDLE
# =============================================================================

@dataclass(order=True)
class TimerHandle:
    """A scheduled one-shot or periodic timer."""
    due: float
    seq: int
    callback: Callable[[float], None] = field(compare=False)
    interval: Optional[float] = field(default=None, compare=False)
    name: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)
    
    @property
    def is_periodic(self) -> bool:
        return self.interval is not None
    
    def cancel(self):
        self.cancelled = True


# =============================================================================
# TIMER SET
# =============================================================================

class CooperativeTimers:
    """
    Heap-ordered timer set on a single timeline.
    
    Timers due at the same instant fire in scheduling order. A periodic
    timer is re-armed at ``due + interval`` after each run, so a long
    ``run_until`` replays every missed tick.
    """
    
    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._heap: List[TimerHandle] = []
        self._seq = itertools.count()
        self._epoch = 0
    
    def call_at(
        self,
        when: float,
        callback: Callable[[float], None],
        name: str = "",
    ) -> TimerHandle:
        """Schedule a one-shot timer at an absolute time."""
        handle = TimerHandle(due=when, seq=next(self._seq), callback=callback, name=name)
        heapq.heappush(self._heap, handle)
        logger.debug(f"Timer '{name}' scheduled at {when:.1f}")
        return handle
    
    def call_later(
        self,
        delay: float,
        callback: Callable[[float], None],
        name: str = "",
    ) -> TimerHandle:
        """Schedule a one-shot timer relative to the clock. Negative delays fire immediately."""
        return self.call_at(self.clock() + max(0.0, delay), callback, name)
    
    def call_every(
        self,
        interval: float,
        callback: Callable[[float], None],
        name: str = "",
        first_at: Optional[float] = None,
    ) -> TimerHandle:
        """Schedule a periodic timer. First run is one interval from now unless given."""
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        due = first_at if first_at is not None else self.clock() + interval
        handle = TimerHandle(
            due=due, seq=next(self._seq), callback=callback,
            interval=interval, name=name,
        )
        heapq.heappush(self._heap, handle)
        logger.debug(f"Periodic timer '{name}' every {interval:.1f}s from {due:.1f}")
        return handle
    
    def cancel(self, handle: Optional[TimerHandle]):
        """Cancel a timer. Safe to call on None or an already-cancelled handle."""
        if handle is not None:
            handle.cancel()
    
    def cancel_all(self):
        """Cancel every pending timer atomically."""
        for handle in self._heap:
            handle.cancel()
        self._heap.clear()
        self._epoch += 1
    
    @property
    def pending(self) -> List[TimerHandle]:
        """Live timers in firing order."""
        return sorted(h for h in self._heap if not h.cancelled)
    
    def next_due(self) -> Optional[float]:
        """Due time of the earliest live timer."""
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0].due if self._heap else None
    
    def run_until(self, deadline: float) -> int:
        """
        Fire every timer due at or before ``deadline``, in time order.
        
        Returns:
            Number of callbacks executed
        """
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                break
            handle = heapq.heappop(self._heap)
            epoch = self._epoch
            
            try:
                handle.callback(handle.due)
            except Exception:
                logger.exception(f"Timer '{handle.name}' callback failed at {handle.due:.1f}")
            fired += 1
            
            # cancel_all() inside the callback drops everything, including this handle
            if handle.is_periodic and not handle.cancelled and epoch == self._epoch:
                handle.due += handle.interval
                heapq.heappush(self._heap, handle)
        return fired
    
    def run_due(self) -> int:
        """Fire every timer due at the current clock time."""
        return self.run_until(self.clock())
    
    async def drive(self, max_sleep_sec: float = 1.0):
        """
        Run the timer set against the clock until cancelled.
        
        Sleeps until the next due timer (capped at ``max_sleep_sec`` so
        timers added while sleeping are picked up).
        """
        while True:
            self.run_due()
            due = self.next_due()
            delay = max_sleep_sec if due is None else min(max_sleep_sec, due - self.clock())
            await asyncio.sleep(max(0.0, delay))
