"""
Unit tests for the cooperative timer set.
"""

import asyncio

import pytest

from session.timers import CooperativeTimers, ManualClock


class TestCooperativeTimers:
    """Tests for scheduling, ordering and cancellation."""
    
    def test_one_shot_fires_once(self):
        clock = ManualClock(100.0)
        timers = CooperativeTimers(clock)
        fired = []
        timers.call_later(10.0, fired.append)
        
        assert timers.run_until(105.0) == 0
        assert timers.run_until(200.0) == 1
        assert fired == [110.0]
        assert timers.run_until(300.0) == 0
    
    def test_periodic_replays_missed_ticks(self):
        """A long run fires every tick with its scheduled instant."""
        clock = ManualClock(0.0)
        timers = CooperativeTimers(clock)
        ticks = []
        timers.call_every(30.0, ticks.append)
        
        timers.run_until(120.0)
        assert ticks == [30.0, 60.0, 90.0, 120.0]
    
    def test_time_order_across_timers(self):
        clock = ManualClock(0.0)
        timers = CooperativeTimers(clock)
        order = []
        timers.call_every(20.0, lambda now: order.append(("a", now)))
        timers.call_at(30.0, lambda now: order.append(("b", now)))
        timers.run_until(40.0)
        assert order == [("a", 20.0), ("b", 30.0), ("a", 40.0)]
    
    def test_same_instant_fires_in_scheduling_order(self):
        timers = CooperativeTimers(ManualClock(0.0))
        order = []
        timers.call_at(10.0, lambda now: order.append("first"))
        timers.call_at(10.0, lambda now: order.append("second"))
        timers.run_until(10.0)
        assert order == ["first", "second"]
    
    def test_cancel(self):
        timers = CooperativeTimers(ManualClock(0.0))
        fired = []
        handle = timers.call_every(5.0, fired.append)
        timers.run_until(10.0)
        timers.cancel(handle)
        timers.cancel(handle)
        timers.run_until(100.0)
        assert fired == [5.0, 10.0]
        assert timers.next_due() is None
    
    def test_callback_can_cancel_itself(self):
        timers = CooperativeTimers(ManualClock(0.0))
        fired = []
        
        def tick(now):
            fired.append(now)
            if len(fired) == 2:
                timers.cancel(handle)
        
        handle = timers.call_every(1.0, tick)
        timers.run_until(10.0)
        assert fired == [1.0, 2.0]
    
    def test_cancel_all_from_callback(self):
        """cancel_all inside a callback also stops the running periodic timer."""
        timers = CooperativeTimers(ManualClock(0.0))
        fired = []
        timers.call_every(1.0, fired.append)
        timers.call_at(2.5, lambda now: timers.cancel_all())
        timers.run_until(10.0)
        assert fired == [1.0, 2.0]
        assert timers.pending == []
    
    def test_negative_delay_fires_immediately(self):
        clock = ManualClock(50.0)
        timers = CooperativeTimers(clock)
        fired = []
        timers.call_later(-20.0, fired.append)
        assert timers.run_due() == 1
        assert fired == [50.0]
    
    def test_invalid_interval(self):
        timers = CooperativeTimers(ManualClock(0.0))
        with pytest.raises(ValueError):
            timers.call_every(0.0, lambda now: None)
    
    def test_drive_runs_due_timers(self):
        """The async driver fires timers against the real clock."""
        fired = []
        
        async def scenario():
            timers = CooperativeTimers()
            timers.call_later(0.0, fired.append)
            task = asyncio.ensure_future(timers.drive(max_sleep_sec=0.01))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        
        asyncio.run(scenario())
        assert len(fired) == 1


class TestFailingCallbacks:
    """A raising callback is logged and does not break the timer set."""
    
    def test_periodic_timer_rearmed_after_error(self):
        timers = CooperativeTimers(ManualClock(0.0))
        calls = []
        
        def flaky(now):
            calls.append(now)
            if len(calls) == 1:
                raise ValueError("bad reading")
        
        handle = timers.call_every(30.0, flaky, name="sampling")
        assert timers.run_until(30.0) == 1
        assert timers.pending == [handle]
        
        timers.run_until(90.0)
        assert calls == [30.0, 60.0, 90.0]
    
    def test_other_timers_still_fire(self):
        timers = CooperativeTimers(ManualClock(0.0))
        fired = []
        
        def broken(now):
            raise RuntimeError("boom")
        
        timers.call_every(10.0, broken)
        timers.call_at(25.0, fired.append, name="deadline")
        timers.run_until(30.0)
        assert fired == [25.0]
    
    def test_error_is_logged(self, caplog):
        timers = CooperativeTimers(ManualClock(0.0))
        
        def broken(now):
            raise RuntimeError("boom")
        
        timers.call_at(5.0, broken, name="alarm_check")
        with caplog.at_level("ERROR", logger="session.timers"):
            timers.run_until(5.0)
        assert "alarm_check" in caplog.text
        assert "boom" in caplog.text
    
    def test_drive_survives_raising_callback(self):
        fired = []
        
        def broken(now):
            raise RuntimeError("boom")
        
        async def scenario():
            timers = CooperativeTimers()
            timers.call_later(0.0, broken)
            timers.call_later(0.02, fired.append)
            task = asyncio.ensure_future(timers.drive(max_sleep_sec=0.01))
            await asyncio.sleep(0.1)
            assert not task.done()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        
        asyncio.run(scenario())
        assert len(fired) == 1
