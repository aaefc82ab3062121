"""
End-to-End Demo Script for the Smart Sleep Monitor

This script walks through one simulated night:
1. Configuration
2. Phase classification & quality scoring
3. Alarm sound synthesis
4. Monitored night with a smart alarm
5. Stale session recovery
6. Sleep statistics

Everything runs on a manual clock, so a full night takes a few seconds.
Pass a directory as the first argument to also write the alarm audio
there as WAV files.
"""

import asyncio
import logging
import os
import sys
import tempfile
from datetime import datetime

# Add src to path
script_dir = os.path.dirname(os.path.abspath(__file__))
src_dir = os.path.join(script_dir, 'src')
sys.path.insert(0, src_dir)


def print_section(title: str):
    """Print a section header."""
    print("\n" + "=" * 60)
    print(f" {title}")
    print("=" * 60)


def _local(hour: int, minute: int = 0, day_offset: int = 0) -> float:
    today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    return today.replace(hour=hour, minute=minute).timestamp() + day_offset * 86400


def demo_configuration():
    """Demo: Monitor configuration."""
    print_section("1. CONFIGURATION")

    try:
        from config import get_default_config

        config = get_default_config()
        config.validate()

        print(f"Sampling interval: {config.sampling.interval_sec:.0f}s")
        print(f"Awake above movement {config.phases.awake_movement} / sound {config.phases.awake_sound}")
        print(f"Deep below movement {config.phases.deep_movement} / sound {config.phases.deep_sound}")
        print(f"Light-sleep band for smart alarm: {config.alarm.light_sleep_band}")
        print(f"Stale sessions finalized after {config.sampling.stale_after_hours}h")

        print("✅ Configuration working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_analysis():
    """Demo: Phase classification and quality scoring."""
    print_section("2. PHASE CLASSIFICATION & QUALITY SCORING")

    try:
        from analysis import classify_phases, score_samples
        from session import SleepSample

        levels = [(10, 10)] * 4 + [(35, 20)] * 3 + [(80, 70)] * 2 + [(5, 5)] * 3
        samples = [
            SleepSample(timestamp=i * 30.0, movement=m, sound_level=s)
            for i, (m, s) in enumerate(levels)
        ]

        partition = classify_phases(samples)
        for phase in partition.timeline:
            print(f"  {phase.phase_type.value:>5}: {phase.start:5.0f}s - {phase.end:5.0f}s")
        print(f"Minutes by type: {partition.minutes_by_type()}")

        quality = score_samples(samples)
        print(f"Quality: {quality.score} ({quality.label.value}), "
              f"{quality.movement_events} movement events")

        print("✅ Analysis working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_alarm_sounds(output_dir: str):
    """Demo: Alarm sound synthesis."""
    print_section("3. ALARM SOUND SYNTHESIS")

    try:
        from session import ALARM_SOUNDS
        from synthesis import AlarmSynthesizer, WavFileBackend

        synthesizer = AlarmSynthesizer(WavFileBackend(output_dir, prefix="preview"), seed=42)
        for info in ALARM_SOUNDS.values():
            pattern = synthesizer.generate(info.sound, synthesizer.config.preview_ms)
            synthesizer.preview(info.sound)
            print(f"  {info.name:<14} {pattern.note_count:3d} notes  {info.description}")
        synthesizer.stop()

        print(f"Previews written to {output_dir}")
        print("✅ Alarm synthesis working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_monitored_night():
    """Demo: Full session with a smart alarm."""
    print_section("4. MONITORED NIGHT WITH SMART ALARM")

    try:
        from alarm import LoggingNotifier
        from monitor import SessionLifecycleManager
        from sensing import SimulatedSignalSource
        from session import InMemorySessionStore, ManualClock
        from synthesis import AlarmSynthesizer, InMemoryAudioBackend

        clock = ManualClock(_local(23, 0))
        # ~7h of calm sleep, then restless light sleep near morning
        movement = [8.0] * 840 + [32.0] * 60
        sound = [6.0] * 900
        source = SimulatedSignalSource(movement=movement, sound=sound, seed=1)

        manager = SessionLifecycleManager(
            store=InMemorySessionStore(),
            source=source,
            synthesizer=AlarmSynthesizer(InMemoryAudioBackend(clock=clock), seed=1),
            notifier=LoggingNotifier(),
            clock=clock,
        )
        manager.update_alarm_settings(enabled=True, target_time="07:00", window_minutes=30, sound="birds")

        session_id = asyncio.run(manager.start())
        print(f"Started {session_id}, alarm {manager.alarm_state.value}")

        end = _local(7, 10, day_offset=1)
        manager.timers.run_until(end)
        clock.set(end)

        scheduler = manager.scheduler
        fired = datetime.fromtimestamp(scheduler.fired_at).strftime('%H:%M:%S')
        print(f"Alarm fired at {fired} ({scheduler.fire_reason})")
        manager.dismiss_alarm()

        session = manager.stop()
        print(f"Duration: {session.duration_minutes} min, score {session.quality_score} "
              f"({session.quality.value})")
        print(f"Phases: {len(session.light_phases)} light, {len(session.deep_phases)} deep, "
              f"{len(session.awake_phases)} awake")

        assert session.alarm_triggered
        assert manager.timers.pending == []
        manager.shutdown()

        print("✅ Monitored night working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_stale_recovery():
    """Demo: Recovery of a session left active by a dead process."""
    print_section("5. STALE SESSION RECOVERY")

    try:
        from alarm import LoggingNotifier
        from monitor import SessionLifecycleManager
        from sensing import SimulatedSignalSource
        from session import InMemorySessionStore, ManualClock, SleepSession
        from synthesis import AlarmSynthesizer, InMemoryAudioBackend

        now = _local(12, 0)
        store = InMemorySessionStore()
        store.save_session(SleepSession(
            session_id="sleep_orphan",
            date=datetime.fromtimestamp(now - 30 * 3600).date().isoformat(),
            start_time=now - 30 * 3600,
        ))

        manager = SessionLifecycleManager(
            store=store,
            source=SimulatedSignalSource(seed=0),
            synthesizer=AlarmSynthesizer(InMemoryAudioBackend()),
            notifier=LoggingNotifier(),
            clock=ManualClock(now),
        )
        recovered = manager.recover_stale()
        print(f"Recovered {recovered.session_id}: {recovered.duration_minutes} min, "
              f"score {recovered.quality_score}, {len(recovered.phases)} phases")

        print("✅ Stale recovery working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def demo_statistics():
    """Demo: Aggregate statistics over finalized sessions."""
    print_section("6. SLEEP STATISTICS")

    try:
        from analysis import summarize_sessions
        from session import QualityLabel, SleepSession

        sessions = []
        for day, (minutes, score) in enumerate([(420, 72), (380, 58), (465, 84), (300, 41)]):
            start = _local(23, 0, day_offset=-(day + 1))
            sessions.append(SleepSession(
                session_id=f"sleep_{day}",
                date=datetime.fromtimestamp(start).date().isoformat(),
                start_time=start,
                end_time=start + minutes * 60,
                duration_minutes=minutes,
                quality=QualityLabel.GOOD,
                quality_score=score,
            ))

        stats = summarize_sessions(sessions)
        print(f"Sessions: {stats.total_sessions}")
        print(f"Average duration: {stats.average_duration} min")
        print(f"Average quality: {stats.average_quality}")
        print(f"Best: {stats.best_sleep.session_id}, worst: {stats.worst_sleep.session_id}")
        print(f"Last 7 days: {[s.session_id for s in stats.last_7_days]}")

        print("✅ Statistics working")
        return True

    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def run_all_demos(output_dir: str):
    """Run all demos and report results."""
    print("\n" + "=" * 70)
    print(" SMART SLEEP MONITOR - END-TO-END DEMO")
    print("=" * 70)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    demos = [
        ("Configuration", demo_configuration),
        ("Analysis", demo_analysis),
        ("Alarm Sounds", lambda: demo_alarm_sounds(output_dir)),
        ("Monitored Night", demo_monitored_night),
        ("Stale Recovery", demo_stale_recovery),
        ("Statistics", demo_statistics),
    ]

    results = []
    for name, demo_fn in demos:
        try:
            success = demo_fn()
            results.append((name, success))
        except Exception as e:
            print(f"❌ {name} FAILED: {e}")
            results.append((name, False))

    # Summary
    print_section("DEMO SUMMARY")

    passed = sum(1 for _, success in results if success)
    total = len(results)

    print(f"\nResults: {passed}/{total} demos passed\n")

    for name, success in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"  {status}: {name}")

    print("\n" + "=" * 70)
    if passed == total:
        print(" ALL DEMOS PASSED")
    else:
        print(f" {total - passed} demo(s) failed - check implementation")
    print("=" * 70)

    return passed == total


if __name__ == '__main__':
    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')
    if len(sys.argv) > 1:
        success = run_all_demos(sys.argv[1])
    else:
        with tempfile.TemporaryDirectory() as tmp:
            success = run_all_demos(tmp)
    sys.exit(0 if success else 1)
