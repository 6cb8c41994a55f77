"""Unit tests for the civic wall-clock daily scheduler."""

from __future__ import annotations

import io
from datetime import datetime, timezone

import pytest

from sparkvoice.civic import CivicCalendar
from sparkvoice.pipeline.scheduler import DailyScheduler, ScheduledJob
from sparkvoice.telemetry.logger import RunLogger


def _recording_job(name: str, hour: int, minute: int, fired: list[tuple[str, datetime]], clock):  # type: ignore[no-untyped-def]
    """Build a job that records its name and the clock reading when it runs."""

    return ScheduledJob(
        name=name,
        hour=hour,
        minute=minute,
        handler=lambda: fired.append((name, clock())),
    )


def test_jobs_fire_in_wall_clock_order(clock, sleeper) -> None:  # type: ignore[no-untyped-def]
    """The earliest trigger should fire first and every trigger is recomputed after a run."""

    fired: list[tuple[str, datetime]] = []
    scheduler = DailyScheduler(
        calendar=CivicCalendar("Europe/London", clock=clock),
        jobs=[
            _recording_job("pregenerate", 23, 30, fired, clock),
            _recording_job("verify", 18, 0, fired, clock),
        ],
        sleeper=sleeper,
    )

    count = scheduler.run(max_firings=3)

    assert count == 3
    assert [name for name, _ in fired] == ["verify", "pregenerate", "verify"]
    assert fired[0][1] == datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
    assert fired[2][1] == datetime(2026, 3, 11, 18, 0, tzinfo=timezone.utc)
    assert sleeper.calls == [21600.0, 19800.0, 66600.0]


def test_daily_trigger_tracks_local_time_across_dst(sleeper, clock) -> None:  # type: ignore[no-untyped-def]
    """A 23:30 job should fire 23 hours apart across the spring-forward night."""

    clock.now = datetime(2026, 3, 28, 12, 0, tzinfo=timezone.utc)
    fired: list[tuple[str, datetime]] = []
    scheduler = DailyScheduler(
        calendar=CivicCalendar("Europe/London", clock=clock),
        jobs=[_recording_job("pregenerate", 23, 30, fired, clock)],
        sleeper=sleeper,
    )

    scheduler.run(max_firings=2)

    assert [moment for _, moment in fired] == [
        datetime(2026, 3, 28, 23, 30, tzinfo=timezone.utc),
        datetime(2026, 3, 29, 22, 30, tzinfo=timezone.utc),
    ]
    assert sleeper.calls[1] == 23 * 3600.0


def test_failing_job_is_logged_and_loop_continues(clock, sleeper) -> None:  # type: ignore[no-untyped-def]
    """A job exception should be logged without stopping later firings."""

    sink = io.StringIO()
    fired: list[tuple[str, datetime]] = []

    def _explode() -> None:
        raise RuntimeError("database unavailable")

    scheduler = DailyScheduler(
        calendar=CivicCalendar("Europe/London", clock=clock),
        jobs=[
            ScheduledJob(name="verify", hour=18, minute=0, handler=_explode),
            _recording_job("pregenerate", 23, 30, fired, clock),
        ],
        run_logger=RunLogger(sink=sink),
        sleeper=sleeper,
    )

    count = scheduler.run(max_firings=2)

    assert count == 2
    assert [name for name, _ in fired] == ["pregenerate"]
    assert "stage=scheduler event=failure error_type=verify:RuntimeError" in sink.getvalue()


def test_lagging_clock_does_not_refire_same_trigger(clock) -> None:  # type: ignore[no-untyped-def]
    """A sleep that returns early should not fire the same trigger twice."""

    fired: list[tuple[str, datetime]] = []
    scheduler = DailyScheduler(
        calendar=CivicCalendar("Europe/London", clock=clock),
        jobs=[
            _recording_job("verify", 18, 0, fired, clock),
            _recording_job("pregenerate", 23, 30, fired, clock),
        ],
        sleeper=lambda seconds: None,
    )

    scheduler.run(max_firings=3)

    assert [name for name, _ in fired] == ["verify", "pregenerate", "verify"]


def test_next_fire_times_report_each_job(clock) -> None:  # type: ignore[no-untyped-def]
    scheduler = DailyScheduler(
        calendar=CivicCalendar("Europe/London", clock=clock),
        jobs=[
            ScheduledJob(name="verify", hour=18, minute=0, handler=lambda: None),
            ScheduledJob(name="pregenerate", hour=23, minute=30, handler=lambda: None),
        ],
    )

    fire_times = scheduler.next_fire_times()

    assert fire_times["verify"].astimezone(timezone.utc) == datetime(
        2026, 3, 10, 18, 0, tzinfo=timezone.utc
    )
    assert fire_times["pregenerate"].astimezone(timezone.utc) == datetime(
        2026, 3, 10, 23, 30, tzinfo=timezone.utc
    )


def test_job_and_scheduler_validation() -> None:
    """Invalid clock values and duplicate names should be rejected."""

    with pytest.raises(ValueError, match="hour"):
        ScheduledJob(name="bad", hour=24, minute=0, handler=lambda: None)
    with pytest.raises(ValueError, match="minute"):
        ScheduledJob(name="bad", hour=1, minute=60, handler=lambda: None)
    job = ScheduledJob(name="verify", hour=18, minute=0, handler=lambda: None)
    with pytest.raises(ValueError, match="unique"):
        DailyScheduler(calendar=CivicCalendar(), jobs=[job, job])
