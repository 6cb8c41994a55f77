"""Daily wall-clock scheduler for generation and verification jobs.

Responsibilities:
- Hold named jobs pinned to an hour and minute in the civic timezone.
- Sleep until the earliest trigger, run that job, then recompute every trigger.
- Log job failures and keep the loop alive.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from ..civic import CivicCalendar
from ..telemetry.logger import RunLogger

_STAGE = "scheduler"


@dataclass(frozen=True, slots=True)
class ScheduledJob:
    """A named daily job fired at `hour:minute` civic time."""

    name: str
    hour: int
    minute: int
    handler: Callable[[], object]

    def __post_init__(self) -> None:
        """Validate the wall-clock trigger."""

        if not 0 <= self.hour <= 23:
            raise ValueError(f"Job `{self.name}` hour must be in 0..23, got {self.hour}.")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Job `{self.name}` minute must be in 0..59, got {self.minute}.")


class DailyScheduler:
    """Run daily jobs sequentially on civic wall-clock time."""

    def __init__(
        self,
        calendar: CivicCalendar,
        jobs: Sequence[ScheduledJob],
        run_logger: RunLogger | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scheduler with its calendar, jobs, and sleep function."""

        names = [job.name for job in jobs]
        if len(set(names)) != len(names):
            raise ValueError("Scheduled job names must be unique.")
        self.calendar = calendar
        self.jobs = list(jobs)
        self.run_logger = run_logger
        self.sleeper = sleeper
        self._last_fired: dict[str, datetime] = {}

    def next_fire_times(self, now: datetime | None = None) -> dict[str, datetime]:
        """Return each job's next trigger strictly after `now` (or its last firing)."""

        reference = now or self.calendar.now()
        fire_times: dict[str, datetime] = {}
        for job in self.jobs:
            after = reference
            last = self._last_fired.get(job.name)
            if last is not None and last > after:
                after = last
            fire_times[job.name] = self.calendar.next_occurrence(job.hour, job.minute, after=after)
        return fire_times

    def run(self, max_firings: int | None = None) -> int:
        """Loop until `max_firings` jobs have fired, or forever when `None`.

        Returns:
            Number of jobs fired.
        """

        if max_firings is not None and max_firings < 0:
            raise ValueError("`max_firings` must be zero or positive.")
        if not self.jobs:
            return 0

        fired = 0
        if self.run_logger is not None:
            self.run_logger.log_stage_start(_STAGE, jobs=",".join(job.name for job in self.jobs))
        while max_firings is None or fired < max_firings:
            job, fire_at = self._earliest()
            if self.run_logger is not None:
                self.run_logger.log_item(_STAGE, "armed", job.name, fire_at=fire_at.isoformat())
            self.sleeper(self.calendar.seconds_until(fire_at))
            self._last_fired[job.name] = fire_at
            self._fire(job)
            fired += 1

        if self.run_logger is not None:
            self.run_logger.log_stage_complete(_STAGE, fired=fired)
        return fired

    def _earliest(self) -> tuple[ScheduledJob, datetime]:
        """Return the job with the soonest trigger; ties go to declaration order."""

        fire_times = self.next_fire_times()
        job = min(self.jobs, key=lambda candidate: fire_times[candidate.name])
        return job, fire_times[job.name]

    def _fire(self, job: ScheduledJob) -> None:
        """Run one job, logging instead of propagating its failures."""

        if self.run_logger is not None:
            self.run_logger.log_item(_STAGE, "fire", job.name)
        try:
            job.handler()
        except Exception as exc:
            if self.run_logger is not None:
                self.run_logger.log_stage_failure(_STAGE, f"{job.name}:{type(exc).__name__}")
            return
        if self.run_logger is not None:
            self.run_logger.log_item(_STAGE, "done", job.name)
