"""Civic-timezone calendar helpers shared by generation, verification, and scheduling.

Responsibilities:
- Resolve "today" in a fixed civic timezone rather than the process local time.
- Derive inclusive date windows for look-ahead generation and verification.
- Compute the next wall-clock trigger for a daily job across DST changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Europe/London"
VERIFICATION_WINDOW_DAYS = 1


def _utc_now() -> datetime:
    """Return the current aware UTC time."""

    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class DateWindow:
    """Inclusive range of civic calendar dates."""

    start: date
    end: date

    def __contains__(self, value: object) -> bool:
        """Return whether a date falls inside the window."""

        if not isinstance(value, date):
            return False
        return self.start <= value <= self.end


class CivicCalendar:
    """Calendar arithmetic pinned to one civic timezone."""

    def __init__(
        self,
        timezone_name: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the calendar with a zone name and an aware-UTC clock."""

        self.timezone_name = timezone_name
        self.zone = ZoneInfo(timezone_name)
        self._clock = clock

    def now(self) -> datetime:
        """Return the current civic wall-clock time."""

        return self._clock().astimezone(self.zone)

    def today(self) -> date:
        """Return the current civic calendar date."""

        return self.now().date()

    def window(self, days_ahead: int) -> DateWindow:
        """Return the inclusive window `[today, today + days_ahead]`."""

        if days_ahead < 0:
            raise ValueError("`days_ahead` must be zero or positive.")
        today = self.today()
        return DateWindow(start=today, end=today + timedelta(days=days_ahead))

    def verification_window(self) -> DateWindow:
        """Return the near-term safety window covering today and tomorrow."""

        return self.window(VERIFICATION_WINDOW_DAYS)

    def next_occurrence(self, hour: int, minute: int, after: datetime | None = None) -> datetime:
        """Return the next civic occurrence of `hour:minute` strictly after `after`.

        The result is an aware datetime in the civic zone. Wall-clock times are
        rebuilt per calendar date, so a trigger stays at the same local time on
        both sides of a DST transition.
        """

        reference = (after or self._clock()).astimezone(timezone.utc)
        candidate_date = reference.astimezone(self.zone).date()
        while True:
            candidate = self._localize(candidate_date, hour, minute)
            if candidate.astimezone(timezone.utc) > reference:
                return candidate
            candidate_date += timedelta(days=1)

    def seconds_until(self, moment: datetime, now: datetime | None = None) -> float:
        """Return the non-negative delay in seconds from `now` until `moment`."""

        reference = (now or self._clock()).astimezone(timezone.utc)
        delta = moment.astimezone(timezone.utc) - reference
        return max(0.0, delta.total_seconds())

    def _localize(self, day: date, hour: int, minute: int) -> datetime:
        """Build an aware civic datetime, normalizing times skipped by DST."""

        naive = datetime.combine(day, time(hour, minute))
        local = naive.replace(tzinfo=self.zone)
        # Round-trip through UTC so a nonexistent spring-forward time lands on a real instant.
        return local.astimezone(timezone.utc).astimezone(self.zone)
