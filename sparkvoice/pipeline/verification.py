"""Verify-and-repair pass for imminent content.

Responsibilities:
- Check only items scheduled for civic today and tomorrow.
- Retry missing narration with exponential backoff between attempts.
- Report items still missing after all retries as critical failures.
"""

from __future__ import annotations

import time
from typing import Callable

from ..civic import CivicCalendar
from ..errors import AudioStoreError
from ..io.repository import ContentRepository
from ..models.datatypes import ContentItem, FailedRepair, GenerationAttempt, VerificationReport
from ..telemetry.logger import RunLogger
from .narrator import ItemNarrator

_STAGE = "verify"


def backoff_delays(max_retries: int, base_seconds: float) -> list[float]:
    """Return waits between consecutive attempts: `base`, `2*base`, `4*base`, ...

    The list has `max_retries - 1` entries because nothing follows the final attempt.
    """

    return [base_seconds * (2**index) for index in range(max(0, max_retries - 1))]


class AudioVerifier:
    """Ensure imminent content has narration, repairing gaps in place."""

    def __init__(
        self,
        repository: ContentRepository,
        narrator: ItemNarrator,
        calendar: CivicCalendar,
        run_logger: RunLogger | None = None,
        backoff_base_seconds: float = 2.0,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the verifier with its collaborators and backoff base."""

        self.repository = repository
        self.narrator = narrator
        self.calendar = calendar
        self.run_logger = run_logger
        self.backoff_base_seconds = backoff_base_seconds
        self.sleeper = sleeper

    def verify_and_repair(self, max_retries: int = 3) -> VerificationReport:
        """Check the verification window and repair missing artifacts."""

        if max_retries <= 0:
            raise ValueError("`max_retries` must be a positive integer.")

        report = VerificationReport()
        window = self.calendar.verification_window()
        if self.run_logger is not None:
            self.run_logger.log_stage_start(
                _STAGE,
                start=window.start.isoformat(),
                end=window.end.isoformat(),
                max_retries=max_retries,
            )

        config_error = self.narrator.configuration_error()
        if config_error is not None:
            report.errors.append(config_error)
            if self.run_logger is not None:
                self.run_logger.log_configuration_warning(_STAGE, config_error)
            return report

        items = self.repository.get_items_by_date_range(window.start, window.end)
        for item in items:
            if not item.has_teaching:
                report.skipped += 1
                self._log_item("skipped", item, reason="no_teaching")
                continue

            report.checked += 1
            if self._is_ready(item):
                report.ready += 1
                self._log_item("ready", item)
                continue

            report.missing += 1
            self._log_item("missing", item)
            self._repair(item, report, max_retries)

        if self.run_logger is not None:
            self.run_logger.log_stage_complete(
                _STAGE,
                checked=report.checked,
                ready=report.ready,
                missing=report.missing,
                repaired=report.repaired,
                failed_repairs=len(report.failed_repairs),
            )
        return report

    def _is_ready(self, item: ContentItem) -> bool:
        """Return whether the artifact exists, treating lookup errors as missing."""

        try:
            return self.narrator.artifact_exists(item)
        except AudioStoreError:
            if self.run_logger is not None:
                self.run_logger.log_item_failure(_STAGE, item.key, "storage", phase="exists")
            return False

    def _repair(self, item: ContentItem, report: VerificationReport, max_retries: int) -> None:
        """Run the bounded retry loop for one missing item."""

        delays = backoff_delays(max_retries, self.backoff_base_seconds)
        last_error = "unknown error"
        for attempt in range(1, max_retries + 1):
            error = self.narrator.narrate(item)
            report.attempts.append(
                GenerationAttempt(item_key=item.key, attempt=attempt, ok=error is None, error=error)
            )
            if error is None:
                report.repaired += 1
                self._log_item("repaired", item, attempt=attempt)
                return

            last_error = error
            if self.run_logger is not None:
                self.run_logger.log_item_failure(_STAGE, item.key, "repair", attempt=attempt)
            if attempt < max_retries:
                self.sleeper(delays[attempt - 1])

        failure = FailedRepair(
            item_key=item.key,
            title=item.title,
            scheduled_date=item.scheduled_date,
            error=last_error,
        )
        report.failed_repairs.append(failure)
        report.errors.append(f"{item.key}: {last_error}")
        if self.run_logger is not None:
            self.run_logger.log_critical(
                _STAGE,
                "repair_exhausted",
                item=item.key,
                title=item.title,
                scheduled_date=item.scheduled_date.isoformat() if item.scheduled_date else "none",
                attempts=max_retries,
            )

    def _log_item(self, event: str, item: ContentItem, **context: object) -> None:
        """Emit a per-item info event when a logger is attached."""

        if self.run_logger is not None:
            self.run_logger.log_item(_STAGE, event, item.key, **context)
