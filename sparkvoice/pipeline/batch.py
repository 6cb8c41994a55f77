"""Batch narration generators.

Responsibilities:
- Walk windowed, limited, bulk, and ranged sets of content items.
- Skip items without teaching or with existing artifacts unless forced.
- Synthesize and store the rest sequentially under a fixed throttle delay.

All entry points fold per-item failures into a `GenerationResult`; only
repository failures propagate to the caller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable

from ..civic import CivicCalendar
from ..errors import AudioStoreError
from ..io.repository import ContentRepository
from ..models.datatypes import ContentItem, GenerationAttempt, GenerationResult, RunContext
from ..telemetry.logger import RunLogger
from .narrator import ItemNarrator

_GENERATED = "generated"
_SKIPPED = "skipped"
_FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RegenerationPage:
    """One resumable slice of a full forced regeneration."""

    result: GenerationResult
    start: int
    end: int
    total_items: int

    @property
    def next_offset(self) -> int | None:
        """Return the offset to resume from, or `None` when all items are done."""

        if self.end < self.total_items:
            return self.end
        return None


class BatchGenerator:
    """Generate missing narration artifacts for sets of content items."""

    def __init__(
        self,
        repository: ContentRepository,
        narrator: ItemNarrator,
        calendar: CivicCalendar,
        run_logger: RunLogger | None = None,
        throttle_seconds: float = 1.0,
        bulk_cooldown_seconds: float = 10.0,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the generator with its collaborators and pacing settings."""

        self.repository = repository
        self.narrator = narrator
        self.calendar = calendar
        self.run_logger = run_logger
        self.throttle_seconds = throttle_seconds
        self.bulk_cooldown_seconds = bulk_cooldown_seconds
        self.sleeper = sleeper

    def generate_window(self, lead_days: int) -> GenerationResult:
        """Generate narration for items scheduled in `[today, today + lead_days]`."""

        stage = "generate-window"
        window = self.calendar.window(lead_days)
        result = self._start(stage, start=window.start.isoformat(), end=window.end.isoformat())
        if result.errors:
            return result

        items = self.repository.get_items_by_date_range(window.start, window.end)
        result.total = len(items)
        self._process_all(stage, items, result, force=False, context=RunContext())
        return self._finish(stage, result)

    def generate_limited(
        self,
        limit: int,
        force: bool = False,
        context: RunContext | None = None,
    ) -> GenerationResult:
        """Generate until `limit` successful generations, scanning all items in order.

        Skips and failures do not count against the limit. Under `force`, existing
        artifacts are regenerated once per `context`; pass the same context to a
        later call to keep already-regenerated items skipped.
        """

        if limit <= 0:
            raise ValueError("`limit` must be a positive integer.")
        stage = "generate-batch"
        result = self._start(stage, limit=limit, force=force)
        if result.errors:
            return result

        run_context = context if context is not None else RunContext()
        items = self.repository.get_all_items()
        result.total = len(items)
        for item in items:
            if result.generated >= limit:
                break
            self._process_item(stage, item, result, force=force, context=run_context)
        return self._finish(stage, result)

    def generate_bulk(self, batch_size: int, force: bool = False) -> GenerationResult:
        """Process every item, cooling down after each `batch_size` generations."""

        if batch_size <= 0:
            raise ValueError("`batch_size` must be a positive integer.")
        stage = "generate-bulk"
        result = self._start(stage, batch_size=batch_size, force=force)
        if result.errors:
            return result

        items = self.repository.get_all_items()
        result.total = len(items)
        context = RunContext()
        for index, item in enumerate(items):
            outcome = self._process_item(stage, item, result, force=force, context=context)
            is_last = index == len(items) - 1
            if outcome == _GENERATED and result.generated % batch_size == 0 and not is_last:
                self._log_item(stage, "cooldown", item, seconds=self.bulk_cooldown_seconds)
                self.sleeper(self.bulk_cooldown_seconds)
        return self._finish(stage, result)

    def regenerate_range(self, start: int, count: int) -> RegenerationPage:
        """Force-regenerate the slice `[start, start + count)` of all items."""

        if start < 0:
            raise ValueError("`start` must be zero or positive.")
        if count <= 0:
            raise ValueError("`count` must be a positive integer.")
        stage = "regenerate-range"
        result = self._start(stage, start=start, count=count)
        if result.errors:
            return RegenerationPage(result=result, start=start, end=start, total_items=0)

        items = self.repository.get_all_items()
        end = min(start + count, len(items))
        page_items = items[start:end]
        result.total = len(page_items)
        self._process_all(stage, page_items, result, force=True, context=RunContext())
        self._finish(stage, result)
        return RegenerationPage(
            result=result,
            start=start,
            end=max(end, start),
            total_items=len(items),
        )

    def _process_all(
        self,
        stage: str,
        items: Iterable[ContentItem],
        result: GenerationResult,
        *,
        force: bool,
        context: RunContext,
    ) -> None:
        """Process a sequence of items with the shared decision logic."""

        for item in items:
            self._process_item(stage, item, result, force=force, context=context)

    def _process_item(
        self,
        stage: str,
        item: ContentItem,
        result: GenerationResult,
        *,
        force: bool,
        context: RunContext,
    ) -> str:
        """Apply the shared skip/generate decision to one item and return its outcome."""

        if not item.has_teaching:
            result.skipped += 1
            self._log_item(stage, "skipped", item, reason="no_teaching")
            return _SKIPPED

        try:
            exists = self.narrator.artifact_exists(item)
        except AudioStoreError as exc:
            result.failed += 1
            result.errors.append(f"{item.key}: {exc}")
            self._log_failure(stage, item, "storage")
            self.sleeper(self.throttle_seconds)
            return _FAILED

        if exists and (not force or context.was_regenerated(item.key)):
            result.skipped += 1
            self._log_item(stage, "skipped", item, reason="exists")
            return _SKIPPED

        error = self.narrator.narrate(item)
        result.attempts.append(
            GenerationAttempt(item_key=item.key, attempt=1, ok=error is None, error=error)
        )
        if error is None:
            result.generated += 1
            result.generated_ids.append(item.key)
            if force:
                context.mark_regenerated(item.key)
            self._log_item(stage, "generated", item)
            outcome = _GENERATED
        else:
            result.failed += 1
            result.errors.append(f"{item.key}: {error}")
            self._log_failure(stage, item, "synthesis")
            outcome = _FAILED

        self.sleeper(self.throttle_seconds)
        return outcome

    def _start(self, stage: str, **context: object) -> GenerationResult:
        """Log a run start and return an empty result, pre-filled on configuration errors."""

        result = GenerationResult()
        if self.run_logger is not None:
            self.run_logger.log_stage_start(stage, **context)
        config_error = self.narrator.configuration_error()
        if config_error is not None:
            result.errors.append(config_error)
            if self.run_logger is not None:
                self.run_logger.log_configuration_warning(stage, config_error)
        return result

    def _finish(self, stage: str, result: GenerationResult) -> GenerationResult:
        """Log aggregate counters for a completed run."""

        if self.run_logger is not None:
            self.run_logger.log_stage_complete(
                stage,
                total=result.total,
                generated=result.generated,
                skipped=result.skipped,
                failed=result.failed,
            )
        return result

    def _log_item(self, stage: str, event: str, item: ContentItem, **context: object) -> None:
        """Emit a per-item info event when a logger is attached."""

        if self.run_logger is not None:
            self.run_logger.log_item(stage, event, item.key, **context)

    def _log_failure(self, stage: str, item: ContentItem, error_type: str) -> None:
        """Emit a per-item failure event when a logger is attached."""

        if self.run_logger is not None:
            self.run_logger.log_item_failure(stage, item.key, error_type)
