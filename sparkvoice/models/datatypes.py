"""Core datatypes shared across Sparkvoice modules.

Responsibilities:
- Represent read-only content records handed over by the content repository.
- Represent in-memory run bookkeeping for generation and verification passes.

Key types:
- `ContentItem`, `GenerationAttempt`, `RunContext`, `GenerationResult`,
  `FailedRepair`, and `VerificationReport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

SPARK_KIND = "spark"
PLAN_KIND = "plan"
CONTENT_KINDS = frozenset({SPARK_KIND, PLAN_KIND})


@dataclass(frozen=True, slots=True)
class ContentItem:
    """One day's devotional or reading-plan content.

    Attributes:
        kind: Content kind, `spark` or `plan`.
        item_id: Spark id, or the parent plan id for reading-plan days.
        title: Human-readable title.
        teaching: Main teaching body; required for narration.
        scripture_ref: Optional scripture reference, e.g. `Matthew 6:6`.
        scripture_text: Optional full scripture passage.
        reflection_question: Optional reflection prompt.
        today_action: Optional action step for the day.
        prayer_line: Optional closing prayer.
        cta_primary: Optional call to action (`Pray`, `Give`, `Go`).
        week_theme: Optional week/series theme.
        scheduled_date: Civic calendar date the item goes live.
        day_number: 1-based day index for reading-plan days.
    """

    kind: str
    item_id: int
    title: str
    teaching: str | None = None
    scripture_ref: str | None = None
    scripture_text: str | None = None
    reflection_question: str | None = None
    today_action: str | None = None
    prayer_line: str | None = None
    cta_primary: str | None = None
    week_theme: str | None = None
    scheduled_date: date | None = None
    day_number: int | None = None

    @property
    def key(self) -> str:
        """Return the stable identifier used in results and dedup tracking."""

        if self.day_number is not None:
            return f"{self.kind}-{self.item_id}-day-{self.day_number}"
        return f"{self.kind}-{self.item_id}"

    @property
    def has_teaching(self) -> bool:
        """Return whether the item carries a non-blank teaching body."""

        return bool(self.teaching and self.teaching.strip())


@dataclass(frozen=True, slots=True)
class GenerationAttempt:
    """Outcome of one synthesis call within a run."""

    item_key: str
    attempt: int
    ok: bool
    error: str | None = None


@dataclass(slots=True)
class RunContext:
    """Caller-scoped record of items already force-regenerated in a session."""

    regenerated: set[str] = field(default_factory=set)

    def was_regenerated(self, item_key: str) -> bool:
        """Return whether the item was already regenerated in this context."""

        return item_key in self.regenerated

    def mark_regenerated(self, item_key: str) -> None:
        """Record a forced regeneration for the item."""

        self.regenerated.add(item_key)


@dataclass(slots=True)
class GenerationResult:
    """Aggregate outcome of one batch-generation pass.

    Attributes:
        total: Number of items considered by the pass.
        generated: Successful synthesize-and-store count.
        skipped: Items that needed no work.
        failed: Items whose synthesis or upload failed.
        generated_ids: Keys of generated items, in processing order.
        errors: Human-readable error lines.
        attempts: Per-call attempt records.
    """

    total: int = 0
    generated: int = 0
    skipped: int = 0
    failed: int = 0
    generated_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    attempts: list[GenerationAttempt] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FailedRepair:
    """An imminent item that is still missing narration after all retries."""

    item_key: str
    title: str
    scheduled_date: date | None
    error: str


@dataclass(slots=True)
class VerificationReport:
    """Aggregate outcome of one verify-and-repair pass."""

    checked: int = 0
    ready: int = 0
    missing: int = 0
    repaired: int = 0
    skipped: int = 0
    failed_repairs: list[FailedRepair] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    attempts: list[GenerationAttempt] = field(default_factory=list)

    @property
    def needs_attention(self) -> bool:
        """Return whether manual follow-up is required."""

        return bool(self.failed_repairs)
