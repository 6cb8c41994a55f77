"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic single-line events for pipeline runs.
- Route all events through `loguru` with an injectable sink and level.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic phase logs for generation, verification, and scheduling."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._sink = sink or sys.stdout
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        """Emit a stage-start runtime event."""

        self._emit("INFO", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        """Emit a stage-complete runtime event with aggregate counters."""

        self._emit("INFO", "complete", stage, **context)

    def log_item(self, stage: str, event: str, item: str, **context: object) -> None:
        """Emit an informational per-item event such as `generated` or `skipped`."""

        self._emit("INFO", event, stage, item=item, **context)

    def log_item_failure(self, stage: str, item: str, error_type: str, **context: object) -> None:
        """Emit a per-item failure without provider payload details."""

        self._emit("ERROR", "item_failure", stage, item=item, error_type=error_type, **context)

    def log_configuration_warning(self, stage: str, reason: str) -> None:
        """Emit a warning when storage or synthesis credentials are missing."""

        self._emit("WARNING", "not_configured", stage, reason=reason)

    def log_critical(self, stage: str, event: str, **context: object) -> None:
        """Emit a critical event that requires on-call follow-up."""

        self._emit("CRITICAL", event, stage, **context)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)
