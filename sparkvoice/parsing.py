"""Shared parsing helpers for runtime and configuration value normalization."""

from __future__ import annotations

import re


_CLOCK_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_clock_time(value: str, field_name: str) -> tuple[int, int]:
    """Parse an `HH:MM` wall-clock value into an `(hour, minute)` pair.

    Args:
        value: Text value such as `23:30` or `6:05`.
        field_name: Field name for an actionable validation error message.

    Raises:
        ValueError: If the value is not a valid 24-hour clock time.
    """

    normalized = normalize_optional_string(value) or ""
    match = _CLOCK_TIME_PATTERN.match(normalized)
    if match is None:
        raise ValueError(f"`{field_name}` must be a 24-hour `HH:MM` time, got `{value}`.")
    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"`{field_name}` must be a 24-hour `HH:MM` time, got `{value}`.")
    return hour, minute
