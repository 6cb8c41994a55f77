"""Shared typed data models for Sparkvoice.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    CONTENT_KINDS,
    PLAN_KIND,
    SPARK_KIND,
    ContentItem,
    FailedRepair,
    GenerationAttempt,
    GenerationResult,
    RunContext,
    VerificationReport,
)

__all__ = [
    "CONTENT_KINDS",
    "PLAN_KIND",
    "SPARK_KIND",
    "ContentItem",
    "FailedRepair",
    "GenerationAttempt",
    "GenerationResult",
    "RunContext",
    "VerificationReport",
]
