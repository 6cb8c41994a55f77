"""Domain exceptions for pipeline and CLI diagnostics."""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class AudioStoreError(RuntimeError):
    """Raised when a configured audio store cannot complete a request."""

    def __init__(self, message: str, *, key: str, status_code: int | None = None) -> None:
        """Initialize storage error metadata for per-item diagnostics."""

        super().__init__(message)
        self.key = key
        self.status_code = status_code


class NarrationError(ValueError):
    """Raised when a content item cannot be narrated."""
