"""Text composition components for Sparkvoice narration."""

from .narration import NarrationComposer

__all__ = ["NarrationComposer"]
