"""Top-level package for Sparkvoice.

This package pre-generates and verifies narrated audio for daily devotional
content. The main orchestration entry point is `AudioPipeline`.
"""

from .pipeline import AudioPipeline

__all__ = ["AudioPipeline", "__version__"]

__version__ = "0.1.0"
