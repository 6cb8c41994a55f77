"""Sparkvoice pipeline package.

This package contains the per-item narration step, the batch generators, the
verify-and-repair pass, the daily scheduler, and the wiring facade.
"""

from .batch import BatchGenerator, RegenerationPage
from .narrator import ItemNarrator
from .orchestrator import AudioPipeline
from .scheduler import DailyScheduler, ScheduledJob
from .verification import AudioVerifier, backoff_delays

__all__ = [
    "AudioPipeline",
    "AudioVerifier",
    "BatchGenerator",
    "DailyScheduler",
    "ItemNarrator",
    "RegenerationPage",
    "ScheduledJob",
    "backoff_delays",
]
