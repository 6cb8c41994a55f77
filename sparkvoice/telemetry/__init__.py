"""Telemetry and observability helpers.

This package emits structured run events for generation, verification, and
scheduler activity.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
