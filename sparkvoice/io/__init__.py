"""Input/output components for Sparkvoice.

This package contains the read-only content repository adapter and the audio
artifact storage backends used by the pipeline.
"""

from .repository import ContentRepository, SqlContentRepository
from .storage import (
    AudioStore,
    LocalAudioStore,
    SupabaseAudioStore,
    audio_key,
    audio_key_for,
    create_audio_store,
    public_audio_path,
)

__all__ = [
    "AudioStore",
    "ContentRepository",
    "LocalAudioStore",
    "SqlContentRepository",
    "SupabaseAudioStore",
    "audio_key",
    "audio_key_for",
    "create_audio_store",
    "public_audio_path",
]
