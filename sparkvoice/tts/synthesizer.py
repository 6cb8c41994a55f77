"""TTS synthesizer interfaces and OpenAI-backed implementation.

Responsibilities:
- Define the protocol for one-call-per-item narration synthesis.
- Convert every provider failure into a structured `SynthesisResult`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .openai_client import OpenAIProviderError, OpenAISpeechClient
from .voices import VoiceProfile


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    """Outcome of one synthesis call.

    Attributes:
        ok: Whether audio bytes were produced.
        audio: Encoded audio payload on success.
        error: Human-readable failure reason on failure.
        failure_kind: Provider failure classification on failure.
    """

    ok: bool
    audio: bytes | None = None
    error: str | None = None
    failure_kind: str | None = None


class Synthesizer(Protocol):
    """Protocol for TTS provider implementations."""

    def is_configured(self) -> bool:
        """Return whether provider credentials are available."""

    def synthesize(self, text: str, voice: VoiceProfile) -> SynthesisResult:
        """Synthesize narration text; never raises for provider failures."""


class OpenAITTSSynthesizer:
    """OpenAI-backed synthesizer producing MP3 narration bytes."""

    def __init__(
        self,
        model: str = "tts-1",
        api_key: str | None = None,
        timeout_seconds: float = 60.0,
        response_format: str = "mp3",
    ) -> None:
        """Initialize OpenAI-backed TTS synthesizer settings."""

        self.model = model
        self.response_format = response_format
        self.client = OpenAISpeechClient(api_key=api_key, timeout_seconds=timeout_seconds)

    def is_configured(self) -> bool:
        """Return whether an OpenAI API key is available."""

        return self.client.has_api_key()

    def synthesize(self, text: str, voice: VoiceProfile) -> SynthesisResult:
        """Synthesize one narration and fold provider errors into the result."""

        try:
            audio = self.client.synthesize_speech(
                model=self.model,
                voice=voice.provider_voice_id,
                text=text,
                response_format=self.response_format,
                speed=max(0.25, min(4.0, voice.speaking_rate)),
            )
        except OpenAIProviderError as exc:
            return SynthesisResult(ok=False, error=str(exc), failure_kind=exc.failure_kind)
        return SynthesisResult(ok=True, audio=audio)
