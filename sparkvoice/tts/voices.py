"""Voice profile models for synthesis configuration.

Responsibilities:
- Represent the provider voice identity used for all devotional narration.
- Decouple pipeline logic from provider-specific naming.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_NARRATION_VOICE = "nova"


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by TTS providers.

    Attributes:
        name: Human-readable profile name.
        provider_voice_id: Provider-native voice identifier.
        speaking_rate: Relative speaking rate multiplier.
    """

    name: str
    provider_voice_id: str
    speaking_rate: float = 1.0


def narration_voice(provider_voice_id: str = DEFAULT_NARRATION_VOICE) -> VoiceProfile:
    """Return the fixed devotional narration voice profile."""

    return VoiceProfile(name="devotional-narrator", provider_voice_id=provider_voice_id)
