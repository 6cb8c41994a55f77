"""Text-to-speech provider abstractions.

This package contains the narration voice profile, the OpenAI speech HTTP
client, and the synthesizer boundary used by generation and verification.
"""

from .openai_client import OpenAIProviderError, OpenAISpeechClient
from .synthesizer import OpenAITTSSynthesizer, SynthesisResult, Synthesizer
from .voices import VoiceProfile, narration_voice

__all__ = [
    "OpenAIProviderError",
    "OpenAISpeechClient",
    "OpenAITTSSynthesizer",
    "SynthesisResult",
    "Synthesizer",
    "VoiceProfile",
    "narration_voice",
]
