"""Single-item compose, synthesize, and store step shared by generation passes."""

from __future__ import annotations

from ..errors import AudioStoreError, NarrationError
from ..io.storage import AUDIO_CONTENT_TYPE, AudioStore, audio_key_for
from ..models.datatypes import ContentItem
from ..text.narration import NarrationComposer
from ..tts.synthesizer import Synthesizer
from ..tts.voices import VoiceProfile


class ItemNarrator:
    """Turn one content item into a stored narration artifact."""

    def __init__(
        self,
        store: AudioStore,
        synthesizer: Synthesizer,
        voice: VoiceProfile,
        composer: NarrationComposer | None = None,
    ) -> None:
        """Initialize the step with its storage, provider, and voice."""

        self.store = store
        self.synthesizer = synthesizer
        self.voice = voice
        self.composer = composer or NarrationComposer()

    def configuration_error(self) -> str | None:
        """Return one combined message when storage or synthesis is unconfigured."""

        missing: list[str] = []
        if not self.store.is_configured():
            missing.append("audio storage (SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)")
        if not self.synthesizer.is_configured():
            missing.append("speech synthesis (OPENAI_API_KEY)")
        if not missing:
            return None
        return f"Configuration error: {' and '.join(missing)} not configured."

    def artifact_exists(self, item: ContentItem) -> bool:
        """Return whether the item's artifact is already stored."""

        return self.store.exists(audio_key_for(item))

    def narrate(self, item: ContentItem) -> str | None:
        """Compose, synthesize, and store one item.

        Returns:
            `None` on success, otherwise a human-readable error message.
        """

        try:
            text = self.composer.compose(item)
        except NarrationError as exc:
            return str(exc)

        synthesis = self.synthesizer.synthesize(text, self.voice)
        if not synthesis.ok or not synthesis.audio:
            return synthesis.error or "Synthesis returned no audio."

        key = audio_key_for(item)
        try:
            stored = self.store.put(key, synthesis.audio, AUDIO_CONTENT_TYPE)
        except AudioStoreError as exc:
            return str(exc)
        if not stored:
            return f"Audio storage rejected upload for `{key}`."
        return None
