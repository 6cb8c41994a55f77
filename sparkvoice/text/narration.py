"""Narration script composition for devotional audio.

Responsibilities:
- Assemble spoken text from structured content fields in a fixed order.
- Omit absent optional fields entirely instead of emitting empty sections.
- Accept legacy pre-composed narration strings unchanged.
"""

from __future__ import annotations

from ..errors import NarrationError
from ..models.datatypes import ContentItem
from ..parsing import normalize_optional_string

_CTA_MESSAGES = {
    "pray": "Will you commit to pray about this today?",
    "give": "Consider how you might give generously in response.",
    "go": "Where is God calling you to go and serve?",
}


class NarrationComposer:
    """Compose deterministic narration scripts from content items."""

    def compose(self, content: ContentItem | str) -> str:
        """Return narration text for a content item or a pre-composed string.

        Raises:
            NarrationError: If the item has no teaching body, or the string is blank.
        """

        if isinstance(content, str):
            text = normalize_optional_string(content)
            if text is None:
                raise NarrationError("Narration text is empty.")
            return text

        teaching = normalize_optional_string(content.teaching)
        if teaching is None:
            raise NarrationError(f"Content `{content.key}` has no teaching body to narrate.")

        sections = [self._title_line(content)]

        scripture_ref = normalize_optional_string(content.scripture_ref)
        scripture_text = normalize_optional_string(content.scripture_text)
        if scripture_ref is not None and scripture_text is not None:
            sections.append(
                f"Today's scripture reading is from {scripture_ref}:\n\"{scripture_text}\""
            )

        sections.append(teaching)

        reflection = normalize_optional_string(content.reflection_question)
        if reflection is not None:
            sections.append(f"Take a moment to reflect: {reflection}")

        action = normalize_optional_string(content.today_action)
        if action is not None:
            sections.append(f"Your action for today: {action}")

        cta = normalize_optional_string(content.cta_primary)
        if cta is not None:
            sections.append(_CTA_MESSAGES.get(cta.lower(), f"Your call to action: {cta}"))

        prayer = normalize_optional_string(content.prayer_line)
        if prayer is not None:
            sections.append(f"Let's pray together: {prayer}")

        return "\n\n".join(sections)

    @staticmethod
    def _title_line(content: ContentItem) -> str:
        """Return the opening title announcement."""

        title = normalize_optional_string(content.title) or "Untitled"
        if content.day_number is not None:
            return f"Day {content.day_number}: {title}."
        return f"Today's devotional: {title}."
