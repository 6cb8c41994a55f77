"""Shared pytest fixtures and in-memory fakes for the Sparkvoice test suite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from sparkvoice.errors import AudioStoreError
from sparkvoice.io.storage import public_audio_path
from sparkvoice.models.datatypes import ContentItem
from sparkvoice.tts.synthesizer import SynthesisResult
from sparkvoice.tts.voices import VoiceProfile

FAKE_AUDIO = b"ID3-fake-mp3"


class FakeClock:
    """Manually advanced aware-UTC clock."""

    def __init__(self, now: datetime) -> None:
        """Initialize the clock at a fixed instant."""

        self.now = now

    def __call__(self) -> datetime:
        """Return the current fake instant."""

        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""

        self.now = self.now + timedelta(seconds=seconds)


class RecordingSleeper:
    """Sleep replacement that records delays and optionally advances a clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        """Initialize an empty delay log."""

        self.calls: list[float] = []
        self.clock = clock

    def __call__(self, seconds: float) -> None:
        """Record one sleep call."""

        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeAudioStore:
    """In-memory audio store with injectable failures."""

    def __init__(self, configured: bool = True) -> None:
        """Initialize an empty store."""

        self.configured = configured
        self.objects: dict[str, bytes] = {}
        self.put_calls: list[str] = []
        self.exists_errors: set[str] = set()
        self.put_errors: set[str] = set()
        self.rejected_puts: set[str] = set()

    def is_configured(self) -> bool:
        return self.configured

    def exists(self, key: str) -> bool:
        if not self.configured:
            return False
        if key in self.exists_errors:
            raise AudioStoreError(f"Storage list for `{key}` timed out.", key=key)
        return key in self.objects

    def put(self, key: str, data: bytes, content_type: str = "audio/mpeg") -> bool:
        if not self.configured:
            return False
        self.put_calls.append(key)
        if key in self.put_errors:
            raise AudioStoreError(f"Storage POST for `{key}` failed (HTTP 500).", key=key)
        if key in self.rejected_puts:
            return False
        self.objects[key] = data
        return True

    def delete(self, key: str) -> bool:
        if not self.configured:
            return False
        return self.objects.pop(key, None) is not None

    def public_path(self, key: str) -> str:
        return public_audio_path(key)

    def download(self, key: str) -> bytes | None:
        if not self.configured:
            return None
        return self.objects.get(key)


class FakeSynthesizer:
    """Scripted synthesizer; each call pops the next outcome, then uses the default."""

    def __init__(self, configured: bool = True, default_ok: bool = True) -> None:
        """Initialize with no scripted outcomes."""

        self.configured = configured
        self.default_ok = default_ok
        self.script: list[bool] = []
        self.calls: list[tuple[str, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    def synthesize(self, text: str, voice: VoiceProfile) -> SynthesisResult:
        self.calls.append((text, voice.provider_voice_id))
        ok = self.script.pop(0) if self.script else self.default_ok
        if ok:
            return SynthesisResult(ok=True, audio=FAKE_AUDIO)
        return SynthesisResult(
            ok=False,
            error="OpenAI request failed (HTTP 500): upstream error",
            failure_kind="http_error",
        )


class FakeRepository:
    """In-memory content repository recording its queries."""

    def __init__(self, items: list[ContentItem] | None = None) -> None:
        """Initialize the repository with items in stable order."""

        self.items = list(items or [])
        self.range_queries: list[tuple[date, date]] = []
        self.all_queries = 0

    def get_items_by_date_range(self, start: date, end: date) -> list[ContentItem]:
        self.range_queries.append((start, end))
        return [
            item
            for item in self.items
            if item.scheduled_date is not None and start <= item.scheduled_date <= end
        ]

    def get_all_items(self) -> list[ContentItem]:
        self.all_queries += 1
        return list(self.items)


def make_spark(
    item_id: int,
    scheduled_date: date | None = None,
    teaching: str | None = "Prayer is conversation with God.",
    **overrides: object,
) -> ContentItem:
    """Build a spark item with sensible defaults."""

    fields: dict[str, object] = {
        "kind": "spark",
        "item_id": item_id,
        "title": f"Spark {item_id}",
        "teaching": teaching,
        "scheduled_date": scheduled_date,
    }
    fields.update(overrides)
    return ContentItem(**fields)  # type: ignore[arg-type]


def make_plan_day(
    plan_id: int,
    day_number: int,
    scheduled_date: date | None = None,
    teaching: str | None = "Walk in the light.",
    **overrides: object,
) -> ContentItem:
    """Build a reading-plan day item with sensible defaults."""

    fields: dict[str, object] = {
        "kind": "plan",
        "item_id": plan_id,
        "day_number": day_number,
        "title": f"Plan {plan_id} day {day_number}",
        "teaching": teaching,
        "scheduled_date": scheduled_date,
    }
    fields.update(overrides)
    return ContentItem(**fields)  # type: ignore[arg-type]


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock pinned to 2026-03-10 12:00 UTC (12:00 in London)."""

    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def sleeper(clock: FakeClock) -> RecordingSleeper:
    """Provide a recording sleeper that advances the fake clock."""

    return RecordingSleeper(clock)


@pytest.fixture
def store() -> FakeAudioStore:
    """Provide an empty configured in-memory store."""

    return FakeAudioStore()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    """Provide an always-succeeding synthesizer."""

    return FakeSynthesizer()


@pytest.fixture
def spark_factory():  # type: ignore[no-untyped-def]
    """Expose the spark item builder to tests."""

    return make_spark


@pytest.fixture
def plan_day_factory():  # type: ignore[no-untyped-def]
    """Expose the reading-plan day builder to tests."""

    return make_plan_day


@pytest.fixture
def repository_factory():  # type: ignore[no-untyped-def]
    """Expose the in-memory repository class to tests."""

    return FakeRepository
