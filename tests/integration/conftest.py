"""Integration-test fixtures: a seeded SQLite content database and mocked speech API."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
import requests
from sqlalchemy import create_engine, insert

from sparkvoice.civic import CivicCalendar
from sparkvoice.io.repository import metadata, reading_plan_days_table, sparks_table

_ISOLATED_ENV_KEYS = (
    "DATABASE_URL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "OPENAI_API_KEY",
    "SPARKVOICE_TIMEZONE",
    "SPARKVOICE_TTS_MODEL",
    "SPARKVOICE_TTS_VOICE",
    "SPARKVOICE_AUDIO_BUCKET",
    "SPARKVOICE_AUDIO_DIR",
    "SPARKVOICE_LEAD_DAYS",
    "SPARKVOICE_THROTTLE_SECONDS",
    "SPARKVOICE_BULK_BATCH_SIZE",
    "SPARKVOICE_BULK_COOLDOWN_SECONDS",
    "SPARKVOICE_MAX_RETRIES",
    "SPARKVOICE_RETRY_BACKOFF_SECONDS",
    "SPARKVOICE_PREGENERATION_TIME",
    "SPARKVOICE_VERIFICATION_TIME",
    "SPARKVOICE_REQUEST_TIMEOUT_SECONDS",
)


class _SpeechResponse:
    """Minimal requests-like response for the mocked speech endpoint."""

    def __init__(self, status_code: int, content: bytes) -> None:
        self.status_code = status_code
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)  # type: ignore[arg-type]


class SpeechApiStub:
    """Replacement for `requests.post` that records inputs and returns MP3-like bytes."""

    def __init__(self) -> None:
        self.inputs: list[str] = []
        self.fail = False

    def __call__(self, url: str, **kwargs: object) -> _SpeechResponse:
        payload = kwargs["json"]
        self.inputs.append(payload["input"])  # type: ignore[index]
        if self.fail:
            return _SpeechResponse(500, b'{"error": {"message": "upstream error"}}')
        return _SpeechResponse(200, b"ID3-integration")


@pytest.fixture
def speech_api(monkeypatch: pytest.MonkeyPatch) -> SpeechApiStub:
    """Mock the OpenAI speech endpoint."""

    stub = SpeechApiStub()
    monkeypatch.setattr("sparkvoice.tts.openai_client.requests.post", stub)
    return stub


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    """Return the local audio directory used by CLI runs."""

    return tmp_path / "audio"


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, audio_dir: Path) -> Path:
    """Seed a content database and point the CLI environment at it.

    Content: spark 1 today, spark 2 tomorrow, and reading plan 7 day 1 the day after.
    """

    for key in _ISOLATED_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    today = CivicCalendar("Europe/London").today()
    database_path = tmp_path / "content.db"
    engine = create_engine(f"sqlite:///{database_path}")
    metadata.create_all(engine)
    spark_columns = {column.name: None for column in sparks_table.columns}
    plan_columns = {column.name: None for column in reading_plan_days_table.columns}
    with engine.begin() as connection:
        connection.execute(
            insert(sparks_table),
            [
                {
                    **spark_columns,
                    "id": 1,
                    "title": "Quiet Strength",
                    "full_teaching": "Be still and know.",
                    "cta_primary": "Pray",
                    "daily_date": today,
                },
                {
                    **spark_columns,
                    "id": 2,
                    "title": "Faith Over Fear",
                    "full_teaching": "Fear not.",
                    "daily_date": today + timedelta(days=1),
                },
            ],
        )
        connection.execute(
            insert(reading_plan_days_table),
            [
                {
                    **plan_columns,
                    "id": 70,
                    "plan_id": 7,
                    "day_number": 1,
                    "title": "Begin",
                    "devotional_content": "In the beginning.",
                    "scheduled_date": today + timedelta(days=2),
                }
            ],
        )
    engine.dispose()

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{database_path}")
    monkeypatch.setenv("SPARKVOICE_AUDIO_DIR", str(audio_dir))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-integration")
    monkeypatch.setenv("SPARKVOICE_THROTTLE_SECONDS", "0")
    monkeypatch.setenv("SPARKVOICE_BULK_COOLDOWN_SECONDS", "0")
    monkeypatch.setenv("SPARKVOICE_RETRY_BACKOFF_SECONDS", "0")
    return database_path


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional pre-seeded API key."""

        self._api_key = initial_api_key

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key value."""

        self._api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        """Clear API key and return whether one existed."""

        existed = self._api_key is not None
        self._api_key = None
        return existed


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Keep CLI runs away from the host keyring."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("sparkvoice.cli.create_credential_store", lambda: store)
    return store
