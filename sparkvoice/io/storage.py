"""Audio artifact storage abstraction.

Responsibilities:
- Derive deterministic artifact keys from content kind, id, and day index.
- Provide existence check, upload, delete, and download for narrated audio.
- Degrade to neutral return values when storage credentials are missing.

Key types:
- `AudioStore`: protocol consumed by the generators and verifier.
- `SupabaseAudioStore`: Supabase Storage REST backend.
- `LocalAudioStore`: filesystem backend for local runs.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

import requests

from ..errors import AudioStoreError
from ..models.datatypes import CONTENT_KINDS, ContentItem

AUDIO_CONTENT_TYPE = "audio/mpeg"
PUBLIC_AUDIO_PREFIX = "/api/audio"
_LIST_PAGE_LIMIT = 100


def audio_key(kind: str, item_id: int, day_number: int | None = None) -> str:
    """Return the storage key for one narrated artifact.

    Single-part content maps to `{kind}-{id}.mp3`; multi-day content maps to
    `{kind}-{parentId}-day-{n}.mp3`.
    """

    if kind not in CONTENT_KINDS:
        supported = ", ".join(sorted(CONTENT_KINDS))
        raise ValueError(f"Unsupported content kind `{kind}`; supported: {supported}.")
    if day_number is None:
        return f"{kind}-{item_id}.mp3"
    return f"{kind}-{item_id}-day-{day_number}.mp3"


def audio_key_for(item: ContentItem) -> str:
    """Return the storage key for a content item."""

    return audio_key(item.kind, item.item_id, item.day_number)


def public_audio_path(key: str) -> str:
    """Return the stable public retrieval path for a storage key."""

    return f"{PUBLIC_AUDIO_PREFIX}/{key}"


class AudioStore(Protocol):
    """Protocol for keyed audio artifact storage."""

    def is_configured(self) -> bool:
        """Return whether the backing storage credentials are present."""

    def exists(self, key: str) -> bool:
        """Return whether an artifact is stored under the key."""

    def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> bool:
        """Store or overwrite an artifact and return whether it was written."""

    def delete(self, key: str) -> bool:
        """Delete an artifact and return whether the request succeeded."""

    def public_path(self, key: str) -> str:
        """Return the public retrieval path for a stored artifact."""

    def download(self, key: str) -> bytes | None:
        """Return artifact bytes, or `None` when missing or unconfigured."""


class LocalAudioStore:
    """Filesystem-backed audio store rooted at one directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def is_configured(self) -> bool:
        """Local storage needs no credentials."""

        return True

    def exists(self, key: str) -> bool:
        """Return whether the given artifact exists."""

        return self._path(key).is_file()

    def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> bool:
        """Save audio bytes, replacing any previous artifact."""

        _ = content_type
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise AudioStoreError(f"Failed to write `{key}`: {exc}", key=key) from exc
        return True

    def delete(self, key: str) -> bool:
        """Remove the artifact and report whether one existed."""

        path = self._path(key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise AudioStoreError(f"Failed to delete `{key}`: {exc}", key=key) from exc
        return True

    def public_path(self, key: str) -> str:
        """Return the public retrieval path for a stored artifact."""

        return public_audio_path(key)

    def download(self, key: str) -> bytes | None:
        """Load artifact bytes when present."""

        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def _path(self, key: str) -> Path:
        """Resolve a key to a file path directly under the store root."""

        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise AudioStoreError(f"Invalid audio key `{key}`.", key=key)
        return self.root / key


class SupabaseAudioStore:
    """Supabase Storage backend addressed through its REST API."""

    def __init__(
        self,
        *,
        url: str | None,
        service_role_key: str | None,
        bucket: str = "audio",
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize Supabase Storage settings; blank credentials disable the store."""

        self.url = url.strip().rstrip("/") if isinstance(url, str) else ""
        self.service_role_key = (
            service_role_key.strip() if isinstance(service_role_key, str) else ""
        )
        self.bucket = bucket
        self.timeout_seconds = timeout_seconds

    def is_configured(self) -> bool:
        """Return `True` when both project URL and service-role key are present."""

        return bool(self.url and self.service_role_key)

    def exists(self, key: str) -> bool:
        """Search the bucket root for an exact filename match."""

        if not self.is_configured():
            return False
        response = self._request(
            "POST",
            f"/object/list/{self.bucket}",
            key=key,
            json_payload={
                "prefix": "",
                "search": key,
                "limit": _LIST_PAGE_LIMIT,
                "offset": 0,
            },
        )
        try:
            entries = json.loads(response.content or b"[]")
        except json.JSONDecodeError as exc:
            raise AudioStoreError(
                f"Storage list response for `{key}` is not valid JSON.", key=key
            ) from exc
        if not isinstance(entries, list):
            return False
        return any(isinstance(entry, dict) and entry.get("name") == key for entry in entries)

    def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> bool:
        """Upload audio bytes with upsert semantics."""

        if not self.is_configured():
            return False
        self._request(
            "POST",
            f"/object/{self.bucket}/{quote(key)}",
            key=key,
            data=data,
            extra_headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        return True

    def delete(self, key: str) -> bool:
        """Remove one object from the bucket."""

        if not self.is_configured():
            return False
        self._request(
            "DELETE",
            f"/object/{self.bucket}",
            key=key,
            json_payload={"prefixes": [key]},
        )
        return True

    def public_path(self, key: str) -> str:
        """Return the public retrieval path for a stored artifact."""

        return public_audio_path(key)

    def download(self, key: str) -> bytes | None:
        """Fetch object bytes, returning `None` for missing objects."""

        if not self.is_configured():
            return None
        try:
            response = self._request("GET", f"/object/{self.bucket}/{quote(key)}", key=key)
        except AudioStoreError as exc:
            if exc.status_code in {400, 404}:
                return None
            raise
        return bytes(response.content)

    def _request(
        self,
        method: str,
        path: str,
        *,
        key: str,
        json_payload: dict[str, Any] | None = None,
        data: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """Execute one storage request and map failures to `AudioStoreError`."""

        headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }
        if extra_headers:
            headers.update(extra_headers)
        try:
            response = requests.request(
                method,
                f"{self.url}/storage/v1{path}",
                headers=headers,
                json=json_payload,
                data=data,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise AudioStoreError(
                f"Storage {method} for `{key}` failed (HTTP {status_code}).",
                key=key,
                status_code=status_code,
            ) from exc
        except requests.Timeout as exc:
            raise AudioStoreError(f"Storage {method} for `{key}` timed out.", key=key) from exc
        except requests.RequestException as exc:
            raise AudioStoreError(
                f"Storage {method} for `{key}` transport error: {exc}", key=key
            ) from exc
        return response


def create_audio_store(
    *,
    audio_dir: Path | None,
    supabase_url: str | None,
    supabase_service_role_key: str | None,
    bucket: str = "audio",
    timeout_seconds: float = 60.0,
) -> AudioStore:
    """Pick the storage backend: a local directory when given, otherwise Supabase."""

    if audio_dir is not None:
        return LocalAudioStore(audio_dir)
    return SupabaseAudioStore(
        url=supabase_url,
        service_role_key=supabase_service_role_key,
        bucket=bucket,
        timeout_seconds=timeout_seconds,
    )
