"""OpenAI HTTP client for narration speech synthesis.

Responsibilities:
- Send one narration script to OpenAI's `/audio/speech` endpoint and return audio bytes.
- Raise `OpenAIProviderError` for every HTTP, transport, and timeout failure.
- Keep provider diagnostics short and free of credentials so they can be logged.
"""

from __future__ import annotations

import json
import re

import requests

SPEECH_ENDPOINT = "/audio/speech"

_MAX_DIAGNOSTIC_CHARS = 180
_SECRET_PATTERNS = (
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}\b"), "[redacted-key]"),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]{12,}"), "Bearer [redacted-token]"),
)
_HEADLINES = {
    "invalid_api_key": "OpenAI authentication failed",
    "insufficient_quota": "OpenAI quota is exhausted",
    "invalid_model": "OpenAI rejected the speech model",
    "timeout": "OpenAI request timed out",
    "rate_limited": "OpenAI rate limit reached",
}


class OpenAIProviderError(RuntimeError):
    """Raised when a speech request fails or returns no audio."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code


def scrub_diagnostic(text: str) -> str:
    """Collapse whitespace, redact key-like tokens, and cap length for logs."""

    scrubbed = " ".join(text.split())
    for pattern, replacement in _SECRET_PATTERNS:
        scrubbed = pattern.sub(replacement, scrubbed)
    if len(scrubbed) > _MAX_DIAGNOSTIC_CHARS:
        return f"{scrubbed[: _MAX_DIAGNOSTIC_CHARS - 1]}..."
    return scrubbed


def _parse_error_body(content: bytes) -> tuple[str, str | None]:
    """Return `(message, provider_code)` from an OpenAI error body.

    OpenAI wraps errors as `{"error": {"message": ..., "code": ...}}`; any other
    body is used verbatim as the message.
    """

    body = content.decode("utf-8", errors="replace").strip()
    if not body:
        return "", None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return scrub_diagnostic(body), None

    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return scrub_diagnostic(body), None
    message = error.get("message")
    code = error.get("code")
    return (
        scrub_diagnostic(message if isinstance(message, str) and message.strip() else body),
        code.strip() if isinstance(code, str) and code.strip() else None,
    )


def classify_http_failure(status_code: int, message: str, provider_code: str | None) -> str:
    """Map an HTTP failure to a stable failure kind used in per-item diagnostics."""

    lowered = message.lower()
    code = (provider_code or "").lower()
    if status_code == 401 or "api key" in lowered:
        return "invalid_api_key"
    if code == "insufficient_quota" or (status_code == 429 and "quota" in lowered):
        return "insufficient_quota"
    if code == "model_not_found" or (
        "model" in lowered and ("not found" in lowered or "does not exist" in lowered)
    ):
        return "invalid_model"
    if status_code in (408, 504) or "timed out" in lowered or "timeout" in lowered:
        return "timeout"
    if status_code == 429:
        return "rate_limited"
    return "http_error"


class OpenAISpeechClient:
    """Requests-based client for the OpenAI speech endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
    ) -> None:
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def has_api_key(self) -> bool:
        """Return whether an API key is available for requests."""

        return bool(self.api_key)

    def synthesize_speech(
        self,
        *,
        model: str,
        voice: str,
        text: str,
        response_format: str = "mp3",
        speed: float = 1.0,
    ) -> bytes:
        """Return audio bytes for `text` spoken by `voice`.

        Raises:
            OpenAIProviderError: When the key is missing, the request fails, or
                the response carries no audio.
        """

        if not self.api_key:
            raise OpenAIProviderError(
                "Missing OpenAI API key. Set `OPENAI_API_KEY` or store one with "
                "`sparkvoice credentials --set-api-key`.",
                failure_kind="invalid_api_key",
            )

        try:
            response = requests.post(
                f"{self.base_url}{SPEECH_ENDPOINT}",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": model,
                    "voice": voice,
                    "input": text,
                    "response_format": response_format,
                    "speed": speed,
                },
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._provider_error(exc) from exc
        except requests.Timeout as exc:
            raise OpenAIProviderError("OpenAI request timed out.", failure_kind="timeout") from exc
        except requests.RequestException as exc:
            raise OpenAIProviderError(
                f"OpenAI request transport error: {scrub_diagnostic(str(exc))}",
                failure_kind="transport",
            ) from exc

        audio = bytes(response.content or b"")
        if not audio:
            raise OpenAIProviderError("OpenAI speech response is empty.")
        return audio

    @staticmethod
    def _provider_error(exc: requests.HTTPError) -> OpenAIProviderError:
        """Build a provider error from an HTTP error response."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        content = getattr(response, "content", b"") or b""
        message, provider_code = _parse_error_body(bytes(content))
        failure_kind = classify_http_failure(status_code, message, provider_code)
        headline = _HEADLINES.get(failure_kind, "OpenAI request failed")
        detail = f"{headline} (HTTP {status_code})"
        return OpenAIProviderError(
            f"{detail}: {message}" if message else f"{detail}.",
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )
