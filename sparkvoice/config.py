"""Configuration model and loaders for Sparkvoice.

Responsibilities:
- Define pipeline configuration as a typed dataclass with validation.
- Provide deterministic precedence resolution for synthesis runtime settings.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `SparkvoiceConfig`: normalized settings for generation, verification, and scheduling.
- `SynthesisRuntimeConfig`: resolved speech model, voice, and API key.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `SparkvoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import os
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .civic import DEFAULT_TIMEZONE
from .parsing import normalize_optional_string, parse_clock_time


_DEFAULT_TTS_MODEL = "tts-1"
_DEFAULT_TTS_VOICE = "nova"
_DEFAULT_AUDIO_BUCKET = "audio"
_DEFAULT_PREGENERATION_TIME = "23:30"
_DEFAULT_VERIFICATION_TIME = "18:00"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SynthesisRuntimeConfig:
    """Resolved speech synthesis settings for one run."""

    tts_model: str
    tts_voice: str
    api_key: str | None = None


@dataclass(slots=True)
class SparkvoiceConfig:
    """Runtime configuration for the audio pipeline.

    Attributes:
        database_url: SQLAlchemy URL of the content database.
        supabase_url: Supabase project URL for audio storage.
        supabase_service_role_key: Supabase service-role key for audio storage.
        api_key: Optional OpenAI API key.
        timezone: IANA name of the civic timezone.
        tts_model: Speech model identifier.
        tts_voice: Speech voice identifier.
        audio_bucket: Storage bucket holding narration artifacts.
        audio_dir: Optional local directory; replaces Supabase storage when set.
        lead_days: Look-ahead days for windowed generation.
        throttle_seconds: Delay after every attempted item.
        bulk_batch_size: Successful generations between bulk cooldowns.
        bulk_cooldown_seconds: Pause between bulk batches.
        max_retries: Verifier attempts per missing item.
        retry_backoff_seconds: Base of the verifier's exponential backoff.
        pregeneration_time: Daily `HH:MM` civic time for windowed generation.
        verification_time: Daily `HH:MM` civic time for verification.
        request_timeout_seconds: Timeout for synthesis and storage HTTP calls.
        runtime_sources: Optional runtime source overrides injected by CLI.
    """

    database_url: str | None = None
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    api_key: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    tts_model: str = _DEFAULT_TTS_MODEL
    tts_voice: str = _DEFAULT_TTS_VOICE
    audio_bucket: str = _DEFAULT_AUDIO_BUCKET
    audio_dir: Path | None = None
    lead_days: int = 3
    throttle_seconds: float = 1.0
    bulk_batch_size: int = 10
    bulk_cooldown_seconds: float = 10.0
    max_retries: int = 3
    retry_backoff_seconds: float = 2.0
    pregeneration_time: str = _DEFAULT_PREGENERATION_TIME
    verification_time: str = _DEFAULT_VERIFICATION_TIME
    request_timeout_seconds: float = 60.0
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before pipeline execution."""

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"`timezone` value `{self.timezone}` is not a known IANA zone."
            ) from exc
        self._require_non_empty(self.tts_model, "tts_model")
        self._require_non_empty(self.tts_voice, "tts_voice")
        self._require_non_empty(self.audio_bucket, "audio_bucket")
        if self.lead_days < 0:
            raise ValueError("`lead_days` must be zero or positive.")
        if self.bulk_batch_size <= 0:
            raise ValueError("`bulk_batch_size` must be a positive integer.")
        if self.max_retries <= 0:
            raise ValueError("`max_retries` must be a positive integer.")
        for name in (
            "throttle_seconds",
            "bulk_cooldown_seconds",
            "retry_backoff_seconds",
            "request_timeout_seconds",
        ):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"`{name}` must be a finite number of seconds.")
        if self.throttle_seconds < 0:
            raise ValueError("`throttle_seconds` must be zero or positive.")
        if self.bulk_cooldown_seconds < 0:
            raise ValueError("`bulk_cooldown_seconds` must be zero or positive.")
        if self.retry_backoff_seconds < 0:
            raise ValueError("`retry_backoff_seconds` must be zero or positive.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("`request_timeout_seconds` must be positive.")
        parse_clock_time(self.pregeneration_time, "pregeneration_time")
        parse_clock_time(self.verification_time, "verification_time")

    def pregeneration_clock(self) -> tuple[int, int]:
        """Return the windowed-generation trigger as `(hour, minute)`."""

        return parse_clock_time(self.pregeneration_time, "pregeneration_time")

    def verification_clock(self) -> tuple[int, int]:
        """Return the verification trigger as `(hour, minute)`."""

        return parse_clock_time(self.verification_time, "verification_time")

    def resolved_synthesis_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> SynthesisRuntimeConfig:
        """Resolve speech settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `secure` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources

        tts_model = self._resolve_runtime_value(
            key="tts_model",
            env_key="SPARKVOICE_TTS_MODEL",
            default_value=self.tts_model,
            sources=resolved_sources,
        )
        tts_voice = self._resolve_runtime_value(
            key="tts_voice",
            env_key="SPARKVOICE_TTS_VOICE",
            default_value=self.tts_voice,
            sources=resolved_sources,
        )
        api_key = self._resolve_optional_runtime_value(
            key="api_key",
            env_key="OPENAI_API_KEY",
            default_value=self.api_key,
            sources=resolved_sources,
        )
        return SynthesisRuntimeConfig(tts_model=tts_model, tts_voice=tts_voice, api_key=api_key)

    def _resolve_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str:
        """Resolve a required runtime value from sources in precedence order."""

        resolved = self._resolve_optional_runtime_value(key, env_key, default_value, sources)
        if resolved is None:
            raise ValueError(
                f"`{key}` could not be resolved from CLI, secure storage, env, or defaults."
            )
        return resolved

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value from sources in precedence order."""

        for mapping, lookup_key in (
            (sources.cli, key),
            (sources.secure, key),
            (sources.env, env_key),
        ):
            value = self._normalized_lookup(mapping, lookup_key)
            if value is not None:
                return value
        return normalize_optional_string(default_value)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


# Config field name -> environment variable name.
_ENV_KEYS: dict[str, str] = {
    "database_url": "DATABASE_URL",
    "supabase_url": "SUPABASE_URL",
    "supabase_service_role_key": "SUPABASE_SERVICE_ROLE_KEY",
    "api_key": "OPENAI_API_KEY",
    "timezone": "SPARKVOICE_TIMEZONE",
    "tts_model": "SPARKVOICE_TTS_MODEL",
    "tts_voice": "SPARKVOICE_TTS_VOICE",
    "audio_bucket": "SPARKVOICE_AUDIO_BUCKET",
    "audio_dir": "SPARKVOICE_AUDIO_DIR",
    "lead_days": "SPARKVOICE_LEAD_DAYS",
    "throttle_seconds": "SPARKVOICE_THROTTLE_SECONDS",
    "bulk_batch_size": "SPARKVOICE_BULK_BATCH_SIZE",
    "bulk_cooldown_seconds": "SPARKVOICE_BULK_COOLDOWN_SECONDS",
    "max_retries": "SPARKVOICE_MAX_RETRIES",
    "retry_backoff_seconds": "SPARKVOICE_RETRY_BACKOFF_SECONDS",
    "pregeneration_time": "SPARKVOICE_PREGENERATION_TIME",
    "verification_time": "SPARKVOICE_VERIFICATION_TIME",
    "request_timeout_seconds": "SPARKVOICE_REQUEST_TIMEOUT_SECONDS",
}
_SECRET_KEYS = ("database_url", "supabase_url", "supabase_service_role_key", "api_key")
_STRING_KEYS = frozenset(
    {
        "database_url",
        "supabase_url",
        "supabase_service_role_key",
        "api_key",
        "timezone",
        "tts_model",
        "tts_voice",
        "audio_bucket",
    }
)
_CLOCK_KEYS = frozenset({"pregeneration_time", "verification_time"})
_NON_NEGATIVE_INT_KEYS = frozenset({"lead_days"})
_POSITIVE_INT_KEYS = frozenset({"bulk_batch_size", "max_retries"})
_NON_NEGATIVE_FLOAT_KEYS = frozenset(
    {"throttle_seconds", "bulk_cooldown_seconds", "retry_backoff_seconds"}
)
_POSITIVE_FLOAT_KEYS = frozenset({"request_timeout_seconds"})
_RUNTIME_ENV_KEYS = frozenset({"SPARKVOICE_TTS_MODEL", "SPARKVOICE_TTS_VOICE", "OPENAI_API_KEY"})


class ConfigLoader:
    """Factory methods for creating `SparkvoiceConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(_ENV_KEYS)

    @staticmethod
    def from_yaml(path: Path, env: Mapping[str, str] | None = None) -> SparkvoiceConfig:
        """Create a validated config from a YAML file.

        Connection secrets absent from the file fall back to the environment so
        they need not be committed alongside pipeline settings.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        source_label = f"YAML `{path}`"
        ConfigLoader._validate_yaml_keys(payload, source_label)

        values = ConfigLoader._coerce_mapping(payload, source_label)
        for key in _SECRET_KEYS:
            if values.get(key) is None:
                env_value = normalize_optional_string(env_map.get(_ENV_KEYS[key]))
                if env_value is not None:
                    values[key] = env_value
        return ConfigLoader._build_config(values, env_map)

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> SparkvoiceConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        raw = {
            key: env_map[env_key]
            for key, env_key in _ENV_KEYS.items()
            if env_key in env_map
        }
        values = ConfigLoader._coerce_mapping(raw, "Environment")
        return ConfigLoader._build_config(values, env_map)

    @staticmethod
    def _build_config(values: dict[str, Any], env_map: Mapping[str, str]) -> SparkvoiceConfig:
        """Build and validate a config from coerced values, dropping unset entries."""

        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in _RUNTIME_ENV_KEYS and normalize_optional_string(value) is not None
        }
        present = {key: value for key, value in values.items() if value is not None}
        config = SparkvoiceConfig(
            runtime_sources=RuntimeConfigSources(env=runtime_env),
            **present,
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject keys the config model does not define."""

        unknown = sorted(
            str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS)
        )
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _coerce_mapping(payload: Mapping[str, Any], source_label: str) -> dict[str, Any]:
        """Coerce raw payload values to their field types; blank values become `None`."""

        values: dict[str, Any] = {}
        for key, raw_value in payload.items():
            label = f"{source_label} field `{key}`"
            if key in _STRING_KEYS:
                values[key] = normalize_optional_string(raw_value)
            elif key in _CLOCK_KEYS:
                values[key] = ConfigLoader._clock_text(raw_value)
            elif key == "audio_dir":
                text = normalize_optional_string(raw_value)
                values[key] = Path(text) if text is not None else None
            elif key in _NON_NEGATIVE_INT_KEYS:
                values[key] = ConfigLoader._parse_int(raw_value, label, minimum=0)
            elif key in _POSITIVE_INT_KEYS:
                values[key] = ConfigLoader._parse_int(raw_value, label, minimum=1)
            elif key in _NON_NEGATIVE_FLOAT_KEYS:
                values[key] = ConfigLoader._parse_float(raw_value, label, positive=False)
            elif key in _POSITIVE_FLOAT_KEYS:
                values[key] = ConfigLoader._parse_float(raw_value, label, positive=True)
        return values

    @staticmethod
    def _parse_int(raw_value: object, label: str, minimum: int) -> int | None:
        """Parse an integer bounded below by `minimum`."""

        requirement = "a positive integer" if minimum > 0 else "a non-negative integer"
        if isinstance(raw_value, bool):
            raise ValueError(f"{label} must be {requirement}.")
        if isinstance(raw_value, int):
            parsed = raw_value
        else:
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return None
            try:
                parsed = int(normalized)
            except ValueError as exc:
                raise ValueError(f"{label} must be {requirement}.") from exc
        if parsed < minimum:
            raise ValueError(f"{label} must be {requirement}.")
        return parsed

    @staticmethod
    def _parse_float(raw_value: object, label: str, positive: bool) -> float | None:
        """Parse a non-negative (or strictly positive) number of seconds."""

        requirement = "a positive number" if positive else "a non-negative number"
        if isinstance(raw_value, bool):
            raise ValueError(f"{label} must be {requirement}.")
        if isinstance(raw_value, (int, float)):
            parsed = float(raw_value)
        else:
            normalized = normalize_optional_string(raw_value)
            if normalized is None:
                return None
            try:
                parsed = float(normalized)
            except ValueError as exc:
                raise ValueError(f"{label} must be {requirement}.") from exc
        if not math.isfinite(parsed) or parsed < 0 or (positive and parsed == 0):
            raise ValueError(f"{label} must be {requirement}.")
        return parsed

    @staticmethod
    def _clock_text(raw_value: object) -> str | None:
        """Normalize an `HH:MM` value, undoing YAML 1.1 base-60 integer parsing."""

        # Unquoted `23:30` loads as the sexagesimal integer 1410.
        if isinstance(raw_value, int) and not isinstance(raw_value, bool):
            hours, minutes = divmod(raw_value, 60)
            return f"{hours:02d}:{minutes:02d}"
        return normalize_optional_string(raw_value)
