"""Secure storage for the OpenAI API key used by Sparkvoice narration.

Responsibilities:
- Keep the API key in the OS keyring under the `sparkvoice` service.
- Treat hosts without a keyring backend as having no stored key.
- Never echo or log the secret value.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Protocol

import keyring
from keyring.errors import KeyringError, NoKeyringError

from .parsing import normalize_optional_string

KEYRING_SERVICE = "sparkvoice"
KEYRING_ACCOUNT = "openai_api_key"


class CredentialStore(Protocol):
    """Protocol for the CLI's secure API key storage."""

    def is_available(self) -> bool:
        """Return whether secure storage can be used on this host."""

    def get_api_key(self) -> str | None:
        """Return the stored API key, or `None`."""

    def set_api_key(self, api_key: str) -> None:
        """Store the API key, replacing any previous value."""

    def clear_api_key(self) -> bool:
        """Delete the stored key and return whether one existed."""


@dataclass
class KeyringCredentialStore:
    """Credential store backed by the `keyring` package."""

    service_name: str = KEYRING_SERVICE
    account_name: str = KEYRING_ACCOUNT

    def _load_keyring_module(self) -> ModuleType | None:
        return keyring

    def is_available(self) -> bool:
        return self._load_keyring_module() is not None

    def get_api_key(self) -> str | None:
        backend = self._load_keyring_module()
        if backend is None:
            return None
        try:
            return normalize_optional_string(
                backend.get_password(self.service_name, self.account_name)
            )
        except NoKeyringError:
            return None

    def set_api_key(self, api_key: str) -> None:
        """Store a trimmed API key.

        Raises:
            ValueError: If the key is blank.
            RuntimeError: If no backend exists or the backend rejects the write.
        """

        normalized = normalize_optional_string(api_key)
        if normalized is None:
            raise ValueError("API key must be a non-empty string.")
        backend = self._load_keyring_module()
        if backend is None:
            raise RuntimeError("Secure credential storage is unavailable on this host.")
        try:
            backend.set_password(self.service_name, self.account_name, normalized)
        except KeyringError as exc:
            raise RuntimeError(f"Secure credential storage rejected the API key: {exc}") from exc

    def clear_api_key(self) -> bool:
        backend = self._load_keyring_module()
        if backend is None or self.get_api_key() is None:
            return False
        backend.delete_password(self.service_name, self.account_name)
        return True


def create_credential_store() -> CredentialStore:
    """Return the default credential store."""

    return KeyringCredentialStore()
