"""Unit tests for secure credential store helpers."""

from keyring.errors import NoKeyringError, PasswordSetError

import pytest

from sparkvoice.credentials import KeyringCredentialStore


class FakeKeyringModule:
    """In-memory keyring stub for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value for the service/account key."""

        self._storage.pop((service_name, account_name), None)


class BackendlessKeyringModule(FakeKeyringModule):
    """Keyring stub behaving like a host without any usable backend."""

    def get_password(self, service_name: str, account_name: str) -> str | None:
        raise NoKeyringError("No recommended backend was available.")

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        raise PasswordSetError("No recommended backend was available.")


def test_keyring_store_roundtrip_set_get_clear(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    """Keyring store should set/get/clear API key values under the sparkvoice service."""

    fake_keyring = FakeKeyringModule()
    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: fake_keyring)

    assert store.is_available() is True
    assert store.get_api_key() is None

    store.set_api_key("  abc123  ")
    assert store.get_api_key() == "abc123"
    assert ("sparkvoice", "openai_api_key") in fake_keyring._storage

    assert store.clear_api_key() is True
    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_keyring_store_without_backend_reads_as_empty(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    """A host without a keyring backend should read no key and fail writes clearly."""

    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", BackendlessKeyringModule)

    assert store.get_api_key() is None
    assert store.clear_api_key() is False
    with pytest.raises(RuntimeError, match="rejected the API key"):
        store.set_api_key("sk-test")


def test_keyring_store_rejects_blank_key(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", FakeKeyringModule)

    with pytest.raises(ValueError, match="non-empty"):
        store.set_api_key("   ")
