"""Headless API keys: generation, hashing and the issue/list/revoke lifecycle.

Plaintext keys are shown once, at creation; only an HMAC of the key (keyed
with ``API_KEY_PEPPER``) and a short displayable prefix are stored. Every key
issued here carries the ``upload:write`` scope.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .config import api_key_pepper
from .errors import ApiKeyNotFoundError, FaktooraError
from .logging_setup import get_logger

_logger = get_logger("faktoora.api_keys")

API_KEY_PREFIX = "sk_faktoora_"
UPLOAD_WRITE_SCOPE = "upload:write"
DEFAULT_API_KEY_LABEL = "Headless Upload"
MAX_API_KEY_LABEL_LENGTH = 80


def generate_api_key() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(32)}"


def api_key_prefix(api_key: str) -> str:
    """Displayable prefix of a key (scheme prefix plus 8 characters)."""

    return api_key[: len(API_KEY_PREFIX) + 8]


def compute_api_key_hash(api_key: str, *, pepper: str | None = None) -> str:
    """HMAC-SHA256 of ``api_key`` keyed with the ``API_KEY_PEPPER`` secret, hex encoded."""

    secret = pepper if pepper is not None else api_key_pepper()
    return hmac.new(secret.encode("utf-8"), api_key.encode("utf-8"), hashlib.sha256).hexdigest()


def extract_bearer_token(authorization_header: str | None) -> str | None:
    if not authorization_header:
        return None
    parts = authorization_header.split(" ")
    if len(parts) < 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1].strip()


def normalize_label(label: str | None) -> str:
    trimmed = (label or "").strip()
    if not trimmed:
        return DEFAULT_API_KEY_LABEL
    return trimmed[:MAX_API_KEY_LABEL_LENGTH]


@dataclass(slots=True)
class ApiKeyRecord:
    key_id: str
    user_id: str
    key_hash: str
    scopes: tuple[str, ...]
    label: str = DEFAULT_API_KEY_LABEL
    key_prefix: str = ""
    created_at: float = 0.0
    revoked_at: float | None = None
    last_used_at: float | None = None


class ApiKeyStore(Protocol):
    def add(self, record: ApiKeyRecord) -> None: ...

    def get(self, key_id: str) -> ApiKeyRecord | None: ...

    def get_by_hash(self, key_hash: str) -> ApiKeyRecord | None: ...

    def list_for_user(self, user_id: str) -> list[ApiKeyRecord]: ...

    def revoke(self, key_id: str, revoked_at: float) -> None: ...

    def touch(self, key_id: str) -> None: ...


class InMemoryApiKeyStore:
    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._by_id: dict[str, ApiKeyRecord] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def add(self, record: ApiKeyRecord) -> None:
        with self._lock:
            if any(r.key_hash == record.key_hash for r in self._by_id.values()):
                raise ValueError("API key hash already exists")
            self._by_id[record.key_id] = record

    def get(self, key_id: str) -> ApiKeyRecord | None:
        return self._by_id.get(key_id)

    def get_by_hash(self, key_hash: str) -> ApiKeyRecord | None:
        for record in self._by_id.values():
            if record.key_hash == key_hash:
                return record
        return None

    def list_for_user(self, user_id: str) -> list[ApiKeyRecord]:
        return [r for r in self._by_id.values() if r.user_id == user_id]

    def revoke(self, key_id: str, revoked_at: float) -> None:
        with self._lock:
            record = self._by_id.get(key_id)
            if record is not None:
                record.revoked_at = revoked_at

    def touch(self, key_id: str) -> None:
        with self._lock:
            record = self._by_id.get(key_id)
            if record is not None:
                record.last_used_at = self._clock()


@dataclass(frozen=True, slots=True)
class IssuedApiKey:
    """A freshly created key; ``plaintext`` is never stored and never shown again."""

    plaintext: str
    record: ApiKeyRecord


def create_api_key(
    store: ApiKeyStore,
    user_id: str,
    label: str | None = None,
    *,
    pepper: str | None = None,
    clock: Callable[[], float] = time.time,
) -> IssuedApiKey:
    raw = generate_api_key()
    key_hash = compute_api_key_hash(raw, pepper=pepper)
    if store.get_by_hash(key_hash) is not None:
        raise FaktooraError("Failed to generate unique API key. Please retry.")

    record = ApiKeyRecord(
        key_id=uuid.uuid4().hex,
        user_id=user_id,
        key_hash=key_hash,
        scopes=(UPLOAD_WRITE_SCOPE,),
        label=normalize_label(label),
        key_prefix=api_key_prefix(raw),
        created_at=clock(),
    )
    store.add(record)
    _logger.info("issued API key %s for user %s", record.key_prefix, user_id)
    return IssuedApiKey(plaintext=raw, record=record)


def list_api_keys(store: ApiKeyStore, user_id: str) -> list[ApiKeyRecord]:
    """Return the user's keys, newest first, revoked ones included."""

    return sorted(store.list_for_user(user_id), key=lambda r: r.created_at, reverse=True)


def revoke_api_key(
    store: ApiKeyStore,
    user_id: str,
    key_id: str,
    *,
    clock: Callable[[], float] = time.time,
) -> None:
    """Revoke one of the user's keys; revoking twice keeps the first timestamp."""

    record = store.get(key_id)
    if record is None or record.user_id != user_id:
        raise ApiKeyNotFoundError(key_id)
    if record.revoked_at is not None:
        return
    store.revoke(key_id, clock())
    _logger.info("revoked API key %s for user %s", record.key_prefix, user_id)


__all__ = [
    "API_KEY_PREFIX",
    "DEFAULT_API_KEY_LABEL",
    "MAX_API_KEY_LABEL_LENGTH",
    "UPLOAD_WRITE_SCOPE",
    "ApiKeyRecord",
    "ApiKeyStore",
    "InMemoryApiKeyStore",
    "IssuedApiKey",
    "api_key_prefix",
    "compute_api_key_hash",
    "create_api_key",
    "extract_bearer_token",
    "generate_api_key",
    "list_api_keys",
    "normalize_label",
    "revoke_api_key",
]
