# Overview: Short-lived email verification codes for login and password reset.

"""
Verification codes are kept in a keyed store (email -> {code, purpose,
expires_at_ms}), not in the database. The default store is process-local;
a shared cache can be plugged in by implementing VerificationCodeStore.

Issuing a code overwrites any pending one for the same email. A code is
single-use: a successful check removes it. Failed checks (missing,
mismatch, expired) leave the entry as it was.
"""

from __future__ import annotations

import enum
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

from flask import current_app


class VerificationResult(enum.Enum):
    OK = "OK"
    MISSING = "MISSING"
    MISMATCH = "MISMATCH"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class PendingCode:
    code: str
    purpose: str
    expires_at_ms: int


class VerificationCodeStore:
    """Keyed storage for pending codes."""

    def get(self, key: str) -> PendingCode | None:
        raise NotImplementedError

    def set(self, key: str, value: PendingCode) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """Process-local store; lost on restart and not shared between workers."""

    def __init__(self):
        self._entries: dict[str, PendingCode] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> PendingCode | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: PendingCode) -> None:
        with self._lock:
            self._entries[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_code() -> str:
    """Uniformly random 6-digit numeric code."""
    return f"{secrets.randbelow(1_000_000):06d}"


class VerificationCodeCache:
    def __init__(
        self,
        store: VerificationCodeStore | None = None,
        *,
        ttl_ms: int = 600_000,
        clock: Callable[[], int] = _epoch_ms,
        fixed_codes: dict[str, str] | None = None,
    ):
        self.store = store if store is not None else InMemoryVerificationCodeStore()
        self.ttl_ms = ttl_ms
        self.clock = clock
        # Test accounts always receive the same code
        self.fixed_codes = {k.strip().lower(): v for k, v in (fixed_codes or {}).items()}

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def issue(self, email: str, purpose: str = "login") -> str:
        key = self._key(email)
        code = self.fixed_codes.get(key) or generate_code()
        self.store.set(key, PendingCode(code=code, purpose=purpose, expires_at_ms=self.clock() + self.ttl_ms))
        return code

    def check(self, email: str, code: str, purpose: str | None = None) -> VerificationResult:
        key = self._key(email)
        entry = self.store.get(key)
        if entry is None:
            return VerificationResult.MISSING
        if purpose is not None and entry.purpose != purpose:
            return VerificationResult.MISMATCH
        # Bytes compare: compare_digest rejects non-ASCII str input
        submitted = str(code or "").strip().encode("utf-8")
        if not secrets.compare_digest(entry.code.encode("utf-8"), submitted):
            return VerificationResult.MISMATCH
        if self.clock() >= entry.expires_at_ms:
            return VerificationResult.EXPIRED
        self.store.delete(key)
        return VerificationResult.OK

    def verify(self, email: str, code: str, purpose: str | None = None) -> bool:
        return self.check(email, code, purpose) is VerificationResult.OK

    def clear(self, email: str) -> None:
        self.store.delete(self._key(email))


def init_app(app, store: VerificationCodeStore | None = None) -> VerificationCodeCache:
    fixed = {email: app.config["TEST_VERIFICATION_CODE"] for email in app.config.get("TEST_EMAILS", [])}
    cache = VerificationCodeCache(
        store,
        ttl_ms=app.config.get("VERIFICATION_CODE_TTL_MS", 600_000),
        fixed_codes=fixed,
    )
    app.extensions["verification_codes"] = cache
    return cache


def get_cache() -> VerificationCodeCache:
    return current_app.extensions["verification_codes"]
