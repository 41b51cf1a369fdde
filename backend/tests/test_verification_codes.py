"""
Verification code cache tests (no database needed).
"""

import threading

import pytest

from deliciasoft.services.verification_service import (
    InMemoryVerificationCodeStore,
    VerificationCodeCache,
    VerificationResult,
    generate_code,
)


class FakeClock:
    def __init__(self, now_ms: int = 0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return VerificationCodeCache(ttl_ms=600_000, clock=clock, fixed_codes={"Demo@Test.com": "111111"})


def test_code_is_six_digits():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()


def test_correct_code_within_ttl(cache, clock):
    code = cache.issue("a@x.com")
    clock.now_ms = 599_999
    assert cache.check("a@x.com", code) is VerificationResult.OK


def test_expired_code_fails(cache, clock):
    code = cache.issue("a@x.com")
    clock.now_ms = 700_000
    assert cache.check("a@x.com", code) is VerificationResult.EXPIRED
    # Still expired on retry; only a fresh issue helps
    assert cache.check("a@x.com", code) is VerificationResult.EXPIRED

    new_code = cache.issue("a@x.com")
    assert cache.check("a@x.com", new_code) is VerificationResult.OK


def test_expiry_boundary_is_exclusive(cache, clock):
    code = cache.issue("a@x.com")
    clock.now_ms = 600_000
    assert cache.check("a@x.com", code) is VerificationResult.EXPIRED


def test_code_is_single_use(cache):
    code = cache.issue("a@x.com")
    assert cache.verify("a@x.com", code)
    assert cache.check("a@x.com", code) is VerificationResult.MISSING


def test_mismatch_keeps_pending_code(cache):
    code = cache.issue("a@x.com")
    wrong = "000000" if code != "000000" else "999999"
    assert cache.check("a@x.com", wrong) is VerificationResult.MISMATCH
    assert cache.check("a@x.com", code) is VerificationResult.OK


@pytest.mark.parametrize("submitted", ["１２３４５６", "é", "12345６"])
def test_non_ascii_code_is_a_mismatch(cache, monkeypatch, submitted):
    monkeypatch.setattr("deliciasoft.services.verification_service.generate_code", lambda: "123456")
    cache.issue("a@x.com")

    assert cache.check("a@x.com", submitted) is VerificationResult.MISMATCH
    assert cache.verify("a@x.com", "123456") is True


def test_reissue_overwrites_previous_code(cache, monkeypatch):
    codes = iter(["222222", "333333"])
    monkeypatch.setattr(
        "deliciasoft.services.verification_service.generate_code", lambda: next(codes)
    )
    first = cache.issue("a@x.com")
    second = cache.issue("a@x.com")

    assert cache.check("a@x.com", first) is VerificationResult.MISMATCH
    assert cache.check("a@x.com", second) is VerificationResult.OK


def test_email_key_is_case_insensitive(cache):
    code = cache.issue("  A@X.com ")
    assert cache.check("a@x.com", code) is VerificationResult.OK


def test_purpose_must_match(cache):
    code = cache.issue("a@x.com", purpose="password_reset")
    assert cache.check("a@x.com", code, purpose="login") is VerificationResult.MISMATCH
    assert cache.check("a@x.com", code, purpose="password_reset") is VerificationResult.OK


def test_fixed_code_for_test_account(cache):
    assert cache.issue("demo@test.com") == "111111"
    assert cache.check("DEMO@test.com", "111111") is VerificationResult.OK


def test_unknown_email_is_missing(cache):
    assert cache.check("nobody@x.com", "123456") is VerificationResult.MISSING


def test_clear_removes_pending_code(cache):
    code = cache.issue("a@x.com")
    cache.clear("a@x.com")
    assert cache.check("a@x.com", code) is VerificationResult.MISSING


def test_store_is_injectable():
    store = InMemoryVerificationCodeStore()
    cache = VerificationCodeCache(store, clock=lambda: 0)
    cache.issue("a@x.com")
    assert len(store) == 1
    assert store.get("a@x.com").purpose == "login"


def test_concurrent_issue_keeps_one_entry_per_email():
    store = InMemoryVerificationCodeStore()
    cache = VerificationCodeCache(store)

    def worker(i):
        for _ in range(100):
            cache.issue(f"user{i % 5}@x.com")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 5
