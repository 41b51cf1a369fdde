# Overview: Bearer session tokens for staff users and customers.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout and password reset
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import Customer, SessionToken, User
from ..models.auth import ACCOUNT_TYPE_CUSTOMER, ACCOUNT_TYPE_USER
from ..time_utils import as_utc_naive, utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


@dataclass
class SessionContext:
    account_type: str
    account: "User | Customer"
    session: SessionToken

    @property
    def is_customer(self) -> bool:
        return self.account_type == ACCOUNT_TYPE_CUSTOMER


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _load_account(account_type: str, account_id: int):
    if account_type == ACCOUNT_TYPE_USER:
        return db.session.get(User, account_id)
    if account_type == ACCOUNT_TYPE_CUSTOMER:
        return db.session.get(Customer, account_id)
    return None


def create_session(
    account_type: str,
    account_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for a staff user or customer.

    Returns (session_record, plaintext_token); only the hash is stored.
    """
    account = _load_account(account_type, account_id)
    if account is None:
        raise ValueError("Account not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        account_type=account_type,
        account_id=account_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a valid token, or None when the token is
    unknown, revoked, expired, idle too long, or its account is inactive.

    Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if as_utc_naive(session.expires_at) < now:
        return None

    if now - as_utc_naive(session.last_used_at) > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    account = _load_account(session.account_type, session.account_id)
    if not account or not account.is_active:
        _revoke(session, "Account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(account_type=session.account_type, account=account, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_all_account_sessions(account_type: str, account_id: int, reason: str) -> int:
    """Force re-authentication everywhere (used after a password reset)."""
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        account_type=account_type,
        account_id=account_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)
