# Overview: Password hashing, credential checks and account lookup for staff and customers.

"""
Authentication Service

Staff users and customers log in with email + password. Emails are looked
up among users first, then customers.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..models import Customer, Role, User
from ..models.auth import ACCOUNT_TYPE_CUSTOMER, ACCOUNT_TYPE_USER
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def find_account(email: str):
    """Return (account_type, account) for an email, or (None, None)."""
    email = normalize_email(email)
    if not email:
        return None, None
    user = db.session.query(User).filter(db.func.lower(User.email) == email).first()
    if user is not None:
        return ACCOUNT_TYPE_USER, user
    customer = db.session.query(Customer).filter(db.func.lower(Customer.email) == email).first()
    if customer is not None:
        return ACCOUNT_TYPE_CUSTOMER, customer
    return None, None


def authenticate(email: str, password: str):
    """
    Check credentials. Returns (account_type, account).

    The same message is used for unknown email and wrong password.
    """
    account_type, account = find_account(email)
    if account is None or not verify_password(password, account.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not account.is_active:
        raise AuthenticationError("Account is inactive")
    return account_type, account


def record_login(account_type: str, account) -> None:
    if account_type == ACCOUNT_TYPE_USER:
        account.last_login_at = utcnow()
        db.session.commit()


def set_password(account, new_password: str) -> None:
    account.password_hash = hash_password(new_password)
    db.session.commit()


def create_user(name: str, email: str, password: str, role_id: int | None = None, document: str | None = None) -> User:
    """Create a staff user. Raises ConflictError when the email is already taken."""
    email = normalize_email(email)
    if not name or not name.strip():
        raise ValidationError("Missing required fields: name", missing_fields=["name"])
    if not email:
        raise ValidationError("Missing required fields: email", missing_fields=["email"])

    account_type, _ = find_account(email)
    if account_type is not None:
        raise ConflictError("Email is already registered")

    if role_id is not None and db.session.get(Role, role_id) is None:
        raise NotFoundError(f"Role {role_id} not found")

    user = User(
        name=name.strip(),
        email=email,
        document=document or None,
        password_hash=hash_password(password),
        role_id=role_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user
