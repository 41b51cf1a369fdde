# backend/deliciasoft/config.py
from __future__ import annotations
import os


def _csv(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # "production" hides stack traces and disables the verification-code fallback
    APP_ENV = os.environ.get("APP_ENV", "development")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///deliciasoft.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sale dates default to "today" in this timezone
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "America/Bogota")

    # Verification codes (login + password reset)
    VERIFICATION_CODE_TTL_MS = int(os.environ.get("VERIFICATION_CODE_TTL_MS", "600000"))
    TEST_EMAILS = _csv(os.environ.get("TEST_EMAILS"))
    TEST_VERIFICATION_CODE = os.environ.get("TEST_VERIFICATION_CODE", "000000")

    # Transactional email (Brevo)
    BREVO_API_KEY = os.environ.get("BREVO_API_KEY", "")
    BREVO_API_URL = os.environ.get("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
    EMAIL_SENDER = os.environ.get("EMAIL_SENDER", "")
    EMAIL_SENDER_NAME = os.environ.get("EMAIL_SENDER_NAME", "DeliciaSoft")
    CONTACT_INBOX = os.environ.get("CONTACT_INBOX", "")

    # CAPTCHA (Google reCAPTCHA v2)
    RECAPTCHA_SECRET_KEY = os.environ.get("RECAPTCHA_SECRET_KEY", "")
    RECAPTCHA_VERIFY_URL = os.environ.get(
        "RECAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify"
    )

    # Image storage (ImageKit)
    IMAGEKIT_PUBLIC_KEY = os.environ.get("IMAGEKIT_PUBLIC_KEY", "")
    IMAGEKIT_PRIVATE_KEY = os.environ.get("IMAGEKIT_PRIVATE_KEY", "")
    IMAGEKIT_URL_ENDPOINT = os.environ.get("IMAGEKIT_URL_ENDPOINT", "")
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    # Outbound HTTP timeout for email/CAPTCHA collaborators (seconds)
    UPSTREAM_TIMEOUT = float(os.environ.get("UPSTREAM_TIMEOUT", "10"))

    CORS_ALLOWED_ORIGINS = _csv(
        os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )
