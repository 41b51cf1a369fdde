# Overview: Transactional email through the Brevo HTTP API.

from __future__ import annotations

import html

import httpx
from flask import current_app

from ..errors import UpstreamServiceError


def send_email(to: str, subject: str, html_content: str, *, to_name: str | None = None, reply_to: str | None = None) -> str:
    """
    Send one email. Returns the provider message id.

    Raises UpstreamServiceError when email is not configured or the
    provider rejects the request.
    """
    cfg = current_app.config
    if not cfg.get("BREVO_API_KEY") or not cfg.get("EMAIL_SENDER"):
        raise UpstreamServiceError("Email service is not configured")

    recipient = {"email": to}
    if to_name:
        recipient["name"] = to_name
    body = {
        "sender": {"name": cfg.get("EMAIL_SENDER_NAME", "DeliciaSoft"), "email": cfg["EMAIL_SENDER"]},
        "to": [recipient],
        "subject": subject,
        "htmlContent": html_content,
    }
    if reply_to:
        body["replyTo"] = {"email": reply_to}

    try:
        response = httpx.post(
            cfg["BREVO_API_URL"],
            json=body,
            headers={"api-key": cfg["BREVO_API_KEY"], "accept": "application/json"},
            timeout=cfg.get("UPSTREAM_TIMEOUT", 10),
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        current_app.logger.error("Email to %s failed: %s", to, exc)
        raise UpstreamServiceError("Could not send email", details={"reason": str(exc)})

    return response.json().get("messageId", "")


def verification_code_email(code: str, purpose: str) -> tuple[str, str]:
    """(subject, html) for a login or password-reset code."""
    if purpose == "password_reset":
        subject = "DeliciaSoft - Password reset code"
        intro = "Use this code to reset your password:"
    else:
        subject = "DeliciaSoft - Verification code"
        intro = "Use this code to finish signing in:"
    body = (
        "<div style=\"font-family: Arial, sans-serif\">"
        f"<p>{intro}</p>"
        f"<p style=\"font-size: 28px; letter-spacing: 6px\"><strong>{html.escape(code)}</strong></p>"
        "<p>The code expires in 10 minutes. If you did not request it, ignore this message.</p>"
        "</div>"
    )
    return subject, body


def contact_email(name: str, email: str, phone: str | None, message: str) -> tuple[str, str]:
    subject = f"DeliciaSoft - Contact form: {name}"
    rows = [
        ("Name", name),
        ("Email", email),
        ("Phone", phone or "-"),
    ]
    table = "".join(
        f"<tr><td><strong>{label}</strong></td><td>{html.escape(value)}</td></tr>" for label, value in rows
    )
    body = (
        "<div style=\"font-family: Arial, sans-serif\">"
        f"<table>{table}</table>"
        f"<p>{html.escape(message).replace(chr(10), '<br>')}</p>"
        "</div>"
    )
    return subject, body
