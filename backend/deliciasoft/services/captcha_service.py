# Overview: Google reCAPTCHA token verification for the public contact form.

from __future__ import annotations

import httpx
from flask import current_app

from ..errors import UpstreamServiceError


def verify_token(token: str, remote_ip: str | None = None) -> bool:
    """True when reCAPTCHA accepts the token; raises UpstreamServiceError if it cannot be asked."""
    cfg = current_app.config
    secret = cfg.get("RECAPTCHA_SECRET_KEY")
    if not secret:
        raise UpstreamServiceError("CAPTCHA verification is not configured")
    if not token:
        return False

    data = {"secret": secret, "response": token}
    if remote_ip:
        data["remoteip"] = remote_ip

    try:
        response = httpx.post(cfg["RECAPTCHA_VERIFY_URL"], data=data, timeout=cfg.get("UPSTREAM_TIMEOUT", 10))
        response.raise_for_status()
    except httpx.HTTPError as exc:
        current_app.logger.error("CAPTCHA verification request failed: %s", exc)
        raise UpstreamServiceError("Could not verify CAPTCHA", details={"reason": str(exc)})

    result = response.json()
    if not result.get("success"):
        current_app.logger.info("CAPTCHA rejected: %s", result.get("error-codes"))
        return False
    return True
