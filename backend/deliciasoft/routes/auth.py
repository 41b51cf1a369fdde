# Overview: Flask API routes for login, verification codes, password reset and sessions.

"""
Authentication routes.

Two login paths:
- POST /login: email + password, session issued immediately
- POST /send-verification-code then POST /verify-code-and-login:
  credentials are checked, a 6-digit code is emailed, and the session is
  issued once code and password are presented together

Configured test emails always receive the fixed test code and no email is
sent. Outside production a failed email send still returns the code so the
flow can be exercised without an email provider.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..errors import (
    AppError,
    AuthenticationError,
    NotFoundError,
    UpstreamServiceError,
    error_response,
    internal_error_response,
    require_fields,
)
from ..models.auth import ACCOUNT_TYPE_CUSTOMER
from ..services import auth_service, email_service, permission_service, session_service
from ..services.verification_service import VerificationResult, get_cache

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

PURPOSE_LOGIN = "login"
PURPOSE_PASSWORD_RESET = "password_reset"

_VERIFICATION_MESSAGES = {
    VerificationResult.MISSING: "No pending verification code; request a new one",
    VerificationResult.MISMATCH: "Invalid verification code",
    VerificationResult.EXPIRED: "Verification code has expired; request a new one",
}


def _session_response(account_type: str, account) -> tuple:
    auth_service.record_login(account_type, account)
    _, token = session_service.create_session(
        account_type,
        account.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    permissions = permission_service.get_account_permissions(account_type, account)
    return jsonify({
        "token": token,
        "account_type": account_type,
        "account": account.to_dict(),
        "permissions": sorted(permissions),
    }), 200


def _is_test_email(email: str) -> bool:
    return auth_service.normalize_email(email) in {
        e.strip().lower() for e in current_app.config.get("TEST_EMAILS", [])
    }


def _deliver_code(email: str, code: str, purpose: str) -> tuple:
    """Email a code, applying the test-account and development fallbacks."""
    if _is_test_email(email):
        current_app.logger.info("Verification code for test account %s not emailed", email)
        return jsonify({"message": "Verification code issued", "email_sent": False, "test_account": True}), 200

    subject, html = email_service.verification_code_email(code, purpose)
    try:
        email_service.send_email(email, subject, html)
    except UpstreamServiceError as e:
        if current_app.config.get("APP_ENV") == "production":
            return error_response(e)
        current_app.logger.warning("Email delivery failed for %s; returning code in response (development)", email)
        return jsonify({
            "message": "Email delivery failed; code returned for development",
            "email_sent": False,
            "code": code,
        }), 200

    current_app.logger.info("Verification code (%s) emailed to %s", purpose, email)
    return jsonify({"message": "Verification code sent", "email_sent": True}), 200


@auth_bp.post("/login")
def login():
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["email", "password"])
        account_type, account = auth_service.authenticate(data["email"], data["password"])
        return _session_response(account_type, account)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Login failed")


@auth_bp.post("/send-verification-code")
def send_verification_code():
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["email", "password"])
        auth_service.authenticate(data["email"], data["password"])
        code = get_cache().issue(data["email"], PURPOSE_LOGIN)
        return _deliver_code(data["email"], code, PURPOSE_LOGIN)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to send verification code")


@auth_bp.post("/verify-code-and-login")
def verify_code_and_login():
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["email", "password", "code"])
        account_type, account = auth_service.authenticate(data["email"], data["password"])

        result = get_cache().check(data["email"], str(data["code"]), PURPOSE_LOGIN)
        if result is not VerificationResult.OK:
            raise AuthenticationError(_VERIFICATION_MESSAGES[result], details={"reason": result.value})

        return _session_response(account_type, account)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Verification login failed")


@auth_bp.post("/request-password-reset")
def request_password_reset():
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["email"])
        account_type, account = auth_service.find_account(data["email"])
        if account is None or not account.is_active:
            raise NotFoundError("No active account with that email")

        code = get_cache().issue(data["email"], PURPOSE_PASSWORD_RESET)
        return _deliver_code(data["email"], code, PURPOSE_PASSWORD_RESET)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to request password reset")


@auth_bp.post("/reset-password")
def reset_password():
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["email", "code", "new_password"])
        account_type, account = auth_service.find_account(data["email"])
        if account is None:
            raise NotFoundError("No account with that email")

        # Check strength before consuming the code
        auth_service.validate_password_strength(data["new_password"])

        result = get_cache().check(data["email"], str(data["code"]), PURPOSE_PASSWORD_RESET)
        if result is not VerificationResult.OK:
            raise AuthenticationError(_VERIFICATION_MESSAGES[result], details={"reason": result.value})

        auth_service.set_password(account, data["new_password"])
        session_service.revoke_all_account_sessions(account_type, account.id, "Password reset")
        current_app.logger.info("Password reset for %s %s", account_type, account.id)
        return jsonify({"message": "Password updated"}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Password reset failed")


@auth_bp.post("/logout")
@require_auth
def logout():
    session_service.revoke_session(bearer_token(), "User logout")
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me():
    permissions = permission_service.get_account_permissions(g.account_type, g.current_account)
    return jsonify({
        "account_type": g.account_type,
        "account": g.current_account.to_dict(),
        "permissions": sorted(permissions),
        "is_customer": g.account_type == ACCOUNT_TYPE_CUSTOMER,
    }), 200
