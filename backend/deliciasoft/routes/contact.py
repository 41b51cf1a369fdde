# Overview: Public contact form; CAPTCHA-gated, forwarded to the business inbox by email.

from flask import Blueprint, current_app, jsonify, request

from ..errors import AppError, UpstreamServiceError, ValidationError, error_response, internal_error_response, require_fields
from ..services import captcha_service, email_service
from ..validation import enforce_rules_email

contact_bp = Blueprint("contact", __name__, url_prefix="/api/contact")

MAX_MESSAGE_LENGTH = 5000


@contact_bp.post("")
def contact_route():
    """Body: name, email, phone?, message, captcha_token"""
    try:
        data = request.get_json(silent=True) or {}
        require_fields(data, ["name", "email", "message", "captcha_token"])
        fields = {"email": str(data["email"]).strip()}
        enforce_rules_email(fields)
        message = str(data["message"]).strip()
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"message exceeds max length {MAX_MESSAGE_LENGTH}")

        if not captcha_service.verify_token(data["captcha_token"], request.remote_addr):
            raise ValidationError("CAPTCHA verification failed")

        inbox = current_app.config.get("CONTACT_INBOX")
        if not inbox:
            raise UpstreamServiceError("Contact inbox is not configured")

        subject, html = email_service.contact_email(
            str(data["name"]).strip(), fields["email"], str(data["phone"]).strip() if data.get("phone") else None, message
        )
        message_id = email_service.send_email(inbox, subject, html, reply_to=fields["email"])
        current_app.logger.info("Contact form from %s forwarded (%s)", fields["email"], message_id)
        return jsonify({"message": "Message sent"}), 200
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(e, "Failed to process contact form")
