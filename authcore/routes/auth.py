"""Authentication routes."""
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError

from authcore.extensions import limiter
from authcore.models.enums import TokenFailureReason
from authcore.schemas.auth_schemas import (
    ForgotPasswordRequestSchema,
    VerifyResetTokenRequestSchema,
    ResetPasswordRequestSchema,
    LoginRequestSchema,
)

# Create blueprint
auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

# Initialize schemas
forgot_password_schema = ForgotPasswordRequestSchema()
verify_token_schema = VerifyResetTokenRequestSchema()
reset_password_schema = ResetPasswordRequestSchema()
login_schema = LoginRequestSchema()

RESET_REQUESTED_MESSAGE = "If this email exists, a reset link has been sent."
INVALID_LINK_MESSAGE = "This link is invalid or has expired."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"

# Only these reasons get their own wording; everything else looks the same
FAILURE_RESPONSES = {
    TokenFailureReason.ALREADY_USED: "This link has already been used.",
    TokenFailureReason.EXPIRED: "This link has expired.",
}


def _first_error(err: ValidationError) -> str:
    """Flatten marshmallow messages to a single string."""
    messages = err.messages
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, list) and value:
                return str(value[0])
            return str(value)
    return str(messages)


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit("5 per minute")
def forgot_password():
    """
    Request password reset.

    ---
    Request body:
        {
            "email": "user@example.com"
        }

    Returns:
        200: {
            "success": true,
            "message": "If this email exists, a reset link has been sent."
        }
        400: {
            "success": false,
            "error": "Not a valid email address."
        }
    """
    try:
        data = forgot_password_schema.load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"success": False, "error": _first_error(err)}), 400

    service = current_app.container.password_reset_service()
    service.request_reset(data["email"], request_ip=request.remote_addr)

    # Same body whatever happened (unknown email, rate limit, mail failure)
    return jsonify({"success": True, "message": RESET_REQUESTED_MESSAGE}), 200


@auth_bp.route("/verify-reset-token", methods=["POST"])
@limiter.limit("20 per minute")
def verify_reset_token():
    """
    Check a reset token before showing the new password form.

    ---
    Request body:
        {
            "token": "43-char-base64url-token"
        }

    Returns:
        200: {
            "isValid": true,
            "expiresAt": "2026-01-01T12:00:00"
        }
        400: {
            "isValid": false,
            "error": "This link is invalid or has expired."
        }
    """
    try:
        data = verify_token_schema.load(request.get_json(silent=True) or {})
    except ValidationError:
        return jsonify({"isValid": False, "error": INVALID_LINK_MESSAGE}), 400

    service = current_app.container.password_reset_service()
    verification = service.verify_token(data["token"])

    if not verification.valid:
        current_app.logger.info(
            "Reset token check failed: %s", verification.failure_reason.value
        )
        return jsonify({"isValid": False, "error": INVALID_LINK_MESSAGE}), 400

    return jsonify({
        "isValid": True,
        "expiresAt": verification.expires_at.isoformat(),
    }), 200


@auth_bp.route("/reset-password", methods=["POST"])
@limiter.limit("10 per minute")
def reset_password():
    """
    Execute password reset with token.

    ---
    Request body:
        {
            "token": "43-char-base64url-token",
            "password": "NewPassword123!",
            "confirmPassword": "NewPassword123!"
        }

    Returns:
        200: {
            "success": true,
            "message": "Password reset successfully"
        }
        400: {
            "success": false,
            "error": "This link is invalid or has expired."
        }
    """
    try:
        data = reset_password_schema.load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"success": False, "error": _first_error(err)}), 400

    service = current_app.container.password_reset_service()
    result = service.reset_password(
        data["token"], data["password"], reset_ip=request.remote_addr
    )

    if result.success:
        return jsonify({"success": True, "message": "Password reset successfully"}), 200

    body = {"success": False, "error": INVALID_LINK_MESSAGE}
    if result.failure_reason in FAILURE_RESPONSES:
        body["error"] = FAILURE_RESPONSES[result.failure_reason]
        body["reason"] = result.failure_reason.value
    return jsonify(body), 400


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    """Login a user.

    ---
    Request body:
        {
            "email": "user@example.com",
            "password": "SecurePassword123!"
        }

    Returns:
        200: {
            "success": true,
            "user": {"id": "uuid-here", "email": "user@example.com", ...}
        }
        401: {
            "success": false,
            "error": "Invalid email or password"
        }
    """
    try:
        data = login_schema.load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"success": False, "error": _first_error(err)}), 400

    verifier = current_app.container.credential_verifier()
    result = verifier.authenticate(email=data["email"], password=data["password"])

    if not result.success:
        return jsonify({"success": False, "error": INVALID_CREDENTIALS_MESSAGE}), 401

    return jsonify({"success": True, "user": result.user.to_dict()}), 200
