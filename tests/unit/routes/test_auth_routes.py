"""Tests for auth routes with mocked services."""
from datetime import datetime

import pytest
from dependency_injector import providers
from unittest.mock import MagicMock

from authcore.models import ResetRequestOutcome, TokenFailureReason
from authcore.services.credential_verifier import LoginResult
from authcore.services.password_reset_service import (
    ResetRequestResult,
    ResetResult,
    TokenVerification,
)


@pytest.fixture
def mock_reset_service(app):
    """Replace the password reset service in the container."""
    service = MagicMock()
    app.container.password_reset_service.override(providers.Object(service))
    yield service
    app.container.password_reset_service.reset_override()


@pytest.fixture
def mock_verifier(app):
    """Replace the credential verifier in the container."""
    verifier = MagicMock()
    app.container.credential_verifier.override(providers.Object(verifier))
    yield verifier
    app.container.credential_verifier.reset_override()


class TestForgotPasswordRoute:
    """POST /api/v1/auth/forgot-password"""

    @pytest.mark.parametrize(
        "outcome",
        [
            ResetRequestOutcome.SENT,
            ResetRequestOutcome.UNKNOWN_EMAIL,
            ResetRequestOutcome.RATE_LIMITED,
            ResetRequestOutcome.EMAIL_FAILED,
        ],
    )
    def test_same_response_for_every_outcome(self, client, mock_reset_service, outcome):
        """The client cannot tell what happened behind the request."""
        mock_reset_service.request_reset.return_value = ResetRequestResult(
            success=True, outcome=outcome
        )

        response = client.post(
            "/api/v1/auth/forgot-password", json={"email": "alice@example.com"}
        )

        assert response.status_code == 200
        assert response.get_json() == {
            "success": True,
            "message": "If this email exists, a reset link has been sent.",
        }

    def test_passes_email_and_ip(self, client, mock_reset_service):
        mock_reset_service.request_reset.return_value = ResetRequestResult(
            success=True, outcome=ResetRequestOutcome.SENT
        )

        client.post(
            "/api/v1/auth/forgot-password",
            json={"email": "alice@example.com"},
            environ_base={"REMOTE_ADDR": "10.1.2.3"},
        )

        mock_reset_service.request_reset.assert_called_once_with(
            "alice@example.com", request_ip="10.1.2.3"
        )

    @pytest.mark.parametrize("body", [{}, {"email": "not-an-email"}, {"email": ""}])
    def test_invalid_email_rejected(self, client, mock_reset_service, body):
        response = client.post("/api/v1/auth/forgot-password", json=body)

        assert response.status_code == 400
        assert response.get_json()["success"] is False
        mock_reset_service.request_reset.assert_not_called()

    def test_non_json_body(self, client, mock_reset_service):
        response = client.post(
            "/api/v1/auth/forgot-password", data="email=alice@example.com"
        )

        assert response.status_code == 400


class TestVerifyResetTokenRoute:
    """POST /api/v1/auth/verify-reset-token"""

    def test_valid_token(self, client, mock_reset_service):
        mock_reset_service.verify_token.return_value = TokenVerification(
            valid=True, expires_at=datetime(2026, 3, 10, 13, 0, 0)
        )

        response = client.post(
            "/api/v1/auth/verify-reset-token", json={"token": "abc"}
        )

        assert response.status_code == 200
        assert response.get_json() == {
            "isValid": True,
            "expiresAt": "2026-03-10T13:00:00",
        }

    @pytest.mark.parametrize(
        "reason",
        [
            TokenFailureReason.NOT_FOUND,
            TokenFailureReason.INVALID,
            TokenFailureReason.EXPIRED,
            TokenFailureReason.ALREADY_USED,
        ],
    )
    def test_invalid_token_is_generic(self, client, mock_reset_service, reason):
        mock_reset_service.verify_token.return_value = TokenVerification(
            valid=False, failure_reason=reason
        )

        response = client.post(
            "/api/v1/auth/verify-reset-token", json={"token": "abc"}
        )

        assert response.status_code == 400
        assert response.get_json() == {
            "isValid": False,
            "error": "This link is invalid or has expired.",
        }

    def test_missing_token(self, client, mock_reset_service):
        response = client.post("/api/v1/auth/verify-reset-token", json={})

        assert response.status_code == 400
        mock_reset_service.verify_token.assert_not_called()


class TestResetPasswordRoute:
    """POST /api/v1/auth/reset-password"""

    def _body(self, **overrides):
        body = {
            "token": "abc",
            "password": "NewPassword1!",
            "confirmPassword": "NewPassword1!",
        }
        body.update(overrides)
        return body

    def test_success(self, client, mock_reset_service):
        mock_reset_service.reset_password.return_value = ResetResult(
            success=True, user_id="u-1", email="alice@example.com"
        )

        response = client.post(
            "/api/v1/auth/reset-password",
            json=self._body(),
            environ_base={"REMOTE_ADDR": "10.1.2.3"},
        )

        assert response.status_code == 200
        assert response.get_json()["success"] is True
        mock_reset_service.reset_password.assert_called_once_with(
            "abc", "NewPassword1!", reset_ip="10.1.2.3"
        )

    @pytest.mark.parametrize(
        "reason", [TokenFailureReason.NOT_FOUND, TokenFailureReason.INVALID]
    )
    def test_unknown_token_is_generic(self, client, mock_reset_service, reason):
        mock_reset_service.reset_password.return_value = ResetResult(
            success=False, failure_reason=reason
        )

        response = client.post("/api/v1/auth/reset-password", json=self._body())

        assert response.status_code == 400
        assert response.get_json() == {
            "success": False,
            "error": "This link is invalid or has expired.",
        }

    def test_already_used_has_own_message(self, client, mock_reset_service):
        mock_reset_service.reset_password.return_value = ResetResult(
            success=False, failure_reason=TokenFailureReason.ALREADY_USED
        )

        response = client.post("/api/v1/auth/reset-password", json=self._body())

        data = response.get_json()
        assert response.status_code == 400
        assert data["reason"] == "already_used"
        assert data["error"] == "This link has already been used."

    def test_expired_has_own_message(self, client, mock_reset_service):
        mock_reset_service.reset_password.return_value = ResetResult(
            success=False, failure_reason=TokenFailureReason.EXPIRED
        )

        response = client.post("/api/v1/auth/reset-password", json=self._body())

        assert response.get_json()["reason"] == "expired"

    def test_passwords_must_match(self, client, mock_reset_service):
        response = client.post(
            "/api/v1/auth/reset-password",
            json=self._body(confirmPassword="Different1!"),
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Passwords do not match"
        mock_reset_service.reset_password.assert_not_called()

    def test_password_too_short(self, client, mock_reset_service):
        response = client.post(
            "/api/v1/auth/reset-password",
            json=self._body(password="short", confirmPassword="short"),
        )

        assert response.status_code == 400
        assert "8 characters" in response.get_json()["error"]
        mock_reset_service.reset_password.assert_not_called()


class TestLoginRoute:
    """POST /api/v1/auth/login"""

    def test_login_success(self, client, mock_verifier):
        user = MagicMock()
        user.to_dict.return_value = {"id": "u-1", "email": "alice@example.com"}
        mock_verifier.authenticate.return_value = LoginResult(
            success=True, user_id="u-1", email="alice@example.com", user=user
        )

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": "Secret123!"},
        )

        assert response.status_code == 200
        assert response.get_json()["user"]["email"] == "alice@example.com"

    def test_login_failure(self, client, mock_verifier):
        mock_verifier.authenticate.return_value = LoginResult(
            success=False, error="Invalid email or password"
        )

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "alice@example.com", "password": "wrong"},
        )

        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid email or password"

    def test_login_requires_fields(self, client, mock_verifier):
        response = client.post("/api/v1/auth/login", json={"email": "alice@example.com"})

        assert response.status_code == 400
        mock_verifier.authenticate.assert_not_called()


class TestUnexpectedErrors:
    """Storage failures turn into a generic 500."""

    def test_storage_failure_returns_500(self, app, mock_reset_service):
        app.config["PROPAGATE_EXCEPTIONS"] = False
        mock_reset_service.request_reset.side_effect = RuntimeError(
            "connection to database lost"
        )

        response = app.test_client().post(
            "/api/v1/auth/forgot-password", json={"email": "alice@example.com"}
        )

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}
