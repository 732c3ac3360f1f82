"""Auth request schemas."""
from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

MIN_PASSWORD_LENGTH = 8


class ForgotPasswordRequestSchema(Schema):
    """Body of POST /forgot-password."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)


class VerifyResetTokenRequestSchema(Schema):
    """Body of POST /verify-reset-token."""

    class Meta:
        unknown = EXCLUDE

    token = fields.Str(required=True, validate=validate.Length(min=1, max=512))


class ResetPasswordRequestSchema(Schema):
    """Body of POST /reset-password."""

    class Meta:
        unknown = EXCLUDE

    token = fields.Str(required=True, validate=validate.Length(min=1, max=512))
    password = fields.Str(
        required=True,
        validate=validate.Length(
            min=MIN_PASSWORD_LENGTH,
            error="Password must be at least 8 characters",
        ),
    )
    confirm_password = fields.Str(
        required=True, data_key="confirmPassword", validate=validate.Length(min=1)
    )

    @validates_schema
    def validate_passwords_match(self, data, **kwargs):
        """Both password fields must be identical."""
        if data.get("password") != data.get("confirm_password"):
            raise ValidationError("Passwords do not match", "confirmPassword")


class LoginRequestSchema(Schema):
    """Body of POST /login."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=1))
