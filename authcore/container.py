"""Dependency injection container."""
from dependency_injector import containers, providers

from authcore.repositories.user_repository import UserRepository
from authcore.repositories.password_reset_repository import PasswordResetRepository

from authcore.services.activity_logger import ActivityLogger
from authcore.services.credential_verifier import CredentialVerifier
from authcore.services.email_service import EmailService
from authcore.services.password_reset_service import PasswordResetService
from authcore.services.scrypt_hasher import ScryptHasher


class Container(containers.DeclarativeContainer):
    """
    Application dependency injection container.

    Uses dependency-injector for managing service dependencies
    and lifecycle.

    Usage:
        container = Container()
        container.config.from_dict(app.config)
        container.db_session.override(db.session)

        reset_service = container.password_reset_service()
    """

    # Configuration, loaded from the Flask config in create_app
    config = providers.Configuration()

    # Database session - must be overridden with actual db.session
    db_session = providers.Dependency()

    # ==================
    # Repositories
    # ==================

    user_repository = providers.Factory(
        UserRepository,
        session=db_session
    )

    password_reset_repository = providers.Factory(
        PasswordResetRepository,
        session=db_session
    )

    # ==================
    # Infrastructure
    # ==================

    hasher = providers.Singleton(
        ScryptHasher,
        n=config.SCRYPT_N,
        r=config.SCRYPT_R,
        p=config.SCRYPT_P,
    )

    activity_logger = providers.Singleton(
        ActivityLogger
    )

    email_service = providers.Singleton(
        EmailService,
        smtp_host=config.SMTP_HOST,
        smtp_port=config.SMTP_PORT,
        smtp_user=config.SMTP_USER,
        smtp_password=config.SMTP_PASSWORD,
        from_email=config.MAIL_FROM,
        from_name=config.MAIL_FROM_NAME,
        use_tls=config.SMTP_USE_TLS,
    )

    # ==================
    # Services
    # ==================

    credential_verifier = providers.Factory(
        CredentialVerifier,
        user_repository=user_repository,
        hasher=hasher,
        activity_logger=activity_logger,
    )

    password_reset_service = providers.Factory(
        PasswordResetService,
        user_repository=user_repository,
        reset_repository=password_reset_repository,
        credential_verifier=credential_verifier,
        email_service=email_service,
        hasher=hasher,
        activity_logger=activity_logger,
        reset_url_base=config.SITE_URL,
        token_ttl_seconds=config.PASSWORD_RESET_TOKEN_TTL_SECONDS,
        rate_limit_seconds=config.PASSWORD_RESET_RATE_LIMIT_SECONDS,
        scan_limit=config.PASSWORD_RESET_SCAN_LIMIT,
    )
