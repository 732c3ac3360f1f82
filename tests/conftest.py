"""Shared test fixtures."""
import os

import pytest
from dependency_injector import providers
from unittest.mock import MagicMock

os.environ["FLASK_ENV"] = "testing"


@pytest.fixture
def app():
    """Create application for testing with an in-memory database."""
    from authcore.app import create_app
    from authcore.extensions import db

    test_config = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Flask-SQLAlchemy session bound to the test database."""
    from authcore.extensions import db

    return db.session


@pytest.fixture
def mock_email_service(app):
    """Replace the SMTP email service with a mock that always succeeds."""
    from authcore.services.email_service import EmailResult

    service = MagicMock()
    service.send_password_reset.return_value = EmailResult(
        success=True, message_id="<test@example.com>"
    )
    service.send_password_changed.return_value = EmailResult(success=True)

    app.container.email_service.override(providers.Object(service))
    yield service
    app.container.email_service.reset_override()


@pytest.fixture
def create_user(app, db_session):
    """Factory creating users with a canonical (scrypt) password hash."""
    from authcore.models import User

    hasher = app.container.hasher()

    def _create_user(email="alice@example.com", password="OldPassword1!", **kwargs):
        user = User()
        user.email = email
        user.password_hash = hasher.hash(password) if password is not None else None
        for key, value in kwargs.items():
            setattr(user, key, value)
        db_session.add(user)
        db_session.commit()
        return user

    return _create_user
