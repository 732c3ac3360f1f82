"""Tests for UserRepository against SQLite."""
from uuid import uuid4

from authcore.repositories.user_repository import UserRepository


class TestUserRepository:
    """User lookups and password updates."""

    def test_find_by_email(self, db_session, create_user):
        user = create_user(email="alice@example.com")
        repo = UserRepository(db_session)

        assert repo.find_by_email("alice@example.com").id == user.id
        assert repo.find_by_email("bob@example.com") is None

    def test_find_by_email_ignores_case(self, db_session, create_user):
        """Accounts stored with mixed case are found by the normalised address."""
        user = create_user(email="Alice@Example.com")
        repo = UserRepository(db_session)

        assert repo.find_by_email("alice@example.com").id == user.id
        assert repo.find_by_email("ALICE@EXAMPLE.COM").id == user.id

    def test_update_password_hash(self, db_session, create_user):
        user = create_user()
        repo = UserRepository(db_session)

        assert repo.update_password_hash(user.id, "aa:bb") is True

        refreshed = repo.find_by_id(user.id)
        assert refreshed.password_hash == "aa:bb"
        assert refreshed.version == 2

    def test_update_password_hash_unknown_user(self, db_session):
        repo = UserRepository(db_session)

        assert repo.update_password_hash(uuid4(), "aa:bb") is False

    def test_to_dict_hides_hash(self, create_user):
        user = create_user()

        data = user.to_dict()

        assert data["email"] == "alice@example.com"
        assert "password_hash" not in data
