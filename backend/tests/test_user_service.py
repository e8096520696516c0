# Overview: Pytest coverage for user records and password hashing.

import pytest

from shopledger.errors import ConflictError, InvalidArgumentError, ValidationError
from shopledger.models import User
from shopledger.services.user_service import create_user, hash_password, list_users, verify_password


class TestPasswords:
    def test_hash_roundtrip(self):
        hashed = hash_password("Password123")
        assert hashed != "Password123"
        assert hashed.startswith("$2")
        assert verify_password("Password123", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("short")

    def test_malformed_hash_fails_closed(self):
        assert verify_password("Password123", "not-a-bcrypt-hash") is False


class TestCreateUser:
    def test_create_admin(self, db_session):
        user = create_user(username="admin", password="Password123", email="admin@shop.local", role="Admin")
        assert user.is_admin
        assert verify_password("Password123", user.password_hash)

    def test_default_role_is_customer(self, db_session):
        user = create_user(username="buyer", password="Password123")
        assert user.role == "Customer"
        assert user.email is None

    def test_duplicate_username(self, db_session):
        create_user(username="buyer", password="Password123")
        with pytest.raises(ConflictError):
            create_user(username="buyer", password="Password123")

    def test_duplicate_email(self, db_session):
        create_user(username="a", password="Password123", email="same@shop.local")
        with pytest.raises(ConflictError):
            create_user(username="b", password="Password123", email="same@shop.local")

    def test_users_without_email_do_not_collide(self, db_session):
        create_user(username="a", password="Password123")
        create_user(username="b", password="Password123", email="  ")
        assert [u.username for u in list_users()] == ["a", "b"]

    def test_unknown_role(self, db_session):
        with pytest.raises(InvalidArgumentError):
            create_user(username="x", password="Password123", role="Manager")
        assert db_session.query(User).count() == 0
