# Overview: User records with bcrypt password hashes (no login or session flows).

"""
User Service

- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Username unique; email unique when given
"""

from __future__ import annotations

import logging

import bcrypt

from ..extensions import db
from ..errors import ConflictError, InvalidArgumentError, ValidationError
from ..models import User
from ..models.auth import ROLE_CUSTOMER, ROLES
from ..time_utils import utcnow
from ..validation import require_text
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check; malformed hashes simply fail."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(
    *,
    username: str,
    password: str,
    email: str | None = None,
    full_name: str | None = None,
    role: str = ROLE_CUSTOMER,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: blank username or short password
        InvalidArgumentError: role is not Admin or Customer
        ConflictError: username or email already taken
    """
    username = require_text("username", username)
    email = (email or "").strip() or None
    if role not in ROLES:
        raise InvalidArgumentError(f"Invalid role {role!r}. Must be one of: {', '.join(ROLES)}")
    password_hash = hash_password(password)

    def _op():
        if db.session.query(User.id).filter(User.username == username).first() is not None:
            raise ConflictError(f"Username {username!r} already exists")
        if email and db.session.query(User.id).filter(User.email == email).first() is not None:
            raise ConflictError(f"Email {email!r} already exists")

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=password_hash,
            role=role,
            is_active=True,
            created_at=utcnow(),
        )
        db.session.add(user)
        db.session.flush()
        logger.info("User %s created with role %s", username, role)
        return user

    return run_in_transaction(_op)


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()
