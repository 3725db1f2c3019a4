# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Credential Store

Users register with name, email and password. Passwords are hashed with
bcrypt before they touch the database; the plaintext is never stored or
logged.

SECURITY NOTES:
- bcrypt cost factor comes from BCRYPT_ROUNDS (default 12, never below 10)
- Login failures are one generic AuthFailure whether the email is unknown
  or the password is wrong, so accounts cannot be enumerated
- Unknown emails still pay for a bcrypt comparison to keep timing uniform
- Email uniqueness is enforced by the database constraint at insert time
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import User
from ..validation import DuplicateEmail, ValidationError


MIN_BCRYPT_ROUNDS = 10


class AuthFailure(Exception):
    """Raised for any failed login. Deliberately carries no detail."""

    def __init__(self):
        super().__init__("Invalid credentials")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _bcrypt_rounds() -> int:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    return max(int(rounds), MIN_BCRYPT_ROUNDS)


@lru_cache(maxsize=None)
def dummy_hash(rounds: int) -> str:
    """Compared against when the email is unknown; never matches a real password."""
    return bcrypt.hashpw(b"not-a-real-password", bcrypt.gensalt(rounds=rounds)).decode('utf-8')


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Rounds default to the app's BCRYPT_ROUNDS. Stored as a utf-8 string.
    """
    if rounds is None:
        rounds = _bcrypt_rounds()
    salt = bcrypt.gensalt(rounds=max(rounds, MIN_BCRYPT_ROUNDS))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A non-string password is
    checked as the empty string so the comparison still runs.
    """
    if not isinstance(password, str):
        password = ""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Corrupt or non-bcrypt hash in the row
        return False


def register(name: str, email: str, password: str, *, session: Session | None = None) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: name, email or password missing/blank
        DuplicateEmail: email already registered
    """
    if session is None:
        session = db.session
    missing = [
        field_name
        for field_name, value in (("name", name), ("email", email), ("password", password))
        if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise ValidationError("All fields are required", fields=missing)

    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=hash_password(password),
    )

    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateEmail()

    current_app.logger.info("Registered user id=%s", user.id)
    return user


def verify_credentials(email: str, password: str, *, session: Session | None = None) -> User:
    """
    Authenticate by email and password.

    Returns the User on success; raises AuthFailure otherwise. Both the
    unknown-email and wrong-password paths run one bcrypt comparison at
    the configured cost factor.
    """
    if session is None:
        session = db.session
    user = None
    if isinstance(email, str) and email.strip():
        user = session.query(User).filter_by(email=normalize_email(email)).first()

    if user is None:
        verify_password(password, dummy_hash(_bcrypt_rounds()))
        raise AuthFailure()

    if not verify_password(password, user.password_hash):
        raise AuthFailure()

    return user


def get_user(user_id: int, *, session: Session | None = None) -> User | None:
    if session is None:
        session = db.session
    return session.get(User, user_id)
