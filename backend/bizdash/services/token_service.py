# Overview: Service-layer operations for bearer tokens; signing and verification only.

"""
Session Token Issuer/Verifier

Tokens are HS256-signed JWTs carrying {id, email, iat, exp}. Nothing is
persisted: verification is pure (signature + expiry) and never touches the
database. There is no revocation list, so logout is a client-side discard
and a leaked token stays valid until it expires.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


ALGORITHM = "HS256"
DEFAULT_LIFETIME = timedelta(hours=24)
REQUIRED_CLAIMS = ["id", "email", "iat", "exp"]


class TokenError(Exception):
    """Base class for every token verification failure."""


class TokenMissing(TokenError):
    def __init__(self):
        super().__init__("Access token required")


class TokenMalformed(TokenError):
    def __init__(self):
        super().__init__("Invalid token")


class TokenExpired(TokenError):
    def __init__(self):
        super().__init__("Token expired")


@dataclass(frozen=True)
class TokenIdentity:
    """Identity recovered from a verified token."""
    user_id: int
    email: str


def _secret(secret: str | None) -> str:
    return secret if secret is not None else current_app.config["SECRET_KEY"]


def _lifetime(lifetime: timedelta | None) -> timedelta:
    if lifetime is not None:
        return lifetime
    hours = current_app.config.get("TOKEN_LIFETIME_HOURS")
    return timedelta(hours=hours) if hours else DEFAULT_LIFETIME


def issue(
    user_id: int,
    email: str,
    *,
    secret: str | None = None,
    lifetime: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """
    Mint a signed token for an authenticated user.

    `now` exists so tests can mint tokens that are already expired.
    """
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "id": int(user_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + _lifetime(lifetime),
    }
    return jwt.encode(claims, _secret(secret), algorithm=ALGORITHM)


def verify(token: str | None, *, secret: str | None = None) -> TokenIdentity:
    """
    Validate signature and expiry and return the embedded identity.

    Raises:
        TokenMissing: token absent or blank
        TokenMalformed: undecodable, bad signature, wrong algorithm, or
            required claims missing
        TokenExpired: exp is in the past
    """
    if token is None or not token.strip():
        raise TokenMissing()

    try:
        claims = jwt.decode(
            token.strip(),
            _secret(secret),
            algorithms=[ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise TokenMalformed()

    user_id = claims.get("id")
    email = claims.get("email")
    if isinstance(user_id, bool) or not isinstance(user_id, int) or not isinstance(email, str):
        raise TokenMalformed()

    return TokenIdentity(user_id=user_id, email=email)


def extract_bearer(auth_header: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, if any."""
    if not auth_header:
        return None
    scheme, _, value = auth_header.strip().partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()
