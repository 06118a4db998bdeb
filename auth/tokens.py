"""
auth/tokens.py -- Password hashing and the JWT Token Issuer.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id as the subject claim,
       the user's email, and an expiry. TokenIssuer.verify() returns None on
       any failure -- the bearer dependency turns that into a 401. The same
       construction is used for login tokens and the reset-password token
       sent by email; neither is tracked server-side.

  Secret and expiry: passed to TokenIssuer's constructor. The app lifespan
       builds one issuer from Settings at startup; nothing here reads the
       environment, so tests inject a fixture issuer with their own secret.

  Passwords: bcrypt used directly (no passlib wrapper). The _DUMMY_HASH
       constant enables timing equalization in AuthService.validate_credentials()
       so response time does not reveal whether an email is registered.

Layer rule: no imports from api/ or lots/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User

logger = logging.getLogger("lotmarket.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps password
    fields well below that (max_length on the request models).
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is
    treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. Verify against it whenever the email is unknown.
_DUMMY_HASH: str = hash_password("lotmarket_timing_dummy")


def verify_against_dummy(plain: str) -> None:
    """Burn one bcrypt comparison for a lookup that found no user."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# JWT issue / verify
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Signs and verifies the {sub, email} claims bundle.

    Stateless: issue() is a pure function of (user, secret, ttl, now).

    Usage:
        issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
        token = issuer.issue(user)
        claims = issuer.verify(token)   # dict or None
    """

    def __init__(self, secret_key: str, expire_seconds: int) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a non-empty secret key")
        if expire_seconds <= 0:
            raise ValueError("TokenIssuer requires a positive expiry")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, user: User) -> str:
        """Encode a signed JWT for the given user.

        Args:
            user: A persisted User (id must be set).
        """
        if user.id is None:
            raise ValueError("Cannot issue a token for an unsaved user")
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict | None:
        """Decode and verify a JWT. Returns the claims dict or None on any failure.

        Expired tokens, bad signatures and tokens missing sub/email all
        collapse to None.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if not payload.get("sub") or not payload.get("email"):
            return None
        return payload
