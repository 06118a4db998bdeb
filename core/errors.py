"""
core/errors.py -- Domain error taxonomy shared by auth/ and lots/.

Services raise these; they never raise HTTPException. api/main.py registers a
single exception handler that renders every MarketplaceError into the JSON
error envelope using the status_code, code and message carried here.

Layer rule: core/ is the kernel. No imports from api/, auth/, or lots/.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code: int = 400
    code: str = "bad_request"
    message: str = "Bad Request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class InvalidCredentials(MarketplaceError):
    # Same error for unknown email and wrong password -- no enumeration.
    code = "bad_credentials"
    message = "Wrong credentials provided"


class InvalidEmail(MarketplaceError):
    code = "invalid_email"
    message = "Invalid email"


class WrongCurrentPassword(MarketplaceError):
    code = "wrong_current_password"
    message = "Current password is incorrect"


class PasswordMismatch(MarketplaceError):
    code = "password_mismatch"
    message = "Passwords do not match"


class EmailAlreadyRegistered(MarketplaceError):
    status_code = 409
    code = "conflict"
    message = "A user with that email already exists"


# ---------------------------------------------------------------------------
# Resource access
# ---------------------------------------------------------------------------


class NotFound(MarketplaceError):
    status_code = 404
    code = "not_found"
    message = "Not Found"


class UserNotFound(NotFound):
    message = "User not found"


class Forbidden(MarketplaceError):
    status_code = 403
    code = "forbidden"
    message = "Forbidden resource"


class InvalidStatusTransition(MarketplaceError):
    code = "invalid_status_transition"

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"status cannot change from {from_status} to {to_status}")
