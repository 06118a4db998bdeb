"""
API request and response models for Lot Market REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
lots/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire format is camelCase (currentPrice, isRememberMe, ...). Python attributes
stay snake_case; the alias generator does the translation and
populate_by_name lets handlers construct models with either spelling.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User
from lots.models import Lot, LotStatus

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt ignores input past 72 bytes; keep passwords comfortably under it.
_PASSWORD_MAX = 64


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorResponse(_CamelModel):
    """Error envelope returned on every 4xx/5xx.

    message is a list of per-field strings for request validation failures
    and a single string otherwise.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    message: Union[str, list[str]]
    error: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Auth -- request models
#
# Password fields are deliberately NOT whitespace-stripped: a trailing space
# is part of the password, and newPassword / newPasswordConfirmation are
# compared exactly.
# ---------------------------------------------------------------------------


class LoginRequest(_CamelModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    is_remember_me: bool = False


class RegisterRequest(_CamelModel):
    """Request body for POST /api/auth/register."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8, max_length=_PASSWORD_MAX)


class ForgotPasswordRequest(_CamelModel):
    """Request body for POST /api/auth/forgot-password."""

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)


class ResetPasswordRequest(_CamelModel):
    """Request body for PATCH /api/auth/reset-password.

    The email comes from the bearer token, not from the body.
    """

    current_password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    new_password: str = Field(min_length=8, max_length=_PASSWORD_MAX)
    new_password_confirmation: str = Field(min_length=1, max_length=_PASSWORD_MAX)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class UserResponse(_CamelModel):
    """Public view of a User. The password hash is never serialized."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    is_remember_me: bool
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            is_remember_me=user.is_remember_me,
            created_at=user.created_at,
        )


# ---------------------------------------------------------------------------
# Lots -- request models
# ---------------------------------------------------------------------------


class LotCreate(_CamelModel):
    """Request body for POST /api/lots.

    Prices accept numeric strings ("250") as well as numbers. Times accept
    ISO 8601 strings or epoch milliseconds. Any userId in the body is ignored:
    the owner is always the authenticated caller.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    image: Optional[str] = Field(default=None, max_length=2048)
    status: LotStatus
    current_price: float = Field(ge=0, allow_inf_nan=False)
    estimated_price: float = Field(ge=0, allow_inf_nan=False)
    lot_start_time: datetime
    lot_end_time: datetime


class LotUpdate(_CamelModel):
    """Request body for PATCH /api/lots/{lot_id}.

    Every field is optional; a supplied field must satisfy the same
    constraint as on create. null is treated as "not supplied".
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    image: Optional[str] = Field(default=None, max_length=2048)
    status: Optional[LotStatus] = None
    current_price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    estimated_price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    lot_start_time: Optional[datetime] = None
    lot_end_time: Optional[datetime] = None

    def changes(self) -> dict:
        """Return the supplied fields in the store's vocabulary."""
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in data:
            data["status"] = data["status"].value
        for key in ("lot_start_time", "lot_end_time"):
            if key in data:
                data[key] = data[key].isoformat()
        return data


# ---------------------------------------------------------------------------
# Lots -- response model
# ---------------------------------------------------------------------------


class LotResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    image: Optional[str]
    status: str
    current_price: float
    estimated_price: float
    lot_start_time: datetime
    lot_end_time: datetime
    user_id: str
    created_at: str
    updated_at: str

    @classmethod
    def from_lot(cls, lot: Lot) -> "LotResponse":
        """Build a LotResponse from a domain Lot.

        The mapping lives here, colocated with the output model, rather than
        scattered across route handlers.
        """
        return cls(
            id=lot.id,
            title=lot.title,
            image=lot.image,
            status=lot.status,
            current_price=lot.current_price,
            estimated_price=lot.estimated_price,
            lot_start_time=lot.lot_start_time,
            lot_end_time=lot.lot_end_time,
            user_id=lot.user_id,
            created_at=lot.created_at,
            updated_at=lot.updated_at,
        )
