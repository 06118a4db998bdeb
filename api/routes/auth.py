"""
api/routes/auth.py -- Authentication and password lifecycle REST endpoints.

Routes:
  POST  /api/auth/login            -- email + password; returns {token}
  POST  /api/auth/register         -- create an account
  POST  /api/auth/forgot-password  -- email a reset token; returns {message}
  PATCH /api/auth/reset-password   -- change password (requires auth)
  GET   /api/auth/me               -- current user info (requires auth)

Security:
  POST /login and POST /forgot-password are rate-limited per IP
  (LOGIN_RATE_LIMIT, default 10/minute).
  validate_credentials() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on responses that carry a token.

Domain errors (InvalidCredentials, PasswordMismatch, ...) are raised by
AuthService and rendered by the MarketplaceError handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.service import AuthService

# Auth policy:
# - POST  /api/auth/login:           public
# - POST  /api/auth/register:        public
# - POST  /api/auth/forgot-password: public
# - PATCH /api/auth/reset-password:  requires auth (get_current_user); email taken from the token
# - GET   /api/auth/me:              requires auth (get_current_user)
router = APIRouter()


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # must sit BELOW @router so the registered endpoint is the limited one
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a signed token.

    Wrong email and wrong password produce the same 400 "Wrong credentials
    provided" so the response does not reveal which one was wrong.
    """
    service = _auth_service(request)
    user = service.validate_credentials(body.email, body.password)
    token = service.login(user, is_remember_me=body.is_remember_me)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create a new account. Returns 409 if the email is already registered."""
    user = _auth_service(request).register(body.email, body.password)
    return UserResponse.from_user(user)


@router.post("/auth/forgot-password", response_model=MessageResponse)
@limiter.limit(login_rate_limit)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Email reset-password instructions. The token is never returned in the response."""
    message = _auth_service(request).forgot_password(body.email)
    return MessageResponse(message=message)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.patch("/auth/reset-password", response_model=UserResponse)
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Change the authenticated user's password.

    Works with a login token or the token from the reset-password email;
    both carry the email this handler resets.
    """
    user = _auth_service(request).reset_password(
        current_user.email,
        body.current_password,
        body.new_password,
        body.new_password_confirmation,
    )
    return UserResponse.from_user(user)


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    return UserResponse.from_user(current_user)
