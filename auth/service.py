"""
auth/service.py -- Auth Flow: login, registration and the password lifecycle.

AuthService orchestrates the Credential Store (UserStore), the Token Issuer
and the Notification Sender (ResetPasswordMailer). Route handlers call these
methods and never touch hashes or tokens directly.

Errors are raised as core.errors.MarketplaceError subclasses; api/main.py
renders them. Store and mail failures are not translated -- they propagate
to the catch-all 500 handler.

Known race: reset_password() reads the user, then writes the new hash in a
separate statement. A concurrent password change in between is overwritten.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.mailer import ResetPasswordMailer
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password, verify_against_dummy, verify_password
from core.errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidEmail,
    PasswordMismatch,
    UserNotFound,
    WrongCurrentPassword,
)

logger = logging.getLogger("lotmarket.auth")

RESET_INSTRUCTIONS_SENT = "The instruction was successfully sent to the user mail"


class AuthService:
    def __init__(self, users: UserStore, tokens: TokenIssuer, mailer: ResetPasswordMailer) -> None:
        self.users = users
        self.tokens = tokens
        self.mailer = mailer

    def validate_credentials(self, email: str, password: str) -> User:
        """Return the user whose email and password match.

        Always runs bcrypt whether or not the email exists, and raises the
        same InvalidCredentials for both failure modes, so neither the
        response body nor its timing reveals which factor was wrong.
        """
        user = self.users.get_by_email(email)
        if user is None:
            verify_against_dummy(password)
            logger.info("Login rejected: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.info("Login rejected: wrong password for user %s", user.id)
            raise InvalidCredentials()
        return user

    def login(self, user: User, is_remember_me: bool = False) -> str:
        """Issue a token for an already validated user and persist is_remember_me.

        Does not re-check the password; callers must go through
        validate_credentials() first.
        """
        token = self.tokens.issue(user)
        self.users.update_user(user.id, is_remember_me=is_remember_me)
        user.is_remember_me = is_remember_me
        logger.info("User %s logged in (remember_me=%s)", user.id, is_remember_me)
        return token

    def register(self, email: str, password: str) -> User:
        try:
            user_id = self.users.create_user(User(email=email, hashed_password=hash_password(password)))
        except IntegrityError as exc:
            raise EmailAlreadyRegistered() from exc
        logger.info("Registered user %s", user_id)
        return self.users.get_by_id(user_id)

    def forgot_password(self, email: str) -> str:
        """Email a reset token to the user and return the acknowledgement message.

        The token itself is never returned to the caller. One send is
        attempted per call; MailDeliveryError propagates.
        """
        user = self.users.get_by_email(email)
        if user is None:
            raise InvalidEmail()
        token = self.tokens.issue(user)
        self.mailer.send_reset_password_token(user, token)
        return RESET_INSTRUCTIONS_SENT

    def reset_password(
        self,
        email: str,
        current_password: str,
        new_password: str,
        new_password_confirmation: str,
    ) -> User:
        """Replace the user's password hash after checking the current password.

        Checks run in order: user exists, current password matches, new
        password equals its confirmation (exact comparison, whitespace
        included). Returns the user as read before the update.
        """
        user = self.users.get_by_email(email)
        if user is None:
            raise UserNotFound()
        if not verify_password(current_password, user.hashed_password):
            raise WrongCurrentPassword()
        if new_password != new_password_confirmation:
            raise PasswordMismatch()
        self.users.update_user(user.id, hashed_password=hash_password(new_password))
        logger.info("Password changed for user %s", user.id)
        return user
