"""Unit tests for auth/service.py -- the Auth Flow.

Covers:
- validate_credentials(): unknown email and wrong password raise the same error
- login(): issues a verifiable token, persists is_remember_me, skips password checks
- forgot_password(): unknown email rejected, one mail per call, token not returned
- reset_password(): ordering of checks, exact confirmation match, hash replaced
- register(): hashes the password, rejects duplicate email
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from auth.mailer import MailDeliveryError
from auth.models import User
from auth.service import RESET_INSTRUCTIONS_SENT, AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer, verify_password
from core.errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidEmail,
    PasswordMismatch,
    UserNotFound,
    WrongCurrentPassword,
)
from tests.mocks import TEST_PASSWORD


class TestValidateCredentials:
    def test_returns_user_on_match(self, auth_service: AuthService, alice: User) -> None:
        user = auth_service.validate_credentials("alice@example.com", TEST_PASSWORD)
        assert user.id == alice.id

    def test_unknown_email_and_wrong_password_are_indistinguishable(
        self, auth_service: AuthService, alice: User
    ) -> None:
        with pytest.raises(InvalidCredentials) as unknown:
            auth_service.validate_credentials("nobody@example.com", TEST_PASSWORD)
        with pytest.raises(InvalidCredentials) as wrong:
            auth_service.validate_credentials("alice@example.com", "wrong-password")
        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.message == wrong.value.message == "Wrong credentials provided"
        assert unknown.value.status_code == wrong.value.status_code == 400

    def test_unknown_email_still_runs_bcrypt(self, auth_service: AuthService, monkeypatch) -> None:
        calls = []
        monkeypatch.setattr("auth.service.verify_against_dummy", lambda plain: calls.append(plain))
        with pytest.raises(InvalidCredentials):
            auth_service.validate_credentials("nobody@example.com", "guess")
        assert calls == ["guess"]


class TestLogin:
    def test_token_identifies_user(self, auth_service: AuthService, issuer: TokenIssuer, alice: User) -> None:
        token = auth_service.login(alice)
        claims = issuer.verify(token)
        assert claims["sub"] == alice.id
        assert claims["email"] == alice.email

    def test_persists_remember_me_flag(self, auth_service: AuthService, user_store: UserStore, alice: User) -> None:
        auth_service.login(alice, is_remember_me=True)
        assert user_store.get_by_id(alice.id).is_remember_me is True
        auth_service.login(alice, is_remember_me=False)
        assert user_store.get_by_id(alice.id).is_remember_me is False

    def test_does_not_recheck_password(self, auth_service: AuthService, alice: User) -> None:
        # The caller owns validation; a stale hash on the object is irrelevant here.
        alice.hashed_password = "not-a-real-hash"
        assert auth_service.login(alice)


class TestForgotPassword:
    def test_unknown_email_rejected(self, auth_service: AuthService, mailer: MagicMock) -> None:
        with pytest.raises(InvalidEmail):
            auth_service.forgot_password("nobody@example.com")
        mailer.send_reset_password_token.assert_not_called()

    def test_sends_one_mail_with_valid_token(
        self, auth_service: AuthService, issuer: TokenIssuer, mailer: MagicMock, alice: User
    ) -> None:
        message = auth_service.forgot_password("alice@example.com")

        assert message == RESET_INSTRUCTIONS_SENT
        mailer.send_reset_password_token.assert_called_once()
        sent_user, sent_token = mailer.send_reset_password_token.call_args.args
        assert sent_user.id == alice.id
        assert issuer.verify(sent_token)["email"] == "alice@example.com"
        assert sent_token not in message

    def test_delivery_failure_propagates(self, auth_service: AuthService, mailer: MagicMock, alice: User) -> None:
        mailer.send_reset_password_token.side_effect = MailDeliveryError("provider down")
        with pytest.raises(MailDeliveryError):
            auth_service.forgot_password("alice@example.com")
        assert mailer.send_reset_password_token.call_count == 1


class TestResetPassword:
    def test_changes_password(self, auth_service: AuthService, user_store: UserStore, alice: User) -> None:
        returned = auth_service.reset_password("alice@example.com", TEST_PASSWORD, "brand-new-pass", "brand-new-pass")

        stored = user_store.get_by_id(alice.id)
        assert verify_password("brand-new-pass", stored.hashed_password)
        assert not verify_password(TEST_PASSWORD, stored.hashed_password)
        # Acknowledgement is the user as read before the update.
        assert returned.id == alice.id
        assert returned.hashed_password == alice.hashed_password

    def test_absent_user_raises_not_found(self, auth_service: AuthService) -> None:
        with pytest.raises(UserNotFound):
            auth_service.reset_password("ghost@example.com", "x", "new-password", "new-password")

    def test_wrong_current_password(self, auth_service: AuthService, alice: User) -> None:
        with pytest.raises(WrongCurrentPassword):
            auth_service.reset_password("alice@example.com", "wrong", "brand-new-pass", "brand-new-pass")

    @pytest.mark.parametrize(
        "new,confirmation",
        [
            ("brand-new-pass", "brand-new-pasS"),
            ("brand-new-pass", "brand-new-pass "),
            ("brand-new-pass", " brand-new-pass"),
            ("brand-new-pass", ""),
        ],
    )
    def test_confirmation_must_match_exactly(
        self, auth_service: AuthService, user_store: UserStore, alice: User, new: str, confirmation: str
    ) -> None:
        with pytest.raises(PasswordMismatch):
            auth_service.reset_password("alice@example.com", TEST_PASSWORD, new, confirmation)
        assert verify_password(TEST_PASSWORD, user_store.get_by_id(alice.id).hashed_password)

    def test_current_password_checked_before_confirmation(self, auth_service: AuthService, alice: User) -> None:
        with pytest.raises(WrongCurrentPassword):
            auth_service.reset_password("alice@example.com", "wrong", "aaaaaaaa", "bbbbbbbb")


class TestRegister:
    def test_stores_hash_not_plaintext(self, auth_service: AuthService) -> None:
        user = auth_service.register("dave@example.com", "plain-password")
        assert user.id
        assert user.hashed_password != "plain-password"
        assert verify_password("plain-password", user.hashed_password)

    def test_duplicate_email_rejected(self, auth_service: AuthService, alice: User) -> None:
        with pytest.raises(EmailAlreadyRegistered):
            auth_service.register("alice@example.com", "another-password")
