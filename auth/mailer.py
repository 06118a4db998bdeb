"""
auth/mailer.py -- Notification Sender for reset-password instructions.

Sends one transactional email per forgot-password request through the Brevo
API (sib_api_v3_sdk). There is no retry here: a failed send raises
MailDeliveryError, which propagates out of AuthService.forgot_password() and
is rendered as a generic 500 by the catch-all handler in api/main.py.

The API client is built lazily on first send so the app can start (and tests
can run) without a Brevo key; a send without a key is a delivery failure.

Layer rule: no imports from api/ or lots/.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

if TYPE_CHECKING:
    from auth.models import User

logger = logging.getLogger("lotmarket.mail")


class MailDeliveryError(Exception):
    """The reset-password message could not be handed to the mail provider."""


class ResetPasswordMailer:
    """Delivers reset-password tokens by email.

    Usage:
        mailer = ResetPasswordMailer(api_key, sender_email, sender_name, reset_url)
        mailer.send_reset_password_token(user, token)
    """

    def __init__(self, api_key: str, sender_email: str, sender_name: str, reset_url: str) -> None:
        self._api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.reset_url = reset_url
        self._api: sib_api_v3_sdk.TransactionalEmailsApi | None = None

    def _transactional_api(self) -> sib_api_v3_sdk.TransactionalEmailsApi:
        if not self._api_key:
            raise MailDeliveryError("Mail delivery is not configured (BREVO_API_KEY is empty).")
        if self._api is None:
            configuration = sib_api_v3_sdk.Configuration()
            configuration.api_key["api-key"] = self._api_key
            self._api = sib_api_v3_sdk.TransactionalEmailsApi(sib_api_v3_sdk.ApiClient(configuration))
        return self._api

    def reset_link(self, token: str) -> str:
        return f"{self.reset_url}?{urlencode({'token': token})}"

    def send_reset_password_token(self, user: User, token: str) -> None:
        """Send the reset instructions containing token to user.email.

        Raises MailDeliveryError if the provider rejects the request.
        """
        api = self._transactional_api()
        link = html.escape(self.reset_link(token), quote=True)
        message = sib_api_v3_sdk.SendSmtpEmail(
            to=[{"email": user.email}],
            sender={"name": self.sender_name, "email": self.sender_email},
            subject="Reset your Lot Market password",
            html_content=(
                "Hello,<br>We received a request to reset your password.<br>"
                f'<a href="{link}">Follow this link to choose a new one.</a><br><br>'
                "If you did not request this, you can ignore this email."
            ),
        )
        try:
            api.send_transac_email(message)
        except ApiException as exc:
            logger.error("Reset-password email to user %s failed: %s", user.id, exc.reason)
            raise MailDeliveryError(f"Mail provider rejected the message: {exc.reason}") from exc
        logger.info("Reset-password email sent to user %s", user.id)
