from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from ...domain.errors import (
    DeliveryError,
    EmailNotConfirmedError,
    InvalidCredentialsError,
    PendingApprovalError,
)
from ...domain.models import Role, Session, TokenPurpose, User
from ...domain.ports.notifications import NotificationGateway
from ...domain.ports.persistence import PersistenceGateway
from ...domain.ports.security import PasswordHasher, SessionIssuer
from ...services.email_service import build_confirmation_email, build_password_reset_email
from ...services.password_policy import PasswordPolicy
from ...services.token_service import TokenService

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RegistrationResult:
    user: User
    notification_sent: bool


class AccountManager:
    """Registration, confirmation, sign-in and password reset flows.

    Sign-in is gated twice: the email must be confirmed and an administrator
    must have approved the account. Each gate fails with its own error so the
    caller can explain why the account is blocked.
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        token_service: TokenService,
        notifier: NotificationGateway,
        password_hasher: PasswordHasher,
        session_issuer: SessionIssuer,
        password_policy: Optional[PasswordPolicy] = None,
        base_url: str = "http://localhost:3000",
        default_role: Optional[Role] = Role.USER,
    ) -> None:
        self._persistence = persistence
        self._tokens = token_service
        self._notifier = notifier
        self._hasher = password_hasher
        self._sessions = session_issuer
        self._policy = password_policy or PasswordPolicy()
        self._base_url = base_url.rstrip("/")
        self._default_role = default_role

    # ------------------------------------------------------------------
    def register(self, email: str, full_name: str, password: str) -> RegistrationResult:
        email_clean = self.normalize_email(email)
        if not email_clean:
            raise ValueError("Email is required.")
        self._policy.check(password)
        user = self._persistence.create_user(
            email=email_clean,
            full_name=(full_name or "").strip(),
            password_hash=self._hasher.hash(password),
            roles=[self._default_role] if self._default_role is not None else (),
        )
        logger.info("Registered user %s (id=%s), awaiting confirmation", email_clean, user.id)
        sent = self._send_confirmation(user)
        return RegistrationResult(user=user, notification_sent=sent)

    def confirm_email(self, token: str) -> User:
        claims = self._tokens.validate(token, TokenPurpose.CONFIRM_EMAIL)

        def _confirm(user: User) -> None:
            user.email_confirmed = True

        user = self._persistence.modify_user(claims.user_id, _confirm)
        logger.info("Confirmed email for user %s", user.id)
        return user

    def resend_confirmation(self, email: str) -> None:
        """Issue a fresh confirmation link; silent for unknown or already confirmed emails."""
        user = self._persistence.get_user_by_email(self.normalize_email(email))
        if not user or user.email_confirmed:
            return
        self._send_confirmation(user)

    def authenticate(self, email: str, password: str) -> Session:
        user = self._persistence.get_user_by_email(self.normalize_email(email))
        if not user:
            raise InvalidCredentialsError()
        if not user.email_confirmed:
            raise EmailNotConfirmedError()
        if not user.is_approved:
            raise PendingApprovalError()
        if not self._hasher.verify(password or "", user.password_hash):
            logger.info("Failed sign-in for user %s", user.id)
            raise InvalidCredentialsError()
        return self._sessions.issue(user)

    def request_password_reset(self, email: str) -> None:
        user = self._persistence.get_user_by_email(self.normalize_email(email))
        if not user:
            return
        token = self._tokens.issue(user.id, TokenPurpose.RESET_PASSWORD)
        subject, body = build_password_reset_email(
            user.full_name, self._link("/account/reset-password", token)
        )
        # Delivery outcome is not reported: the reply must not reveal whether the email is registered.
        self._dispatch(user.email, subject, body)

    def reset_password(self, token: str, new_password: str) -> User:
        # Checked first so a rejected password does not burn the link.
        self._policy.check(new_password)
        claims = self._tokens.validate(token, TokenPurpose.RESET_PASSWORD)
        password_hash = self._hasher.hash(new_password)

        def _set_password(user: User) -> None:
            user.password_hash = password_hash

        user = self._persistence.modify_user(claims.user_id, _set_password)
        logger.info("Password reset for user %s", user.id)
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._persistence.get_user_by_id(user_id)

    def user_for_access_token(self, access_token: str) -> Optional[User]:
        user_id = self._sessions.verify(access_token)
        if user_id is None:
            return None
        user = self._persistence.get_user_by_id(user_id)
        if not user or not user.can_sign_in:
            return None
        return user

    @staticmethod
    def normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    # ------------------------------------------------------------------
    def _send_confirmation(self, user: User) -> bool:
        token = self._tokens.issue(user.id, TokenPurpose.CONFIRM_EMAIL)
        subject, body = build_confirmation_email(
            user.full_name, self._link("/account/confirm-email", token)
        )
        return self._dispatch(user.email, subject, body)

    def _dispatch(self, to_address: str, subject: str, html_body: str) -> bool:
        try:
            self._notifier.send(to_address, subject, html_body)
        except DeliveryError as exc:
            logger.warning("Email delivery to %s failed: %s", to_address, exc)
            return False
        return True

    def _link(self, path: str, token: str) -> str:
        return f"{self._base_url}{path}?{urlencode({'token': token})}"
