"""Service for single-use email confirmation and password reset tokens."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from ..domain.models import TokenClaims, TokenPurpose
from ..domain.ports.persistence import TokenRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and redeems opaque, time-bounded tokens."""

    def __init__(
        self,
        token_repository: TokenRepository,
        confirmation_expiration_hours: int = 24,
        reset_expiration_minutes: int = 120,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.token_repository = token_repository
        self.lifetimes: Dict[TokenPurpose, timedelta] = {
            TokenPurpose.CONFIRM_EMAIL: timedelta(hours=confirmation_expiration_hours),
            TokenPurpose.RESET_PASSWORD: timedelta(minutes=reset_expiration_minutes),
        }
        self.clock = clock

    def issue(self, user_id: int, purpose: TokenPurpose) -> str:
        """
        Create a new token for a user.

        Args:
            user_id: Subject of the token
            purpose: What the token may be redeemed for

        Returns:
            The plaintext token. Only its hash is stored, so this is the
            single chance to hand it to the user.
        """
        plaintext = secrets.token_urlsafe(32)
        expires_at = self.clock() + self.lifetimes[purpose]
        self.token_repository.save_token(
            user_id=user_id,
            purpose=purpose,
            token_hash=self._hash_token(plaintext),
            expires_at=expires_at,
        )
        logger.info("Issued %s token for user %s", purpose.value, user_id)
        return plaintext

    def validate(self, token: str, purpose: Optional[TokenPurpose] = None) -> TokenClaims:
        """
        Redeem a token, invalidating it in the same step.

        Args:
            token: Plaintext token received from the user
            purpose: When given, tokens issued for anything else are rejected
                without being consumed

        Raises:
            TokenInvalidError: Unknown token or wrong purpose
            TokenExpiredError: Token lifetime has passed
            TokenAlreadyUsedError: Token was redeemed before
        """
        record = self.token_repository.consume_token(
            self._hash_token(token or ""), self.clock(), purpose
        )
        return TokenClaims(user_id=record.user_id, purpose=record.purpose)

    def purge_expired(self) -> int:
        removed = self.token_repository.purge_expired_tokens(self.clock())
        if removed:
            logger.info("Purged %d expired tokens", removed)
        return removed

    @staticmethod
    def _hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
