"""JWT bearer sessions handed out after a successful sign-in."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..domain.models import Session, User

logger = logging.getLogger(__name__)


class JwtSessionIssuer:
    """Signs short-lived HS256 access tokens carrying the user id."""

    def __init__(
        self,
        secret_key: str,
        token_exp_minutes: int = 1440,
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise RuntimeError("SESSION_TOKEN_SECRET is not configured.")
        if secret_key == "change-me":
            logger.warning(
                "SESSION_TOKEN_SECRET is using the default value. Configure a secure secret in production."
            )
        self._secret_key = secret_key
        self._token_exp_minutes = token_exp_minutes
        self._algorithm = algorithm

    def issue(self, user: User) -> Session:
        now = datetime.now(tz=timezone.utc)
        expire = now + timedelta(minutes=self._token_exp_minutes)
        payload = {"sub": str(user.id), "email": user.email, "iat": now, "exp": expire}
        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return Session(access_token=token, user_id=user.id, expires_at=expire)

    def verify(self, access_token: str) -> Optional[int]:
        try:
            payload = jwt.decode(access_token, self._secret_key, algorithms=[self._algorithm])
        except jwt.InvalidTokenError:
            return None
        try:
            return int(payload.get("sub"))
        except (TypeError, ValueError):
            return None
