from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TokenPurpose(str, Enum):
    CONFIRM_EMAIL = "confirm-email"
    RESET_PASSWORD = "reset-password"


@dataclass(slots=True)
class TokenRecord:
    id: int
    user_id: int
    purpose: TokenPurpose
    token_hash: str
    created_at: datetime
    expires_at: datetime
    used_at: Optional[datetime]


@dataclass(slots=True, frozen=True)
class TokenClaims:
    """What a successfully redeemed token proves."""

    user_id: int
    purpose: TokenPurpose


@dataclass(slots=True, frozen=True)
class Session:
    """Artifact handed back to the caller after a successful sign-in."""

    access_token: str
    user_id: int
    expires_at: datetime
    token_type: str = "bearer"
