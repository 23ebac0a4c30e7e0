"""Domain models for the user manager."""

from .role import ALL_ROLES, STAFF_ROLES, Role
from .token import Session, TokenClaims, TokenPurpose, TokenRecord
from .user import User

__all__ = [
    "ALL_ROLES",
    "STAFF_ROLES",
    "Role",
    "Session",
    "TokenClaims",
    "TokenPurpose",
    "TokenRecord",
    "User",
]
