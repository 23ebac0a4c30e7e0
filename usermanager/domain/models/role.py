"""Role enumeration used for coarse-grained authorization."""

from enum import Enum
from typing import FrozenSet

from ..errors import RoleNotFoundError


class Role(str, Enum):
    """Fixed set of roles known to the application."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    USER = "User"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Resolve a role name case-insensitively, raising RoleNotFoundError otherwise."""
        cleaned = (value or "").strip().lower()
        for role in cls:
            if role.value.lower() == cleaned:
                return role
        raise RoleNotFoundError(value)


ALL_ROLES: FrozenSet[Role] = frozenset(Role)
STAFF_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.MANAGER})
