from __future__ import annotations

import logging
from typing import Iterable, List

from ...domain.errors import ForbiddenError, RoleNotFoundError
from ...domain.models import ALL_ROLES, Role, User
from ...domain.ports.persistence import RoleRepository

logger = logging.getLogger(__name__)


class RoleManager:
    """Maintains the fixed role set and user role memberships."""

    def __init__(self, roles: RoleRepository) -> None:
        self._roles = roles

    def ensure_roles_exist(self, roles: Iterable[Role] = ALL_ROLES) -> List[Role]:
        ordered = sorted(roles, key=lambda role: list(Role).index(role))
        return self._roles.ensure_roles(ordered)

    def list_roles(self) -> List[Role]:
        return self._roles.list_roles()

    def assign_role(self, user_id: int, role: Role) -> User:
        """Add ``role`` to the user. Roles already held are kept."""
        if not self._roles.role_exists(role):
            raise RoleNotFoundError(role.value)
        user = self._roles.add_user_role(user_id, role)
        logger.info("Assigned role %s to user %s", role.value, user_id)
        return user

    def revoke_role(self, user_id: int, role: Role) -> User:
        if not self._roles.role_exists(role):
            raise RoleNotFoundError(role.value)
        user = self._roles.remove_user_role(user_id, role)
        logger.info("Revoked role %s from user %s", role.value, user_id)
        return user

    @staticmethod
    def is_in_role(user: User, role: Role) -> bool:
        return user.has_role(role)

    @staticmethod
    def has_any_role(user: User, roles: Iterable[Role]) -> bool:
        return any(user.has_role(role) for role in roles)

    def require_any_role(self, user: User, roles: Iterable[Role]) -> User:
        if not self.has_any_role(user, roles):
            raise ForbiddenError()
        return user
