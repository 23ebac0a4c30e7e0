from __future__ import annotations

import logging
from typing import List

from ...domain.models import STAFF_ROLES, Role, User
from ...domain.ports.persistence import UserRepository
from .role_service import RoleManager

logger = logging.getLogger(__name__)


class AdminWorkflow:
    """Staff-only account review: approval and role management.

    Every operation takes the acting user first and requires Admin or Manager.
    """

    def __init__(self, users: UserRepository, role_manager: RoleManager) -> None:
        self._users = users
        self._role_manager = role_manager

    def list_pending_users(self, actor: User) -> List[User]:
        self._role_manager.require_any_role(actor, STAFF_ROLES)
        return self._users.list_pending_users()

    def list_all_users(self, actor: User) -> List[User]:
        self._role_manager.require_any_role(actor, STAFF_ROLES)
        return self._users.list_users()

    def approve_user(self, actor: User, user_id: int) -> User:
        self._role_manager.require_any_role(actor, STAFF_ROLES)

        def _approve(user: User) -> None:
            user.is_approved = True

        user = self._users.modify_user(user_id, _approve)
        logger.info("User %s approved by %s", user_id, actor.id)
        return user

    def assign_role(self, actor: User, user_id: int, role: Role) -> User:
        self._role_manager.require_any_role(actor, STAFF_ROLES)
        return self._role_manager.assign_role(user_id, role)

    def revoke_role(self, actor: User, user_id: int, role: Role) -> User:
        self._role_manager.require_any_role(actor, STAFF_ROLES)
        return self._role_manager.revoke_role(user_id, role)
