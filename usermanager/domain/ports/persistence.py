from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol

from ..models import Role, TokenPurpose, TokenRecord, User


class UserRepository(Protocol):
    """Persistence functions related to user accounts."""

    def create_user(
        self,
        email: str,
        full_name: str,
        password_hash: str,
        *,
        email_confirmed: bool = False,
        is_approved: bool = False,
        roles: Iterable[Role] = (),
    ) -> User:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def update_user(self, user: User) -> User:
        ...

    def modify_user(self, user_id: int, change: Callable[[User], None]) -> User:
        ...

    def list_pending_users(self) -> List[User]:
        ...

    def list_users(self) -> List[User]:
        ...

    def delete_user(self, user_id: int) -> None:
        ...


class RoleRepository(Protocol):
    """Persistence functions related to roles and role membership."""

    def ensure_roles(self, roles: Iterable[Role]) -> List[Role]:
        ...

    def list_roles(self) -> List[Role]:
        ...

    def role_exists(self, role: Role) -> bool:
        ...

    def add_user_role(self, user_id: int, role: Role) -> User:
        ...

    def remove_user_role(self, user_id: int, role: Role) -> User:
        ...


class TokenRepository(Protocol):
    """Persistence functions related to single-use confirmation and reset tokens."""

    def save_token(
        self,
        user_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> TokenRecord:
        ...

    def consume_token(
        self,
        token_hash: str,
        now: datetime,
        purpose: Optional[TokenPurpose] = None,
    ) -> TokenRecord:
        ...

    def get_tokens_for_user(self, user_id: int) -> List[TokenRecord]:
        ...

    def purge_expired_tokens(self, now: datetime) -> int:
        ...


class PersistenceGateway(
    UserRepository,
    RoleRepository,
    TokenRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    pass
