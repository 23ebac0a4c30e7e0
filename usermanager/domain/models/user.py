"""User domain model for account management and approval gating."""

from datetime import datetime, timezone
from typing import Iterable, Optional

from .role import Role


class User:
    """
    User entity shared by regular accounts and staff accounts.

    Attributes:
        id: Unique identifier
        email: User email address (unique, stored lower case)
        full_name: Display name supplied at registration
        password_hash: Hashed password
        email_confirmed: Whether the confirmation link has been redeemed
        is_approved: Whether an administrator approved the account
        roles: Roles currently held by the user
        version: Optimistic concurrency token, bumped on every write
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        full_name: str,
        password_hash: str,
        email_confirmed: bool = False,
        is_approved: bool = False,
        roles: Optional[Iterable[Role]] = None,
        version: int = 1,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.full_name = full_name
        self.password_hash = password_hash
        self.email_confirmed = email_confirmed
        self.is_approved = is_approved
        self.roles = frozenset(roles or ())
        self.version = version
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def can_sign_in(self) -> bool:
        return self.email_confirmed and self.is_approved

    def __repr__(self) -> str:
        return (
            f"<User id={self.id} email={self.email} confirmed={self.email_confirmed} "
            f"approved={self.is_approved} roles={sorted(role.value for role in self.roles)}>"
        )
