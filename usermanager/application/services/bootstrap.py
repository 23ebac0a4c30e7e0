"""Start-up seeding of roles and the first administrator account."""

from __future__ import annotations

import logging
from typing import Optional

from ...domain.errors import DuplicateEmailError
from ...domain.models import Role, User
from ...domain.ports.persistence import PersistenceGateway
from ...domain.ports.security import PasswordHasher
from ...services.password_policy import PasswordPolicy
from .role_service import RoleManager

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@usermanager.com"


def bootstrap(
    persistence: PersistenceGateway,
    password_hasher: PasswordHasher,
    admin_email: str = DEFAULT_ADMIN_EMAIL,
    admin_password: Optional[str] = None,
    admin_full_name: str = "Administrator",
    password_policy: Optional[PasswordPolicy] = None,
) -> Optional[User]:
    """Ensure the fixed roles and a usable administrator exist.

    Safe to run on every start. The administrator skips the confirmation and
    approval gates since nobody else could approve it. An existing account is
    repaired but its password is left alone. Without a password no account is
    created.
    """
    RoleManager(persistence).ensure_roles_exist()

    email = admin_email.strip().lower()
    admin = persistence.get_user_by_email(email)
    if admin is None:
        if not admin_password:
            logger.warning("No administrator password configured; skipping creation of %s", email)
            return None
        (password_policy or PasswordPolicy()).check(admin_password)
        logger.info("Creating default administrator account for %s", email)
        try:
            admin = persistence.create_user(
                email=email,
                full_name=admin_full_name,
                password_hash=password_hasher.hash(admin_password),
                email_confirmed=True,
                is_approved=True,
            )
        except DuplicateEmailError:
            # Another process seeded it first.
            admin = persistence.get_user_by_email(email)
            if admin is None:
                raise
    elif not admin.can_sign_in:

        def _unlock(user: User) -> None:
            user.email_confirmed = True
            user.is_approved = True

        admin = persistence.modify_user(admin.id, _unlock)

    if not admin.has_role(Role.ADMIN):
        admin = persistence.add_user_role(admin.id, Role.ADMIN)
    return admin
