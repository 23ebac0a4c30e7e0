from dataclasses import dataclass

from ..application.services.account_service import AccountManager
from ..application.services.admin_service import AdminWorkflow
from ..application.services.role_service import RoleManager
from .config import Settings
from ..domain.ports.notifications import NotificationGateway
from ..domain.ports.persistence import PersistenceGateway
from ..services.token_service import TokenService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    token_service: TokenService
    notifier: NotificationGateway
    account_manager: AccountManager
    role_manager: RoleManager
    admin_workflow: AdminWorkflow
