from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.account_service import AccountManager
from ..application.services.admin_service import AdminWorkflow
from ..application.services.bootstrap import bootstrap
from ..application.services.role_service import RoleManager
from ..domain.errors import UserManagerError
from ..domain.ports.notifications import NotificationGateway
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.routers import account as account_router
from ..presentation.api.routers import admin as admin_router
from ..services.email_service import EmailService
from ..services.password_hasher import BcryptPasswordHasher
from ..services.password_policy import PasswordPolicy
from ..services.session_service import JwtSessionIssuer
from ..services.token_service import TokenService

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    notifier: Optional[NotificationGateway] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="User Manager", lifespan=_create_lifespan(settings, notifier))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(UserManagerError, _user_manager_error_handler)

    app.include_router(account_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


async def _user_manager_error_handler(request: Request, exc: UserManagerError) -> JSONResponse:
    content: Dict[str, Any] = {"detail": exc.message, "code": exc.code}
    failures = getattr(exc, "failures", None)
    if failures:
        content["failures"] = failures
    return JSONResponse(status_code=exc.status_code, content=content)


def _create_lifespan(settings: Settings, notifier: Optional[NotificationGateway]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        persistence = SQLitePersistence(settings.database_path)
        password_hasher = BcryptPasswordHasher(rounds=settings.password_hash_rounds)
        password_policy = PasswordPolicy(min_length=settings.password_min_length)
        if notifier is None:
            gateway: NotificationGateway = EmailService(
                smtp_host=settings.smtp_host,
                smtp_port=settings.smtp_port,
                smtp_username=settings.smtp_username,
                smtp_password=settings.smtp_password,
                from_email=settings.smtp_from_email,
                from_name=settings.smtp_from_name,
            )
        else:
            gateway = notifier
        token_service = TokenService(
            persistence,
            confirmation_expiration_hours=settings.confirmation_token_hours,
            reset_expiration_minutes=settings.reset_token_minutes,
        )
        session_issuer = JwtSessionIssuer(
            secret_key=settings.session_token_secret,
            token_exp_minutes=settings.session_token_exp_minutes,
        )
        role_manager = RoleManager(persistence)
        account_manager = AccountManager(
            persistence=persistence,
            token_service=token_service,
            notifier=gateway,
            password_hasher=password_hasher,
            session_issuer=session_issuer,
            password_policy=password_policy,
            base_url=settings.frontend_base_url,
        )
        admin_workflow = AdminWorkflow(persistence, role_manager)

        if settings.uses_default_admin_password:
            logger.warning(
                "ADMIN_PASSWORD is using the default value. Configure a secure password in production."
            )
        bootstrap(
            persistence,
            password_hasher,
            admin_email=settings.admin_email,
            admin_password=settings.admin_password,
            admin_full_name=settings.admin_full_name,
            password_policy=password_policy,
        )
        token_service.purge_expired()

        app.state.container = ApplicationContainer(  # type: ignore[attr-defined]
            settings=settings,
            persistence=persistence,
            token_service=token_service,
            notifier=gateway,
            account_manager=account_manager,
            role_manager=role_manager,
            admin_workflow=admin_workflow,
        )

        try:
            yield
        finally:
            persistence.close()

    return lifespan
