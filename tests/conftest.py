from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest

from usermanager.application.services.account_service import AccountManager
from usermanager.application.services.admin_service import AdminWorkflow
from usermanager.application.services.role_service import RoleManager
from usermanager.domain.errors import DeliveryError
from usermanager.infrastructure.persistence.sqlite import SQLitePersistence
from usermanager.services.password_hasher import BcryptPasswordHasher
from usermanager.services.session_service import JwtSessionIssuer
from usermanager.services.token_service import TokenService

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
STRONG_PASSWORD = "Passw0rd!"

_TOKEN_RE = re.compile(r"token=([A-Za-z0-9_\-]+)")


class RecordingNotifier:
    """Notification gateway double that keeps every message it is asked to send."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise DeliveryError("SMTP unavailable")
        self.sent.append((to_address, subject, html_body))

    def last_token(self, to_address: str) -> str:
        for address, _, body in reversed(self.sent):
            if address == to_address:
                match = _TOKEN_RE.search(body)
                assert match, "email does not contain a token link"
                return match.group(1)
        raise AssertionError(f"no email sent to {to_address}")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def persistence(tmp_path):
    store = SQLitePersistence(tmp_path / "users.db")
    RoleManager(store).ensure_roles_exist()
    yield store
    store.close()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_service(persistence, clock) -> TokenService:
    return TokenService(persistence, clock=clock)


@pytest.fixture
def session_issuer() -> JwtSessionIssuer:
    return JwtSessionIssuer(secret_key=TEST_SECRET, token_exp_minutes=30)


@pytest.fixture
def account_manager(persistence, token_service, notifier, hasher, session_issuer) -> AccountManager:
    return AccountManager(
        persistence=persistence,
        token_service=token_service,
        notifier=notifier,
        password_hasher=hasher,
        session_issuer=session_issuer,
        base_url="https://app.example.com/",
    )


@pytest.fixture
def role_manager(persistence) -> RoleManager:
    return RoleManager(persistence)


@pytest.fixture
def admin_workflow(persistence, role_manager) -> AdminWorkflow:
    return AdminWorkflow(persistence, role_manager)


@pytest.fixture
def make_user(persistence, hasher):
    def _make(email: str, *, confirmed: bool = True, approved: bool = True, roles=()):
        user = persistence.create_user(
            email=email,
            full_name=email.split("@")[0].title(),
            password_hash=hasher.hash(STRONG_PASSWORD),
            email_confirmed=confirmed,
            is_approved=approved,
        )
        for role in roles:
            user = persistence.add_user_role(user.id, role)
        return user

    return _make
