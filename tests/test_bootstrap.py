import pytest

from usermanager.application.services.bootstrap import DEFAULT_ADMIN_EMAIL, bootstrap
from usermanager.domain.errors import WeakPasswordError
from usermanager.domain.models import Role
from usermanager.infrastructure.persistence.sqlite import SQLitePersistence


@pytest.fixture
def empty_store(tmp_path):
    store = SQLitePersistence(tmp_path / "fresh.db")
    yield store
    store.close()


def test_bootstrap_twice_leaves_one_admin_and_three_roles(empty_store, hasher):
    bootstrap(empty_store, hasher, admin_password="Admin@123")
    bootstrap(empty_store, hasher, admin_password="Admin@123")

    assert empty_store.list_roles() == [Role.ADMIN, Role.MANAGER, Role.USER]
    users = empty_store.list_users()
    assert [user.email for user in users] == [DEFAULT_ADMIN_EMAIL]
    admin = users[0]
    assert admin.email_confirmed is True
    assert admin.is_approved is True
    assert admin.roles == {Role.ADMIN}
    assert hasher.verify("Admin@123", admin.password_hash)


def test_bootstrap_keeps_existing_admin_password(empty_store, hasher):
    bootstrap(empty_store, hasher, admin_password="Admin@123")
    bootstrap(empty_store, hasher, admin_password="Other@456")

    admin = empty_store.get_user_by_email(DEFAULT_ADMIN_EMAIL)
    assert hasher.verify("Admin@123", admin.password_hash)


def test_bootstrap_repairs_a_locked_admin_account(empty_store, hasher):
    empty_store.ensure_roles([Role.USER])
    empty_store.create_user(DEFAULT_ADMIN_EMAIL, "Admin", hasher.hash("Admin@123"))

    admin = bootstrap(empty_store, hasher, admin_password="Admin@123")

    assert admin.can_sign_in
    assert admin.has_role(Role.ADMIN)


def test_bootstrap_without_password_only_seeds_roles(empty_store, hasher):
    assert bootstrap(empty_store, hasher, admin_password=None) is None
    assert len(empty_store.list_roles()) == 3
    assert empty_store.list_users() == []


def test_bootstrap_rejects_weak_admin_password(empty_store, hasher):
    with pytest.raises(WeakPasswordError):
        bootstrap(empty_store, hasher, admin_password="admin")
