import logging
import sqlite3
import threading
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from ...domain.errors import (
    ConcurrencyConflictError,
    DuplicateEmailError,
    RoleNotFoundError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenInvalidError,
    UserNotFoundError,
)
from ...domain.models import Role, TokenPurpose, TokenRecord, User
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path) -> None:
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    full_name TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    email_confirmed INTEGER NOT NULL DEFAULT 0,
                    is_approved INTEGER NOT NULL DEFAULT 0,
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_is_approved
                    ON users(is_approved);

                CREATE TABLE IF NOT EXISTS roles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                );

                CREATE TABLE IF NOT EXISTS user_roles (
                    user_id INTEGER NOT NULL,
                    role_id INTEGER NOT NULL,
                    PRIMARY KEY (user_id, role_id),
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
                    FOREIGN KEY(role_id) REFERENCES roles(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    purpose TEXT NOT NULL,
                    token_hash TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    used_at TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_tokens_user_id
                    ON tokens(user_id);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # UserRepository API ----------------------------------------------------
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
        """Insert the user and its role memberships in one transaction."""
        normalized = email.strip().lower()
        now = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO users (
                        email, full_name, password_hash, email_confirmed, is_approved,
                        version, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        normalized,
                        full_name,
                        password_hash,
                        int(email_confirmed),
                        int(is_approved),
                        now,
                        now,
                    ),
                )
                user_id = cur.lastrowid
                granted = set()
                for role in roles:
                    role_id = self._fetch_role_id(role)
                    if role_id is None:
                        raise RoleNotFoundError(role.value)
                    self._conn.execute(
                        "INSERT OR IGNORE INTO user_roles (user_id, role_id) VALUES (?, ?)",
                        (user_id, role_id),
                    )
                    granted.add(role)
                row = self._fetch_user_row(user_id)
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError() from exc
        if not row:
            raise RuntimeError("Failed to persist user.")
        return self._row_to_user(row, granted)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            )
            row = cur.fetchone()
            roles = self._fetch_roles(row["id"]) if row else set()
        return self._row_to_user(row, roles) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._lock:
            row = self._fetch_user_row(user_id)
            roles = self._fetch_roles(user_id) if row else set()
        return self._row_to_user(row, roles) if row else None

    def update_user(self, user: User) -> User:
        """Persist flags and credentials, rejecting writes based on a stale version."""
        now = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    UPDATE users
                    SET email = ?, full_name = ?, password_hash = ?, email_confirmed = ?,
                        is_approved = ?, version = version + 1, updated_at = ?
                    WHERE id = ? AND version = ?
                    """,
                    (
                        user.email.strip().lower(),
                        user.full_name,
                        user.password_hash,
                        int(user.email_confirmed),
                        int(user.is_approved),
                        now,
                        user.id,
                        user.version,
                    ),
                )
                if cur.rowcount == 0:
                    if self._fetch_user_row(user.id) is None:
                        raise UserNotFoundError()
                    raise ConcurrencyConflictError()
                row = self._fetch_user_row(user.id)
                roles = self._fetch_roles(user.id)
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError() from exc
        return self._row_to_user(row, roles)

    def modify_user(self, user_id: int, change: Callable[[User], None]) -> User:
        """Apply ``change`` to a fresh copy of the user, retrying once on a version conflict."""
        try:
            return self._apply_change(user_id, change)
        except ConcurrencyConflictError:
            logger.info("Concurrent update on user %s, retrying with a fresh read", user_id)
            return self._apply_change(user_id, change)

    def _apply_change(self, user_id: int, change: Callable[[User], None]) -> User:
        user = self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        change(user)
        return self.update_user(user)

    def list_pending_users(self) -> List[User]:
        return self._select_users("SELECT * FROM users WHERE is_approved = 0 ORDER BY created_at, id")

    def list_users(self) -> List[User]:
        return self._select_users("SELECT * FROM users ORDER BY created_at, id")

    def delete_user(self, user_id: int) -> None:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            if cur.rowcount == 0:
                raise UserNotFoundError()

    # RoleRepository API ----------------------------------------------------
    def ensure_roles(self, roles: Iterable[Role]) -> List[Role]:
        with self._lock, self._conn:
            for role in roles:
                cur = self._conn.execute(
                    "INSERT OR IGNORE INTO roles (name) VALUES (?)", (role.value,)
                )
                if cur.rowcount:
                    logger.info("Created role %s", role.value)
        return self.list_roles()

    def list_roles(self) -> List[Role]:
        with self._lock:
            cur = self._conn.execute("SELECT name FROM roles ORDER BY id")
            rows = cur.fetchall()
        return [Role(row["name"]) for row in rows]

    def role_exists(self, role: Role) -> bool:
        with self._lock:
            return self._fetch_role_id(role) is not None

    def add_user_role(self, user_id: int, role: Role) -> User:
        with self._lock, self._conn:
            role_id = self._require_user_and_role(user_id, role)
            cur = self._conn.execute(
                "INSERT OR IGNORE INTO user_roles (user_id, role_id) VALUES (?, ?)",
                (user_id, role_id),
            )
            if cur.rowcount:
                self._touch_user(user_id)
            row = self._fetch_user_row(user_id)
            roles = self._fetch_roles(user_id)
        return self._row_to_user(row, roles)

    def remove_user_role(self, user_id: int, role: Role) -> User:
        with self._lock, self._conn:
            role_id = self._require_user_and_role(user_id, role)
            cur = self._conn.execute(
                "DELETE FROM user_roles WHERE user_id = ? AND role_id = ?",
                (user_id, role_id),
            )
            if cur.rowcount:
                self._touch_user(user_id)
            row = self._fetch_user_row(user_id)
            roles = self._fetch_roles(user_id)
        return self._row_to_user(row, roles)

    # TokenRepository API ---------------------------------------------------
    def save_token(
        self,
        user_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> TokenRecord:
        now = datetime.now(timezone.utc)
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO tokens (user_id, purpose, token_hash, created_at, expires_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        purpose.value,
                        token_hash,
                        now.isoformat(),
                        expires_at.astimezone(timezone.utc).isoformat(),
                    ),
                )
                token_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            raise UserNotFoundError() from exc
        return TokenRecord(
            id=token_id,
            user_id=user_id,
            purpose=purpose,
            token_hash=token_hash,
            created_at=now,
            expires_at=expires_at,
            used_at=None,
        )

    def consume_token(
        self,
        token_hash: str,
        now: datetime,
        purpose: Optional[TokenPurpose] = None,
    ) -> TokenRecord:
        """Check and invalidate a token in one locked transaction."""
        with self._lock, self._conn:
            cur = self._conn.execute("SELECT * FROM tokens WHERE token_hash = ?", (token_hash,))
            row = cur.fetchone()
            if not row:
                raise TokenInvalidError()
            record = self._row_to_token(row)
            if purpose is not None and record.purpose is not purpose:
                raise TokenInvalidError()
            if record.used_at is not None:
                raise TokenAlreadyUsedError()
            if record.expires_at <= now:
                raise TokenExpiredError()
            cur = self._conn.execute(
                "UPDATE tokens SET used_at = ? WHERE id = ? AND used_at IS NULL",
                (now.astimezone(timezone.utc).isoformat(), record.id),
            )
            if cur.rowcount != 1:
                raise TokenAlreadyUsedError()
        record.used_at = now
        return record

    def get_tokens_for_user(self, user_id: int) -> List[TokenRecord]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM tokens WHERE user_id = ? ORDER BY id", (user_id,)
            )
            rows = cur.fetchall()
        return [self._row_to_token(row) for row in rows]

    def purge_expired_tokens(self, now: datetime) -> int:
        # ISO strings of UTC datetimes sort chronologically.
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM tokens WHERE used_at IS NULL AND expires_at <= ?",
                (now.astimezone(timezone.utc).isoformat(),),
            )
            return cur.rowcount

    # Helpers ----------------------------------------------------------------
    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _fetch_user_row(self, user_id: int) -> Optional[sqlite3.Row]:
        cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        return cur.fetchone()

    def _fetch_role_id(self, role: Role) -> Optional[int]:
        cur = self._conn.execute("SELECT id FROM roles WHERE name = ?", (role.value,))
        row = cur.fetchone()
        return row["id"] if row else None

    def _fetch_roles(self, user_id: int) -> Set[Role]:
        cur = self._conn.execute(
            """
            SELECT r.name FROM user_roles ur
            JOIN roles r ON r.id = ur.role_id
            WHERE ur.user_id = ?
            """,
            (user_id,),
        )
        return {Role(row["name"]) for row in cur.fetchall()}

    def _require_user_and_role(self, user_id: int, role: Role) -> int:
        if self._fetch_user_row(user_id) is None:
            raise UserNotFoundError()
        role_id = self._fetch_role_id(role)
        if role_id is None:
            raise RoleNotFoundError(role.value)
        return role_id

    def _touch_user(self, user_id: int) -> None:
        self._conn.execute(
            "UPDATE users SET version = version + 1, updated_at = ? WHERE id = ?",
            (self._now(), user_id),
        )

    def _select_users(self, query: str) -> List[User]:
        with self._lock:
            rows = self._conn.execute(query).fetchall()
            membership: Dict[int, Set[Role]] = defaultdict(set)
            for item in self._conn.execute(
                """
                SELECT ur.user_id, r.name FROM user_roles ur
                JOIN roles r ON r.id = ur.role_id
                """
            ).fetchall():
                membership[item["user_id"]].add(Role(item["name"]))
        return [self._row_to_user(row, membership.get(row["id"], set())) for row in rows]

    def _row_to_user(self, row: sqlite3.Row, roles: Set[Role]) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            full_name=row["full_name"],
            password_hash=row["password_hash"],
            email_confirmed=bool(row["email_confirmed"]),
            is_approved=bool(row["is_approved"]),
            roles=roles,
            version=row["version"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_token(self, row: sqlite3.Row) -> TokenRecord:
        return TokenRecord(
            id=row["id"],
            user_id=row["user_id"],
            purpose=TokenPurpose(row["purpose"]),
            token_hash=row["token_hash"],
            created_at=self._parse_datetime(row["created_at"]),
            expires_at=self._parse_datetime(row["expires_at"]),
            used_at=self._parse_datetime(row["used_at"]) if row["used_at"] else None,
        )
