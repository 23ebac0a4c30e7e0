from __future__ import annotations

from typing import Optional, Protocol

from ..models import Session, User


class PasswordHasher(Protocol):
    """Turns plaintext passwords into opaque hashes and checks them."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...


class SessionIssuer(Protocol):
    """Issues the credential returned by a successful sign-in."""

    def issue(self, user: User) -> Session:
        ...

    def verify(self, access_token: str) -> Optional[int]:
        """Return the user id carried by a valid token, None otherwise."""
        ...
