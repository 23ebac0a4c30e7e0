"""Password strength rules applied at registration and reset."""

from typing import List

from ..domain.errors import WeakPasswordError

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


class PasswordPolicy:
    """Classic complexity policy: length plus one character from each class."""

    def __init__(
        self,
        min_length: int = 6,
        require_digit: bool = True,
        require_lowercase: bool = True,
        require_uppercase: bool = True,
        require_non_alphanumeric: bool = True,
    ):
        self.min_length = min_length
        self.require_digit = require_digit
        self.require_lowercase = require_lowercase
        self.require_uppercase = require_uppercase
        self.require_non_alphanumeric = require_non_alphanumeric

    def failures(self, password: str) -> List[str]:
        """Return the rules the password breaks, empty when it is acceptable."""
        password = password or ""
        problems: List[str] = []
        if len(password) < self.min_length:
            problems.append(f"must be at least {self.min_length} characters long")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            problems.append(f"must be at most {MAX_PASSWORD_BYTES} bytes long")
        if self.require_digit and not any(ch.isdigit() for ch in password):
            problems.append("must contain a digit")
        if self.require_lowercase and not any(ch.islower() for ch in password):
            problems.append("must contain a lower-case letter")
        if self.require_uppercase and not any(ch.isupper() for ch in password):
            problems.append("must contain an upper-case letter")
        if self.require_non_alphanumeric and all(ch.isalnum() for ch in password):
            problems.append("must contain a non-alphanumeric character")
        return problems

    def check(self, password: str) -> None:
        problems = self.failures(password)
        if problems:
            raise WeakPasswordError(problems)
