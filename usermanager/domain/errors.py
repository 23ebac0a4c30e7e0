"""Typed failures raised by the account, token and role services.

Every error maps to one user-facing message, so callers can tell a person
*why* they are blocked. The HTTP layer renders ``code`` and ``status_code``.
"""

from typing import Optional, Sequence


class UserManagerError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request could not be completed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class DuplicateEmailError(UserManagerError):
    code = "duplicate_email"
    status_code = 409
    default_message = "An account with this email already exists."


class WeakPasswordError(UserManagerError):
    code = "weak_password"
    status_code = 400
    default_message = "Password does not meet the password policy."

    def __init__(self, failures: Sequence[str]) -> None:
        self.failures = list(failures)
        super().__init__("Password does not meet the password policy: " + "; ".join(self.failures))


class InvalidCredentialsError(UserManagerError):
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password."


class EmailNotConfirmedError(UserManagerError):
    code = "email_not_confirmed"
    status_code = 403
    default_message = "Email not confirmed. Please check your inbox for the confirmation link."


class PendingApprovalError(UserManagerError):
    code = "pending_approval"
    status_code = 403
    default_message = "Your account is awaiting approval by an administrator."


class TokenError(UserManagerError):
    code = "token_error"
    status_code = 400


class TokenInvalidError(TokenError):
    code = "token_invalid"
    default_message = "Invalid token."


class TokenExpiredError(TokenError):
    code = "token_expired"
    default_message = "This link has expired. Please request a new one."


class TokenAlreadyUsedError(TokenError):
    code = "token_already_used"
    default_message = "This link has already been used."


class UserNotFoundError(UserManagerError):
    code = "user_not_found"
    status_code = 404
    default_message = "User not found."


class RoleNotFoundError(UserManagerError):
    code = "role_not_found"
    status_code = 404

    def __init__(self, role: Optional[str] = None) -> None:
        super().__init__(f"Role not found: {role}" if role else "Role not found.")
        self.role = role


class ForbiddenError(UserManagerError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have permission to perform this action."


class ConcurrencyConflictError(UserManagerError):
    code = "concurrency_conflict"
    status_code = 409
    default_message = "The record was modified concurrently. Please retry."


class DeliveryError(UserManagerError):
    code = "delivery_failed"
    status_code = 502
    default_message = "Email could not be delivered."
