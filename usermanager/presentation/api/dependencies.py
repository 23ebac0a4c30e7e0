from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...application.services.account_service import AccountManager
from ...application.services.role_service import RoleManager
from ...core.dependencies import get_account_manager, get_role_manager
from ...domain.models import STAFF_ROLES, User

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    account_manager: AccountManager = Depends(get_account_manager),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token.")
    user = account_manager.user_for_access_token(credentials.credentials)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token.")
    return user


def require_staff_user(
    user: User = Depends(get_current_user),
    role_manager: RoleManager = Depends(get_role_manager),
) -> User:
    """Admin or Manager only; anyone else gets 403."""
    return role_manager.require_any_role(user, STAFF_ROLES)
