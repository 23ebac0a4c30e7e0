from typing import List

from fastapi import APIRouter, Depends

from ....application.services.admin_service import AdminWorkflow
from ....application.services.role_service import RoleManager
from ....core.dependencies import get_admin_workflow, get_role_manager
from ....domain.models import Role, User
from ...api.dependencies import require_staff_user
from ...api.schemas.account import UserResponse
from ...api.schemas.admin import AssignRoleRequest

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/pending-users", response_model=List[UserResponse])
def pending_users(
    actor: User = Depends(require_staff_user),
    workflow: AdminWorkflow = Depends(get_admin_workflow),
) -> List[UserResponse]:
    return [UserResponse.from_user(user) for user in workflow.list_pending_users(actor)]


@router.get("/users", response_model=List[UserResponse])
def all_users(
    actor: User = Depends(require_staff_user),
    workflow: AdminWorkflow = Depends(get_admin_workflow),
) -> List[UserResponse]:
    return [UserResponse.from_user(user) for user in workflow.list_all_users(actor)]


@router.get("/roles", response_model=List[str])
def roles(
    _: User = Depends(require_staff_user),
    role_manager: RoleManager = Depends(get_role_manager),
) -> List[str]:
    return [role.value for role in role_manager.list_roles()]


@router.post("/users/{user_id}/approve", response_model=UserResponse)
def approve_user(
    user_id: int,
    actor: User = Depends(require_staff_user),
    workflow: AdminWorkflow = Depends(get_admin_workflow),
) -> UserResponse:
    return UserResponse.from_user(workflow.approve_user(actor, user_id))


@router.post("/users/{user_id}/roles", response_model=UserResponse)
def assign_role(
    user_id: int,
    payload: AssignRoleRequest,
    actor: User = Depends(require_staff_user),
    workflow: AdminWorkflow = Depends(get_admin_workflow),
) -> UserResponse:
    role = Role.parse(payload.role)
    return UserResponse.from_user(workflow.assign_role(actor, user_id, role))


@router.delete("/users/{user_id}/roles/{role_name}", response_model=UserResponse)
def revoke_role(
    user_id: int,
    role_name: str,
    actor: User = Depends(require_staff_user),
    workflow: AdminWorkflow = Depends(get_admin_workflow),
) -> UserResponse:
    role = Role.parse(role_name)
    return UserResponse.from_user(workflow.revoke_role(actor, user_id, role))
