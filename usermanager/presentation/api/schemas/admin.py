from pydantic import BaseModel


class AssignRoleRequest(BaseModel):
    role: str
