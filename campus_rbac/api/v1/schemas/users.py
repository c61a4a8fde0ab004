from datetime import datetime
from typing import Optional
from uuid import UUID

from campus_rbac.api.v1.schemas.roles import Role
from campus_rbac.core.schemas import BaseSchema, BaseFilter


class User(BaseSchema):
    id: UUID
    username: str
    email: Optional[str] = None
    branch_id: Optional[UUID] = None
    legacy_role_id: Optional[UUID] = None
    is_active: bool


class RoleAssignmentCreate(BaseSchema):
    role_id: UUID
    branch_id: UUID
    expires_at: Optional[datetime] = None


class RoleAssignment(BaseSchema):
    id: UUID
    user_id: UUID
    rbac_role_id: UUID
    branch_id: UUID
    assigned_by: Optional[UUID] = None
    assigned_at: datetime
    expires_at: Optional[datetime] = None


class RoleAssignmentWithRole(RoleAssignment):
    rbac_role: Role


class AssignmentResult(BaseSchema):
    outcome: str
    assignment: RoleAssignment


class RevokeResult(BaseSchema):
    removed: int


class UserFilter(BaseFilter):
    branch_id: Optional[UUID] = None
    is_active: Optional[bool] = None
    username__icontains: Optional[str] = None
