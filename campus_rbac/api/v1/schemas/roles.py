from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from campus_rbac.api.v1.schemas.permissions import Permission
from campus_rbac.core.schemas import BaseSchema, BaseFilter


class RoleBase(BaseSchema):
    role_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None


class RoleCreate(RoleBase):
    branch_id: Optional[UUID] = None
    is_system: bool = False
    permissions: List[str] = Field(default_factory=list)


class RoleUpdate(RoleBase):
    role_name: Optional[str] = Field(default=None, min_length=1, max_length=100)


class RolePermissionsUpdate(BaseSchema):
    permissions: List[str]


class Role(RoleBase):
    id: UUID
    branch_id: Optional[UUID] = None
    is_system: bool
    created_at: datetime


class RoleWithPermissions(Role):
    permissions: List[Permission]


class RoleFilter(BaseFilter):
    branch_id: Optional[UUID] = None
    branch_id__isnull: Optional[bool] = None
    is_system: Optional[bool] = None
    role_name__icontains: Optional[str] = None
