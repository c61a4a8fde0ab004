from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from campus_rbac.core.schemas import BaseSchema, BaseFilter


class PermissionBase(BaseSchema):
    permission_name: str
    resource: str
    action: str
    description: Optional[str] = None


class PermissionUpdate(BaseSchema):
    """Only the description is editable; a permission's name is its identity."""
    description: Optional[str] = Field(default=None, max_length=255)


class Permission(PermissionBase):
    id: UUID
    created_at: datetime


class PermissionFilter(BaseFilter):
    resource: Optional[str] = None
    permission_name__icontains: Optional[str] = None
