from typing import List, Optional
from uuid import UUID

from campus_rbac.core.schemas import BaseSchema


class GrantSource(BaseSchema):
    kind: str
    role_id: Optional[UUID] = None
    role_name: str


class PermissionCheck(BaseSchema):
    user_id: UUID
    permission: str
    branch_id: Optional[UUID] = None
    granted: bool
    reason: str
    granted_by: List[GrantSource] = []


class EffectivePermissions(BaseSchema):
    user_id: UUID
    branch_id: Optional[UUID] = None
    permissions: List[str]
