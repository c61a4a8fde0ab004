from typing import List, Optional
from uuid import UUID

from pydantic import Field

from campus_rbac.core.schemas import BaseSchema


class CreatedRole(BaseSchema):
    legacy_role_id: UUID
    role_id: UUID
    role_name: str
    branch_id: Optional[UUID] = None
    permission_count: int


class SyncCatalogReport(BaseSchema):
    created: List[CreatedRole] = Field(default_factory=list)
    already_present: int = 0
    stopped: bool = False


class CreatedAssignment(BaseSchema):
    user_id: UUID
    role_id: UUID
    role_name: str
    branch_id: UUID


class SkippedUser(BaseSchema):
    user_id: UUID
    reason: str
    legacy_role_name: Optional[str] = None
    branch_id: Optional[UUID] = None


class BackfillReport(BaseSchema):
    created: List[CreatedAssignment] = Field(default_factory=list)
    already_assigned: int = 0
    skipped: List[SkippedUser] = Field(default_factory=list)
    stopped: bool = False


class RepairedRole(BaseSchema):
    role_id: UUID
    role_name: str
    branch_id: UUID


class OrphanForReview(BaseSchema):
    role_id: UUID
    role_name: str
    reason: str
    assigned_in_branches: List[UUID] = Field(default_factory=list)


class OrphanRepairReport(BaseSchema):
    default_branch_id: Optional[UUID] = None
    repaired: List[RepairedRole] = Field(default_factory=list)
    needs_review: List[OrphanForReview] = Field(default_factory=list)
    error: Optional[str] = None
    stopped: bool = False


class DriftEntry(BaseSchema):
    role_id: UUID
    role_name: str
    branch_id: Optional[UUID] = None


class CrossBranchAssignment(BaseSchema):
    assignment_id: UUID
    user_id: UUID
    role_id: UUID
    role_branch_id: UUID
    branch_id: UUID


class DriftReport(BaseSchema):
    legacy_without_rbac: List[DriftEntry] = Field(default_factory=list)
    rbac_without_legacy: List[DriftEntry] = Field(default_factory=list)
    orphan_roles: List[DriftEntry] = Field(default_factory=list)
    cross_branch_assignments: List[CrossBranchAssignment] = Field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return bool(
            self.legacy_without_rbac
            or self.rbac_without_legacy
            or self.orphan_roles
            or self.cross_branch_assignments
        )


class SeedReport(BaseSchema):
    permissions_created: int = 0
    roles_created: int = 0
    permissions_attached: int = 0
