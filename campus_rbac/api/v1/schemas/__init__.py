from .permissions import Permission, PermissionUpdate, PermissionFilter
from .roles import RoleCreate, RoleUpdate, RolePermissionsUpdate, Role, RoleWithPermissions, RoleFilter
from .users import (
    User,
    UserFilter,
    RoleAssignmentCreate,
    RoleAssignment,
    RoleAssignmentWithRole,
    AssignmentResult,
    RevokeResult,
)
from .decisions import GrantSource, PermissionCheck, EffectivePermissions
from .audit import AuditLogEntry, AuditLogFilter
from .reconciliation import (
    CreatedRole,
    SyncCatalogReport,
    CreatedAssignment,
    SkippedUser,
    BackfillReport,
    RepairedRole,
    OrphanForReview,
    OrphanRepairReport,
    DriftEntry,
    CrossBranchAssignment,
    DriftReport,
    SeedReport,
)

__all__ = [
    "Permission",
    "PermissionUpdate",
    "PermissionFilter",
    "RoleCreate",
    "RoleUpdate",
    "RolePermissionsUpdate",
    "Role",
    "RoleWithPermissions",
    "RoleFilter",
    "User",
    "UserFilter",
    "RoleAssignmentCreate",
    "RoleAssignment",
    "RoleAssignmentWithRole",
    "AssignmentResult",
    "RevokeResult",
    "GrantSource",
    "PermissionCheck",
    "EffectivePermissions",
    "AuditLogEntry",
    "AuditLogFilter",
    "CreatedRole",
    "SyncCatalogReport",
    "CreatedAssignment",
    "SkippedUser",
    "BackfillReport",
    "RepairedRole",
    "OrphanForReview",
    "OrphanRepairReport",
    "DriftEntry",
    "CrossBranchAssignment",
    "DriftReport",
    "SeedReport",
]
