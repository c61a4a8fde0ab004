from .catalog import (
    PermissionCatalog,
    PermissionDefinition,
    expand_legacy_permissions,
    get_permission_catalog,
    holds_wildcard,
)
from .resolver import (
    AccessDecision,
    DecisionReason,
    GrantSource,
    PermissionResolver,
    PrincipalGrants,
    evaluate,
)
from .assignment_service import AssignmentOutcome, AssignmentResult, AssignmentService, get_assignment_service
from .role_service import RoleService, get_role_service
from .reconciliation_service import ReconciliationService
from .seeding import seed, seed_default_roles, seed_permissions

__all__ = [
    "PermissionCatalog",
    "PermissionDefinition",
    "expand_legacy_permissions",
    "get_permission_catalog",
    "holds_wildcard",
    "AccessDecision",
    "DecisionReason",
    "GrantSource",
    "PermissionResolver",
    "PrincipalGrants",
    "evaluate",
    "AssignmentOutcome",
    "AssignmentResult",
    "AssignmentService",
    "get_assignment_service",
    "RoleService",
    "get_role_service",
    "ReconciliationService",
    "seed",
    "seed_default_roles",
    "seed_permissions",
]
