from .audit_log_repository import AuditLogRepository, get_audit_log_repository
from .branch_repository import BranchRepository, get_branch_repository
from .legacy_role_repository import LegacyRoleRepository, get_legacy_role_repository
from .permission_repository import PermissionRepository, get_permission_repository
from .role_repository import RoleRepository, get_role_repository
from .role_permissions_repository import RolePermissionsRepository, get_role_permissions_repository
from .user_repository import UserRepository, get_user_repository
from .user_roles_repository import UserRolesRepository, get_user_roles_repository

__all__ = [
    "AuditLogRepository",
    "BranchRepository",
    "LegacyRoleRepository",
    "PermissionRepository",
    "RolePermissionsRepository",
    "RoleRepository",
    "UserRepository",
    "UserRolesRepository",
    "get_audit_log_repository",
    "get_branch_repository",
    "get_legacy_role_repository",
    "get_permission_repository",
    "get_role_permissions_repository",
    "get_role_repository",
    "get_user_repository",
    "get_user_roles_repository",
]
