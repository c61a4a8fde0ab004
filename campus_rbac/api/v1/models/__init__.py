from .branch import Branch
from .permissions import Permission
from .role_permission import rbac_role_permissions
from .rbac_role import RBACRole
from .legacy_role import LegacyRole
from .user import User
from .user_role import UserRole
from .audit_log import AuditLog


__all__ = [
    "Branch",
    "Permission",
    "rbac_role_permissions",
    "RBACRole",
    "LegacyRole",
    "User",
    "UserRole",
    "AuditLog",
]
