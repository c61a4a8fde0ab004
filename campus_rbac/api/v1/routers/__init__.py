from . import (
    audit,
    permissions,
    roles,
    system,
    users,
)

__all__ = [
    "audit",
    "permissions",
    "roles",
    "system",
    "users",
]
