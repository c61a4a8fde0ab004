from functools import lru_cache
from typing import Iterable, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import RBACRole
from campus_rbac.api.v1.repositories.permission_repository import PermissionRepository, get_permission_repository
from campus_rbac.core.models import UnknownPermissionError


class RolePermissionsRepository:
    """Attaches and detaches permission rows on an RBAC role by permission name."""

    def __init__(self, permission_repository: PermissionRepository):
        self.permission_repository = permission_repository

    async def _load(self, db: AsyncSession, names: Iterable[str]):
        names = set(names)
        permissions = await self.permission_repository.get_by_names(db, names)
        missing = names - {p.permission_name for p in permissions}
        if missing:
            raise UnknownPermissionError(missing)
        return permissions

    async def assign_permissions(self, db: AsyncSession, role: RBACRole, names: Iterable[str]) -> List[str]:
        """Adds the missing ones; returns the names actually attached."""
        permissions = await self._load(db, names)
        current = role.permission_names
        added = [p for p in permissions if p.permission_name not in current]
        role.permissions.extend(added)
        await db.flush()
        return sorted(p.permission_name for p in added)

    async def replace_permissions(
            self, db: AsyncSession, role: RBACRole, names: Iterable[str]
    ) -> Tuple[List[str], List[str]]:
        """Makes the role's set exactly ``names``; returns ``(added, removed)``."""
        permissions = await self._load(db, names)
        wanted = {p.permission_name for p in permissions}
        current = role.permission_names

        removed = sorted(current - wanted)
        added = sorted(wanted - current)
        role.permissions = sorted(permissions, key=lambda p: p.permission_name)
        await db.flush()
        return added, removed


@lru_cache()
def get_role_permissions_repository() -> RolePermissionsRepository:
    return RolePermissionsRepository(permission_repository=get_permission_repository())
