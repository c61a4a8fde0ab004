from functools import lru_cache
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import RBACRole
from campus_rbac.core.repositories import BaseRepository


class RoleRepository(BaseRepository[RBACRole]):
    """
    Repository for RBAC roles. Permissions load with the role (``selectin``),
    so every role returned here can be inspected without further I/O.
    """
    def __init__(self):
        super().__init__(RBACRole)

    def get_query(self):
        return select(self.model).order_by(self.model.role_name, self.model.id)

    async def find_by_name(self, db: AsyncSession, role_name: str, branch_id: Optional[UUID]) -> Optional[RBACRole]:
        """Exact name match within one scope; ``branch_id=None`` looks up global roles."""
        query = select(self.model).where(self.model.role_name == role_name)
        if branch_id is None:
            query = query.where(self.model.branch_id.is_(None))
        else:
            query = query.where(self.model.branch_id == branch_id)
        result = await db.execute(query.order_by(self.model.created_at, self.model.id))
        return result.scalars().first()

    async def find_counterpart(self, db: AsyncSession, role_name: str, branch_id: Optional[UUID]) -> Optional[RBACRole]:
        """
        The RBAC role standing in for a legacy role name in a branch: the
        branch-scoped one if present, otherwise a global one.
        """
        if branch_id is not None:
            role = await self.find_by_name(db, role_name, branch_id)
            if role is not None:
                return role
        return await self.find_by_name(db, role_name, None)

    async def list_all(self, db: AsyncSession) -> Sequence[RBACRole]:
        result = await db.execute(self.get_query())
        return result.scalars().all()

    async def list_orphans(self, db: AsyncSession) -> Sequence[RBACRole]:
        result = await db.execute(
            select(self.model)
            .where(self.model.branch_id.is_(None), self.model.is_system.is_(False))
            .order_by(self.model.created_at, self.model.id)
        )
        return result.scalars().all()

    async def name_taken(
            self, db: AsyncSession, role_name: str, branch_id: Optional[UUID], exclude_id: Optional[UUID] = None
    ) -> bool:
        role = await self.find_by_name(db, role_name, branch_id)
        return role is not None and role.id != exclude_id


@lru_cache()
def get_role_repository() -> RoleRepository:
    """Dependency injector for RoleRepository."""
    return RoleRepository()
