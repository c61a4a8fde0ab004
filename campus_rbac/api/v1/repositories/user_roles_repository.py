from functools import lru_cache
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import RBACRole, UserRole
from campus_rbac.core.repositories import BaseRepository


class UserRolesRepository(BaseRepository[UserRole]):
    """Role assignments: (user, RBAC role, branch) triples."""

    def __init__(self):
        super().__init__(UserRole)

    def get_query(self):
        return select(self.model).order_by(self.model.assigned_at, self.model.id)

    async def find(self, db: AsyncSession, user_id: UUID, role_id: UUID, branch_id: UUID) -> Optional[UserRole]:
        result = await db.execute(
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.rbac_role_id == role_id,
                self.model.branch_id == branch_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_for_user(
            self, db: AsyncSession, user_id: UUID, branch_id: Optional[UUID] = None
    ) -> Sequence[UserRole]:
        query = self.get_query().where(self.model.user_id == user_id)
        if branch_id is not None:
            query = query.where(self.model.branch_id == branch_id)
        result = await db.execute(query)
        return result.scalars().all()

    async def has_assignment_in_branch(self, db: AsyncSession, user_id: UUID, branch_id: UUID) -> bool:
        return bool(await db.scalar(
            select(exists().where(self.model.user_id == user_id, self.model.branch_id == branch_id))
        ))

    async def delete_matching(self, db: AsyncSession, user_id: UUID, role_id: UUID, branch_id: UUID) -> int:
        result = await db.execute(
            delete(self.model).where(
                self.model.user_id == user_id,
                self.model.rbac_role_id == role_id,
                self.model.branch_id == branch_id,
            )
        )
        await db.flush()
        return result.rowcount or 0

    async def list_for_role_outside_branch(
            self, db: AsyncSession, role_id: UUID, branch_id: UUID
    ) -> Sequence[UserRole]:
        result = await db.execute(
            self.get_query().where(self.model.rbac_role_id == role_id, self.model.branch_id != branch_id)
        )
        return result.scalars().all()

    async def list_cross_branch(self, db: AsyncSession) -> Sequence[UserRole]:
        """Assignments whose branch-scoped role belongs to a different branch."""
        result = await db.execute(
            self.get_query()
            .join(RBACRole, RBACRole.id == self.model.rbac_role_id)
            .where(RBACRole.branch_id.is_not(None), RBACRole.branch_id != self.model.branch_id)
        )
        return result.scalars().all()


@lru_cache()
def get_user_roles_repository() -> UserRolesRepository:
    return UserRolesRepository()
