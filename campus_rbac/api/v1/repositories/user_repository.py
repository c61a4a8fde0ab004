from functools import lru_cache
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from campus_rbac.api.v1.models import RBACRole, User, UserRole
from campus_rbac.core.repositories import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)

    def _build_user_query_with_grants(self):
        """
        Select with the legacy role and every assignment, its role and that
        role's permissions eagerly loaded. ``populate_existing`` makes a
        second read in the same session reflect assignments written since.
        """
        return (
            select(self.model)
            .options(
                selectinload(self.model.legacy_role),
                selectinload(self.model.role_assignments)
                .selectinload(UserRole.rbac_role)
                .selectinload(RBACRole.permissions),
            )
            .execution_options(populate_existing=True)
        )

    async def get_with_grants(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        result = await db.execute(self._build_user_query_with_grants().where(self.model.id == user_id))
        return result.scalars().first()

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(self.model).where(self.model.username == username))
        return result.scalars().first()

    async def list_ids_with_legacy_role(self, db: AsyncSession) -> List[UUID]:
        """Ids of users holding a legacy role, in creation order."""
        result = await db.execute(
            select(self.model.id)
            .where(self.model.legacy_role_id.is_not(None))
            .order_by(self.model.created_at, self.model.id)
        )
        return list(result.scalars().all())


@lru_cache()
def get_user_repository() -> UserRepository:
    return UserRepository()
