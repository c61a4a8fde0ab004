from functools import lru_cache
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import Branch
from campus_rbac.core.repositories import BaseRepository


class BranchRepository(BaseRepository[Branch]):
    def __init__(self):
        super().__init__(Branch)

    async def list_active(self, db: AsyncSession) -> Sequence[Branch]:
        result = await db.execute(
            select(self.model)
            .where(self.model.is_active.is_(True))
            .order_by(self.model.created_at, self.model.id)
        )
        return result.scalars().all()

    async def get_earliest_active(self, db: AsyncSession) -> Optional[Branch]:
        """
        Default owning branch for orphan repair: the active branch created
        first, ties broken by id so the choice never depends on scan order.
        """
        result = await db.execute(
            select(self.model)
            .where(self.model.is_active.is_(True))
            .order_by(self.model.created_at, self.model.id)
            .limit(1)
        )
        return result.scalars().first()


@lru_cache()
def get_branch_repository() -> BranchRepository:
    return BranchRepository()
