from functools import lru_cache
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import LegacyRole
from campus_rbac.core.repositories import BaseRepository


class LegacyRoleRepository(BaseRepository[LegacyRole]):
    def __init__(self):
        super().__init__(LegacyRole)

    async def list_all(self, db: AsyncSession) -> Sequence[LegacyRole]:
        result = await db.execute(
            select(self.model).order_by(self.model.created_at, self.model.id)
        )
        return result.scalars().all()


@lru_cache()
def get_legacy_role_repository() -> LegacyRoleRepository:
    return LegacyRoleRepository()
