from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import Permission
from campus_rbac.core.repositories import BaseRepository


class PermissionRepository(BaseRepository[Permission]):
    def __init__(self):
        super().__init__(Permission)

    def get_query(self):
        return select(self.model).order_by(self.model.permission_name)

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Permission]:
        result = await db.execute(select(self.model).where(self.model.permission_name == name))
        return result.scalars().first()

    async def get_by_names(self, db: AsyncSession, names: Iterable[str]) -> List[Permission]:
        names = list(set(names))
        if not names:
            return []
        result = await db.execute(self.get_query().where(self.model.permission_name.in_(names)))
        return list(result.scalars().all())

    async def list_all(self, db: AsyncSession) -> Sequence[Permission]:
        result = await db.execute(self.get_query())
        return result.scalars().all()


@lru_cache()
def get_permission_repository() -> PermissionRepository:
    return PermissionRepository()
