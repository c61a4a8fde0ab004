from typing import Any, Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.core.helpers import apply_filters_and_sorting, paginate
from campus_rbac.core.models import Base
from campus_rbac.core.schemas import BaseFilter


T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Generic persistence primitives over one mapped model.

    Repositories only ``flush``; committing is left to the caller so that
    several writes can share one atomic unit of work.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    def get_query(self):
        """Base select statement; subclasses add their eager loads here."""
        return select(self.model)

    async def get_by_id(self, db: AsyncSession, item_id: Any) -> Optional[T]:
        result = await db.execute(self.get_query().where(self.model.id == item_id))
        return result.scalars().first()

    async def get_all(self, db: AsyncSession, skip: int = 0, limit: int = 20) -> Sequence[T]:
        result = await db.execute(self.get_query().offset(skip).limit(limit))
        return result.scalars().all()

    async def create(self, db: AsyncSession, **values) -> T:
        item = self.model(**values)
        db.add(item)
        await db.flush()
        return item

    async def update(self, db: AsyncSession, item: T, **values) -> T:
        for key, value in values.items():
            setattr(item, key, value)
        await db.flush()
        return item

    async def delete(self, db: AsyncSession, item: T) -> None:
        await db.delete(item)
        await db.flush()

    async def get_filtered_items(self, db: AsyncSession, filters: BaseFilter) -> dict:
        filter_dict = self.build_filters_from_params(filters)
        query = apply_filters_and_sorting(
            self.get_query(),
            self.model,
            filters=filter_dict,
            sort=filters.sort,
            logic_operator=filters.logic_operator or "and",
        )
        return await paginate(db, query, page=filters.page, page_size=filters.page_size)

    def build_filters_from_params(self, filters: BaseFilter) -> dict:
        return filters.model_dump(exclude={"sort", "page", "page_size", "logic_operator"}, exclude_none=True)
