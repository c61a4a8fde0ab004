from typing import Any, Callable

from sqlalchemy import select, func, and_, or_, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import operators


OPERATOR_MAPPING: dict[str, Callable[[Any, Any], Any]] = {
    "eq": operators.eq,
    "ne": operators.ne,
    "gt": operators.gt,
    "gte": operators.ge,
    "lt": operators.lt,
    "lte": operators.le,
    "in": lambda field, value: field.in_(value),
    "icontains": lambda field, value: field.ilike(f"%{value}%"),
    "isnull": lambda field, value: field.is_(None) if value else field.isnot(None),
}


def apply_filters_and_sorting(query, model, filters: dict, sort: list[str] | None = None, logic_operator: str = "and"):
    """
    Applies ``field__operator`` style filters and ``field+`` / ``field-`` sort
    keys to a select statement.

        filters = {"role_name__icontains": "admin", "branch_id__isnull": True}
        sort = ["role_name+", "created_at-"]
    """
    conditions = []
    logic_fn = and_ if logic_operator.lower() == "and" else or_

    for key, value in filters.items():
        field_name, _, operator_key = key.partition("__")
        operator_func = OPERATOR_MAPPING.get(operator_key or "eq")
        if not operator_func:
            raise ValueError(f"Unsupported filter operator: {operator_key}")
        column = getattr(model, field_name, None)
        if column is None:
            raise ValueError(f"Unknown filter field: {field_name}")
        conditions.append(operator_func(column, value))

    if conditions:
        query = query.where(logic_fn(*conditions))

    if sort:
        order_by = []
        for field in sort:
            direction = desc if field.endswith("-") else asc
            column = getattr(model, field.rstrip("+-"), None)
            if column is None:
                raise ValueError(f"Unknown sort field: {field}")
            order_by.append(direction(column))
        query = query.order_by(*order_by)

    return query


async def paginate(session: AsyncSession, query, page: int = 1, page_size: int = 20) -> dict:
    count_query = select(func.count()).select_from(query.subquery())
    total = await session.scalar(count_query) or 0

    offset = (page - 1) * page_size
    result = await session.execute(query.limit(page_size).offset(offset))
    items = result.scalars().all()

    return {
        "total": total,
        "items": items,
    }
