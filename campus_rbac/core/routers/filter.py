from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.core.schemas import ApiResponse, BaseFilter
from campus_rbac.core.repositories import BaseRepository


async def filter_items(filters: BaseFilter, db: AsyncSession, item_repository: BaseRepository, schema) -> ApiResponse:
    try:
        response = await item_repository.get_filtered_items(db, filters)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    items = [schema.model_validate(item) for item in response["items"]]

    return ApiResponse(
        status_code=status.HTTP_200_OK,
        detail="Items filtered successfully",
        data={
            "total": response["total"],
            "page": filters.page,
            "page_size": filters.page_size,
            "results": items,
        })
