from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.core.schemas import ApiResponse
from campus_rbac.core.repositories import BaseRepository


async def read_item(item_id, db: AsyncSession, item_repository: BaseRepository, schema) -> ApiResponse:
    db_item = await item_repository.get_by_id(db, item_id)
    if db_item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    return ApiResponse(
        status_code=status.HTTP_200_OK,
        detail="Item retrieved successfully",
        data=schema.model_validate(db_item),
    )
