from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.repositories import (
    AuditLogRepository,
    PermissionRepository,
    get_audit_log_repository,
    get_permission_repository,
)
from campus_rbac.api.v1.schemas import Permission, PermissionFilter, PermissionUpdate
from campus_rbac.core.guard import BranchScope, get_branch_scope, guard_route
from campus_rbac.core.routers import filter, read_item
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.core.security import Principal
from campus_rbac.db.session import get_session


prefix = "/permissions"
router = APIRouter(prefix=prefix)


@router.get("/{permission_id}", response_model=ApiResponse)
async def read_permission(
        permission_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        permissions_repository: Annotated[PermissionRepository, Depends(get_permission_repository)]
):
    return await read_item(permission_id, db, permissions_repository, Permission)


@router.put("/{permission_id}", response_model=ApiResponse)
async def update_permission(
        permission_id: UUID,
        permission: PermissionUpdate,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        permissions_repository: Annotated[PermissionRepository, Depends(get_permission_repository)],
        audit_log_repository: Annotated[AuditLogRepository, Depends(get_audit_log_repository)]
):
    """Only the description can change; names are permanent. Permissions are shared by every branch."""
    await scope.require_superadmin()
    db_item = await permissions_repository.get_by_id(db, permission_id)
    if db_item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Permission not found")

    previous = db_item.description
    await permissions_repository.update(db, db_item, description=permission.description)
    await audit_log_repository.record(
        db,
        action="permission.updated",
        entity_type="permission",
        entity_id=db_item.id,
        user_id=principal.user_id if principal else None,
        changes={"description": {"from": previous, "to": permission.description}},
    )
    await db.commit()
    return ApiResponse(status_code=status.HTTP_200_OK, data=Permission.model_validate(db_item))


@router.get("", response_model=ApiResponse)
async def filter_permissions(
        filters: Annotated[PermissionFilter, Query()],
        db: Annotated[AsyncSession, Depends(get_session)],
        permissions_repository: Annotated[PermissionRepository, Depends(get_permission_repository)]
):
    return await filter(filters, db, permissions_repository, Permission)
