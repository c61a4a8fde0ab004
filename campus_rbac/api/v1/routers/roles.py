from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.repositories import RoleRepository, get_role_repository
from campus_rbac.api.v1.schemas import (
    RoleCreate,
    RoleFilter,
    RolePermissionsUpdate,
    RoleUpdate,
    RoleWithPermissions,
)
from campus_rbac.api.v1.services.role_service import RoleService, get_role_service
from campus_rbac.core.guard import BranchScope, get_branch_scope, guard_route
from campus_rbac.core.routers import filter, read_item
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.core.security import Principal
from campus_rbac.db.session import get_session

prefix = "/roles"
router = APIRouter(prefix=prefix)


def _acting_user(principal: Optional[Principal]) -> Optional[UUID]:
    return principal.user_id if principal else None


@router.get("", response_model=ApiResponse)
async def filter_roles(
        filters: Annotated[RoleFilter, Query()],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_repository: Annotated[RoleRepository, Depends(get_role_repository)]
):
    """Get a paginated list of roles, including permissions."""
    return await filter(filters, db, role_repository, RoleWithPermissions)


@router.get("/{role_id}", response_model=ApiResponse)
async def read_role(
        role_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        role_repository: Annotated[RoleRepository, Depends(get_role_repository)]
):
    """Get a role by ID, including permissions."""
    return await read_item(role_id, db, role_repository, RoleWithPermissions)


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
        role: RoleCreate,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Create a role with an initial set of permission names."""
    await scope.require_role_scope(role.branch_id, role.is_system)
    created = await role_service.create_role(db, role, _acting_user(principal))
    return ApiResponse(status_code=status.HTTP_201_CREATED, data=RoleWithPermissions.model_validate(created))


@router.put("/{role_id}", response_model=ApiResponse)
async def update_role(
        role_id: UUID,
        role: RoleUpdate,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Rename a role or change its description."""
    target = await role_service.get_role(db, role_id)
    await scope.require_role_scope(target.branch_id, target.is_system)
    updated = await role_service.update_role(db, role_id, role, _acting_user(principal))
    return ApiResponse(status_code=status.HTTP_200_OK, data=RoleWithPermissions.model_validate(updated))


@router.put("/{role_id}/permissions", response_model=ApiResponse)
async def replace_role_permissions(
        role_id: UUID,
        body: RolePermissionsUpdate,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Replace the role's permission set."""
    target = await role_service.get_role(db, role_id)
    await scope.require_role_scope(target.branch_id, target.is_system)
    updated = await role_service.set_permissions(db, role_id, body.permissions, _acting_user(principal))
    return ApiResponse(status_code=status.HTTP_200_OK, data=RoleWithPermissions.model_validate(updated))


@router.delete("/{role_id}", response_model=ApiResponse)
async def delete_role(
        role_id: UUID,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Delete a role by ID. System roles are refused."""
    target = await role_service.get_role(db, role_id)
    if not target.is_system:
        await scope.require_branch(target.branch_id)
    await role_service.delete_role(db, role_id, _acting_user(principal))
    return ApiResponse(status_code=status.HTTP_200_OK, detail="Role deleted successfully.")
