from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.repositories import RoleRepository, UserRepository, get_role_repository, get_user_repository
from campus_rbac.api.v1.schemas import (
    AssignmentResult,
    EffectivePermissions,
    GrantSource,
    PermissionCheck,
    RevokeResult,
    RoleAssignment,
    RoleAssignmentCreate,
    RoleAssignmentWithRole,
    User,
    UserFilter,
)
from campus_rbac.api.v1.services.assignment_service import AssignmentService, get_assignment_service
from campus_rbac.api.v1.services.resolver import PermissionResolver
from campus_rbac.core.guard import BranchScope, get_branch_scope, get_permission_resolver, guard_route
from campus_rbac.core.routers import filter, read_item
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.core.security import Principal
from campus_rbac.db.session import get_session

prefix = "/users"
router = APIRouter(prefix=prefix)


async def _require_user(db: AsyncSession, user_repository: UserRepository, user_id: UUID) -> None:
    if await user_repository.get_by_id(db, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


@router.get("", response_model=ApiResponse)
async def filter_users(
        filters: Annotated[UserFilter, Query()],
        db: Annotated[AsyncSession, Depends(get_session)],
        user_repository: Annotated[UserRepository, Depends(get_user_repository)]
):
    """Get a paginated list of users."""
    return await filter(filters, db, user_repository, User)


@router.get("/{user_id}", response_model=ApiResponse)
async def read_user(
        user_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        user_repository: Annotated[UserRepository, Depends(get_user_repository)]
):
    return await read_item(user_id, db, user_repository, User)


@router.get("/{user_id}/roles", response_model=ApiResponse)
async def list_user_roles(
        user_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)],
        branch_id: Optional[UUID] = None,
):
    """Role assignments of a user, optionally narrowed to one branch."""
    assignments = await assignment_service.list_assignments(db, user_id, branch_id)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=[RoleAssignmentWithRole.model_validate(a) for a in assignments],
    )


@router.post("/{user_id}/roles", response_model=ApiResponse)
async def assign_role(
        user_id: UUID,
        body: RoleAssignmentCreate,
        response: Response,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        role_repository: Annotated[RoleRepository, Depends(get_role_repository)],
        assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)]
):
    """
    Assign a role under a branch. 201 when created, 200 when it was already there.

    The caller needs the route permission in the target branch, and global
    roles can only be handed out by a superadmin.
    """
    await scope.require_branch(body.branch_id)
    role = await role_repository.get_by_id(db, body.role_id)
    if role is not None and role.branch_id is None:
        await scope.require_superadmin()

    result = await assignment_service.assign_role(
        db,
        user_id=user_id,
        role_id=body.role_id,
        branch_id=body.branch_id,
        assigned_by=principal.user_id if principal else None,
        expires_at=body.expires_at,
    )
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return ApiResponse(
        status_code=response.status_code,
        detail=f"Role assignment {result.outcome.value}",
        data=AssignmentResult(
            outcome=result.outcome.value,
            assignment=RoleAssignment.model_validate(result.assignment),
        ),
    )


@router.delete("/{user_id}/roles/{role_id}", response_model=ApiResponse)
async def revoke_role(
        user_id: UUID,
        role_id: UUID,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)],
        branch_id: UUID = Query(...),
):
    """Revoke a role assignment; revoking something absent is not an error."""
    await scope.require_branch(branch_id)
    removed = await assignment_service.revoke_role(
        db, user_id, role_id, branch_id, revoked_by=principal.user_id if principal else None
    )
    return ApiResponse(status_code=status.HTTP_200_OK, data=RevokeResult(removed=removed))


@router.post("/{user_id}/roles/{role_id}/expire", response_model=ApiResponse)
async def expire_role(
        user_id: UUID,
        role_id: UUID,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        scope: Annotated[BranchScope, Depends(get_branch_scope)],
        db: Annotated[AsyncSession, Depends(get_session)],
        assignment_service: Annotated[AssignmentService, Depends(get_assignment_service)],
        branch_id: UUID = Query(...),
):
    """End an assignment now while keeping the row for its history."""
    await scope.require_branch(branch_id)
    assignment = await assignment_service.expire_role(
        db, user_id, role_id, branch_id, expired_by=principal.user_id if principal else None
    )
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        detail="Role assignment expired",
        data=RoleAssignment.model_validate(assignment),
    )


@router.get("/{user_id}/effective-permissions", response_model=ApiResponse)
async def effective_permissions(
        user_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        user_repository: Annotated[UserRepository, Depends(get_user_repository)],
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
        branch_id: Optional[UUID] = None,
):
    """Every permission the user holds in ``branch_id`` (legacy and RBAC combined)."""
    await _require_user(db, user_repository, user_id)
    permissions = await resolver.list_effective_permissions(user_id, branch_id)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=EffectivePermissions(user_id=user_id, branch_id=branch_id, permissions=sorted(permissions)),
    )


@router.get("/{user_id}/permissions/check", response_model=ApiResponse)
async def check_permission(
        user_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        user_repository: Annotated[UserRepository, Depends(get_user_repository)],
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
        permission: str = Query(..., min_length=1),
        branch_id: Optional[UUID] = None,
):
    """Decision for one permission together with the roles that grant it."""
    await _require_user(db, user_repository, user_id)
    decision = await resolver.resolve(user_id, permission, branch_id)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=PermissionCheck(
            user_id=user_id,
            permission=permission,
            branch_id=branch_id,
            granted=decision.granted,
            reason=decision.reason.value,
            granted_by=[GrantSource(**source._asdict()) for source in decision.granted_by],
        ),
    )
