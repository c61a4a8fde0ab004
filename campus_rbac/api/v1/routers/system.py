from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_rbac.api.v1.services.reconciliation_service import ReconciliationService
from campus_rbac.api.v1.services.seeding import seed
from campus_rbac.core.config import settings
from campus_rbac.core.middlewares import limiter
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.db.session import get_session_factory

prefix = "/system/rbac"
router = APIRouter(prefix=prefix)


def get_reconciliation_service(
        session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
) -> ReconciliationService:
    return ReconciliationService(session_factory)


@router.post("/sync-catalog", response_model=ApiResponse)
@limiter.limit(settings.RECONCILIATION_RATE_LIMIT)
async def sync_catalog(
        request: Request,
        service: Annotated[ReconciliationService, Depends(get_reconciliation_service)]
):
    """Create RBAC counterparts for legacy roles."""
    report = await service.sync_role_catalog()
    return ApiResponse(status_code=status.HTTP_200_OK, data=report)


@router.post("/backfill-assignments", response_model=ApiResponse)
@limiter.limit(settings.RECONCILIATION_RATE_LIMIT)
async def backfill_assignments(
        request: Request,
        service: Annotated[ReconciliationService, Depends(get_reconciliation_service)]
):
    """Assign legacy-only users to the RBAC counterpart of their legacy role."""
    report = await service.backfill_user_assignments()
    return ApiResponse(status_code=status.HTTP_200_OK, data=report)


@router.post("/repair-orphans", response_model=ApiResponse)
@limiter.limit(settings.RECONCILIATION_RATE_LIMIT)
async def repair_orphans(
        request: Request,
        service: Annotated[ReconciliationService, Depends(get_reconciliation_service)],
        default_branch_id: Optional[UUID] = None,
):
    """Scope non-system global roles to the default branch."""
    report = await service.repair_orphan_roles(default_branch_id)
    return ApiResponse(status_code=status.HTTP_200_OK, data=report)


@router.get("/drift", response_model=ApiResponse)
@limiter.limit(settings.RECONCILIATION_RATE_LIMIT)
async def drift(
        request: Request,
        service: Annotated[ReconciliationService, Depends(get_reconciliation_service)]
):
    """Report differences between the legacy and RBAC role systems."""
    report = await service.detect_drift()
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        detail="Drift detected" if report.has_drift else "No drift",
        data=report,
    )


@router.post("/seed", response_model=ApiResponse)
@limiter.limit(settings.RECONCILIATION_RATE_LIMIT)
async def seed_catalog(
        request: Request,
        session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
):
    """Seed the permission catalog and the default roles of every active branch."""
    report = await seed(session_factory)
    return ApiResponse(status_code=status.HTTP_200_OK, data=report)
