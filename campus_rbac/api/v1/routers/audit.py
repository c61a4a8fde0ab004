from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.repositories import AuditLogRepository, get_audit_log_repository
from campus_rbac.api.v1.schemas import AuditLogEntry, AuditLogFilter
from campus_rbac.core.routers import filter, read_item
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.db.session import get_session

prefix = "/system/audit"
router = APIRouter(prefix=prefix)


@router.get("", response_model=ApiResponse)
async def filter_audit_logs(
        filters: Annotated[AuditLogFilter, Query()],
        db: Annotated[AsyncSession, Depends(get_session)],
        audit_log_repository: Annotated[AuditLogRepository, Depends(get_audit_log_repository)]
):
    """Audit entries by acting user, entity, action or date range; newest first."""
    return await filter(filters, db, audit_log_repository, AuditLogEntry)


@router.get("/{entry_id}", response_model=ApiResponse)
async def read_audit_log(
        entry_id: UUID,
        db: Annotated[AsyncSession, Depends(get_session)],
        audit_log_repository: Annotated[AuditLogRepository, Depends(get_audit_log_repository)]
):
    return await read_item(entry_id, db, audit_log_repository, AuditLogEntry)
