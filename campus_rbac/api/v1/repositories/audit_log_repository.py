from functools import lru_cache
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import AuditLog
from campus_rbac.core.repositories import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self):
        super().__init__(AuditLog)

    async def record(
            self,
            db: AsyncSession,
            action: str,
            entity_type: str,
            entity_id: Any = None,
            user_id: Optional[UUID] = None,
            branch_id: Optional[UUID] = None,
            changes: Optional[dict] = None,
    ) -> AuditLog:
        """Adds an audit entry to the caller's transaction."""
        return await self.create(
            db,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            user_id=user_id,
            branch_id=branch_id,
            changes=changes,
        )


@lru_cache()
def get_audit_log_repository() -> AuditLogRepository:
    return AuditLogRepository()
