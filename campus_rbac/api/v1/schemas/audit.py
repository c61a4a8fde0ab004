from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from campus_rbac.core.schemas import BaseSchema, BaseFilter


class AuditLogEntry(BaseSchema):
    id: UUID
    user_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    changes: Optional[dict] = None
    created_at: datetime


class AuditLogFilter(BaseFilter):
    """``user_id`` is the acting user; ``created_at__gte``/``__lte`` bound the date range."""
    user_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    action: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    created_at__gte: Optional[datetime] = None
    created_at__lte: Optional[datetime] = None
    sort: Optional[List[str]] = Field(default=["created_at-"], description="Newest first unless overridden")
