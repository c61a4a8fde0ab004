from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from campus_rbac.core.models import Base


class AuditLog(Base):
    """
    Access-control audit trail.
    - Records role assignments, revocations and role-permission changes.
    - Written in the same transaction as the change it describes.
    - No foreign keys: entries outlive the users, roles and branches they mention.
    """

    __tablename__ = "audit_logs"

    # Acting principal; null for system-initiated changes (reconciliation runs).
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)

    # e.g. role.assigned, role.revoked, role.permissions_updated
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    changes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} user_id={self.user_id} action={self.action}>"
