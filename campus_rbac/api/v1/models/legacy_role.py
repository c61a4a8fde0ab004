from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, JSON, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rbac.core.models import Base


class LegacyRole(Base):
    """
    Original single-role-per-user model. ``permissions`` holds either a list of
    permission names (``["*"]`` for everything) or a ``resource -> [actions]``
    mapping; see ``expand_legacy_permissions``.
    """
    __tablename__ = "legacy_roles"

    name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String)
    permissions: Mapped[Any] = mapped_column(JSON, nullable=False, default=list)
    branch_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("branch_id", "name", name="uq_legacy_role_branch_name"),
    )

    users: Mapped[List["User"]] = relationship(back_populates="legacy_role")

    def __repr__(self):
        return f"<LegacyRole(name='{self.name}', branch_id='{self.branch_id}')>"
