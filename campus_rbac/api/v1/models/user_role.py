from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rbac.core.models import Base, utcnow, as_utc


class UserRole(Base):
    """
    Role assignment: links a User to an RBAC role, valid under one branch,
    with provenance and an optional expiry.
    """
    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rbac_role_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("rbac_roles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    branch_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Concurrent AssignRole calls race on this constraint, not on a read check.
    __table_args__ = (
        UniqueConstraint("user_id", "rbac_role_id", "branch_id", name="uq_user_role_branch"),
    )

    user: Mapped["User"] = relationship(back_populates="role_assignments", foreign_keys=[user_id])
    rbac_role: Mapped["RBACRole"] = relationship(back_populates="user_roles", lazy="selectin")

    def is_active_at(self, moment: datetime) -> bool:
        return self.expires_at is None or as_utc(self.expires_at) > moment

    def __repr__(self):
        return (
            f"<UserRole(user_id='{self.user_id}', rbac_role_id='{self.rbac_role_id}', "
            f"branch_id='{self.branch_id}')>"
        )
