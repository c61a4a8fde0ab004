from typing import List, Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rbac.core.models import Base


class User(Base):
    """Principal with exactly one legacy role and any number of RBAC role assignments."""
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    # Nullable only in transient/error states.
    legacy_role_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("legacy_roles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    branch_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    legacy_role: Mapped[Optional["LegacyRole"]] = relationship(back_populates="users", lazy="selectin")
    role_assignments: Mapped[List["UserRole"]] = relationship(
        back_populates="user",
        foreign_keys="UserRole.user_id",
        cascade="save-update, merge, delete",
    )

    def __repr__(self):
        return f"<User(id='{self.id}', username='{self.username}')>"
