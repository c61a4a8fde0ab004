from typing import List, Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rbac.core.models import Base
from .role_permission import rbac_role_permissions


class RBACRole(Base):
    """
    Role of the many-to-many model. Scoped to one branch, or global when
    ``branch_id`` is null (only legitimate for system roles; a non-system role
    without a branch is an orphan).
    """
    __tablename__ = "rbac_roles"

    role_name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String)
    branch_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("branches.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Null branches never collide in a unique index, so global names are
    # checked by the repository before insert.
    __table_args__ = (
        UniqueConstraint("branch_id", "role_name", name="uq_rbac_role_branch_name"),
    )

    branch: Mapped[Optional["Branch"]] = relationship(back_populates="rbac_roles")
    permissions: Mapped[List["Permission"]] = relationship(
        secondary=rbac_role_permissions,
        lazy="selectin",
        order_by="Permission.permission_name",
    )
    user_roles: Mapped[List["UserRole"]] = relationship(back_populates="rbac_role", cascade="save-update, merge, delete")

    @property
    def permission_names(self) -> frozenset[str]:
        return frozenset(p.permission_name for p in self.permissions)

    @property
    def is_orphan(self) -> bool:
        return self.branch_id is None and not self.is_system

    def __repr__(self):
        return f"<RBACRole(role_name='{self.role_name}', branch_id='{self.branch_id}')>"
