from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from campus_rbac.core.models import Base


class Permission(Base):
    """Defines an atomic action in RESOURCE:ACTION format. Immutable once created."""
    __tablename__ = "permissions"

    # The permission string (e.g., 'students:read', 'branches:delete')
    permission_name: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    resource: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String)

    def __repr__(self):
        return f"<Permission(permission_name='{self.permission_name}')>"
