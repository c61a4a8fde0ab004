from typing import List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rbac.core.models import Base


class Branch(Base):
    """A tenant boundary (a school campus) under which data and roles are scoped."""
    __tablename__ = "branches"

    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    rbac_roles: Mapped[List["RBACRole"]] = relationship(back_populates="branch")

    def __repr__(self):
        return f"<Branch(id='{self.id}', code='{self.code}')>"
