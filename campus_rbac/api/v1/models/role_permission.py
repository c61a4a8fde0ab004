from sqlalchemy import Column, ForeignKey, Table, Uuid

from campus_rbac.core.models import Base


# Association table linking RBAC roles to permissions (many-to-many).
rbac_role_permissions = Table(
    "rbac_role_permissions",
    Base.metadata,
    Column("role_id", Uuid(as_uuid=True), ForeignKey("rbac_roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Uuid(as_uuid=True), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)
