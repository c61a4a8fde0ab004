import logging
from functools import lru_cache
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import RBACRole
from campus_rbac.api.v1.repositories import (
    AuditLogRepository,
    BranchRepository,
    RolePermissionsRepository,
    RoleRepository,
    get_audit_log_repository,
    get_branch_repository,
    get_role_permissions_repository,
    get_role_repository,
)
from campus_rbac.api.v1.schemas import RoleCreate, RoleUpdate
from campus_rbac.api.v1.services.catalog import PermissionCatalog, get_permission_catalog
from campus_rbac.core.models import (
    AccessControlError,
    RecordNotFoundError,
    SystemRoleError,
    UnknownPermissionError,
)

logger = logging.getLogger(__name__)


class RoleService:
    """Administrative changes to RBAC roles; every write is audited and committed."""

    def __init__(
            self,
            role_repository: RoleRepository,
            branch_repository: BranchRepository,
            role_permissions_repository: RolePermissionsRepository,
            audit_log_repository: AuditLogRepository,
            catalog: PermissionCatalog,
    ):
        self.role_repository = role_repository
        self.branch_repository = branch_repository
        self.role_permissions_repository = role_permissions_repository
        self.audit_log_repository = audit_log_repository
        self.catalog = catalog

    def _check_names(self, names: Iterable[str]) -> set:
        names = set(names)
        unknown = self.catalog.unknown(names)
        if unknown:
            raise UnknownPermissionError(unknown)
        return names

    async def get_role(self, db: AsyncSession, role_id: UUID) -> RBACRole:
        role = await self.role_repository.get_by_id(db, role_id)
        if role is None:
            raise RecordNotFoundError(f"Role {role_id} not found")
        return role

    async def create_role(self, db: AsyncSession, data: RoleCreate, acting_user_id: Optional[UUID] = None) -> RBACRole:
        names = self._check_names(data.permissions)

        if data.branch_id is None and not data.is_system:
            raise AccessControlError("Only system roles may be created without a branch", status_code=422)
        if data.branch_id is not None and await self.branch_repository.get_by_id(db, data.branch_id) is None:
            raise RecordNotFoundError(f"Branch {data.branch_id} not found")
        if await self.role_repository.name_taken(db, data.role_name, data.branch_id):
            raise AccessControlError(f"Role '{data.role_name}' already exists in this scope", status_code=409)

        role = await self.role_repository.create(
            db,
            role_name=data.role_name,
            description=data.description,
            branch_id=data.branch_id,
            is_system=data.is_system,
            permissions=[],
        )
        attached = await self.role_permissions_repository.assign_permissions(db, role, names)
        await self.audit_log_repository.record(
            db,
            action="role.created",
            entity_type="rbac_role",
            entity_id=role.id,
            user_id=acting_user_id,
            branch_id=role.branch_id,
            changes={"role_name": role.role_name, "permissions": attached},
        )
        await db.commit()
        logger.info("Created role %s (%s) in branch %s", role.role_name, role.id, role.branch_id)
        return role

    async def update_role(
            self, db: AsyncSession, role_id: UUID, data: RoleUpdate, acting_user_id: Optional[UUID] = None
    ) -> RBACRole:
        role = await self.get_role(db, role_id)
        values = data.model_dump(exclude_unset=True, exclude_none=True)

        new_name = values.get("role_name")
        if new_name and new_name != role.role_name:
            if await self.role_repository.name_taken(db, new_name, role.branch_id, exclude_id=role.id):
                raise AccessControlError(f"Role '{new_name}' already exists in this scope", status_code=409)

        changes = {key: {"from": getattr(role, key), "to": value} for key, value in values.items()}
        await self.role_repository.update(db, role, **values)
        await self.audit_log_repository.record(
            db,
            action="role.updated",
            entity_type="rbac_role",
            entity_id=role.id,
            user_id=acting_user_id,
            branch_id=role.branch_id,
            changes=changes,
        )
        await db.commit()
        return role

    async def set_permissions(
            self, db: AsyncSession, role_id: UUID, names: Iterable[str], acting_user_id: Optional[UUID] = None
    ) -> RBACRole:
        names = self._check_names(names)
        role = await self.get_role(db, role_id)

        added, removed = await self.role_permissions_repository.replace_permissions(db, role, names)
        if added or removed:
            await self.audit_log_repository.record(
                db,
                action="role.permissions_updated",
                entity_type="rbac_role",
                entity_id=role.id,
                user_id=acting_user_id,
                branch_id=role.branch_id,
                changes={"added": added, "removed": removed},
            )
        await db.commit()
        logger.info("Permissions of role %s: +%d -%d", role.id, len(added), len(removed))
        return role

    async def delete_role(self, db: AsyncSession, role_id: UUID, acting_user_id: Optional[UUID] = None) -> None:
        role = await self.get_role(db, role_id)
        if role.is_system:
            raise SystemRoleError(f"Role '{role.role_name}' is a system role and cannot be deleted")

        await self.audit_log_repository.record(
            db,
            action="role.deleted",
            entity_type="rbac_role",
            entity_id=role.id,
            user_id=acting_user_id,
            branch_id=role.branch_id,
            changes={"role_name": role.role_name, "permissions": sorted(role.permission_names)},
        )
        await self.role_repository.delete(db, role)
        await db.commit()
        logger.info("Deleted role %s (%s)", role.role_name, role_id)


@lru_cache()
def get_role_service() -> RoleService:
    return RoleService(
        role_repository=get_role_repository(),
        branch_repository=get_branch_repository(),
        role_permissions_repository=get_role_permissions_repository(),
        audit_log_repository=get_audit_log_repository(),
        catalog=get_permission_catalog(),
    )
