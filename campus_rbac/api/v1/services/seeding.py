import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_rbac.api.v1.repositories import (
    get_branch_repository,
    get_permission_repository,
    get_role_permissions_repository,
    get_role_repository,
)
from campus_rbac.api.v1.schemas import SeedReport
from campus_rbac.api.v1.services.catalog import PermissionCatalog, get_permission_catalog
from campus_rbac.core.permissions import DEFAULT_ROLE_DESCRIPTIONS, DEFAULT_ROLE_PERMISSIONS, WILDCARD

logger = logging.getLogger(__name__)


async def seed_permissions(db: AsyncSession, catalog: Optional[PermissionCatalog] = None) -> int:
    """Insert every catalog entry missing from the permissions table. Returns the number inserted."""
    catalog = catalog or get_permission_catalog()
    permission_repository = get_permission_repository()

    existing = {p.permission_name for p in await permission_repository.list_all(db)}
    created = 0
    for definition in catalog:
        if definition.name in existing:
            continue
        await permission_repository.create(
            db,
            permission_name=definition.name,
            resource=definition.resource,
            action=definition.action,
            description=definition.description,
        )
        created += 1

    if created:
        logger.info("Seeded %d permission(s)", created)
    return created


async def seed_default_roles(db: AsyncSession, catalog: Optional[PermissionCatalog] = None) -> SeedReport:
    """
    Make sure every active branch has the built-in roles with at least their
    default permissions. Existing roles only ever gain permissions here.
    """
    catalog = catalog or get_permission_catalog()
    role_repository = get_role_repository()
    role_permissions_repository = get_role_permissions_repository()
    report = SeedReport()

    for branch in await get_branch_repository().list_active(db):
        for role_name, names in DEFAULT_ROLE_PERMISSIONS.items():
            wanted = catalog.names if WILDCARD in names else frozenset(names) & catalog.names

            role = await role_repository.find_by_name(db, role_name, branch.id)
            if role is None:
                role = await role_repository.create(
                    db,
                    role_name=role_name,
                    description=DEFAULT_ROLE_DESCRIPTIONS.get(role_name),
                    branch_id=branch.id,
                    is_system=True,
                    permissions=[],
                )
                report.roles_created += 1
                logger.info("Created default role %s for branch %s", role_name, branch.code)

            attached = await role_permissions_repository.assign_permissions(db, role, wanted)
            report.permissions_attached += len(attached)

    return report


async def seed(session_factory: async_sessionmaker[AsyncSession], catalog: Optional[PermissionCatalog] = None) -> SeedReport:
    """Permissions then default roles, committed as one unit."""
    async with session_factory() as db:
        try:
            permissions_created = await seed_permissions(db, catalog)
            report = await seed_default_roles(db, catalog)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    report.permissions_created = permissions_created
    return report
