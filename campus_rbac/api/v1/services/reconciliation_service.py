"""
Batch routines keeping the legacy and RBAC role systems consistent.

Every routine is additive and safe to re-run. Work is split into one
transaction per legacy role, user or orphan role, so an interrupted run
leaves each item either fully processed or untouched. An optional
``asyncio.Event`` is checked before each item; once set, no new item is
started and the report comes back with ``stopped=True``.
"""
import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_rbac.api.v1.repositories import (
    get_audit_log_repository,
    get_branch_repository,
    get_legacy_role_repository,
    get_permission_repository,
    get_role_repository,
    get_user_repository,
    get_user_roles_repository,
)
from campus_rbac.api.v1.schemas import (
    BackfillReport,
    CreatedAssignment,
    CreatedRole,
    CrossBranchAssignment,
    DriftEntry,
    DriftReport,
    OrphanForReview,
    OrphanRepairReport,
    RepairedRole,
    SkippedUser,
    SyncCatalogReport,
)
from campus_rbac.api.v1.services.catalog import PermissionCatalog, expand_legacy_permissions, get_permission_catalog
from campus_rbac.core.config import settings

logger = logging.getLogger(__name__)


class ReconciliationService:

    def __init__(
            self,
            session_factory: async_sessionmaker[AsyncSession],
            catalog: Optional[PermissionCatalog] = None,
            stop_event: Optional[asyncio.Event] = None,
    ):
        self.session_factory = session_factory
        self.catalog = catalog or get_permission_catalog()
        self.stop_event = stop_event

        self.branch_repository = get_branch_repository()
        self.legacy_role_repository = get_legacy_role_repository()
        self.permission_repository = get_permission_repository()
        self.role_repository = get_role_repository()
        self.user_repository = get_user_repository()
        self.user_roles_repository = get_user_roles_repository()
        self.audit_log_repository = get_audit_log_repository()

    def _stopping(self) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            logger.info("Stop requested; not starting further reconciliation units")
            return True
        return False

    # ------------------------------------------------------------------
    # Sync role catalog
    # ------------------------------------------------------------------

    async def sync_role_catalog(self) -> SyncCatalogReport:
        """
        Create an RBAC role for every legacy role lacking a counterpart of the
        same name in its branch (or globally), copying its permissions.

        A global legacy role gets a global system RBAC role, the only kind of
        global role that is not an orphan.
        """
        report = SyncCatalogReport()
        async with self.session_factory() as db:
            legacy_ids = [role.id for role in await self.legacy_role_repository.list_all(db)]

        for legacy_id in legacy_ids:
            if self._stopping():
                report.stopped = True
                break

            async with self.session_factory() as db:
                legacy = await self.legacy_role_repository.get_by_id(db, legacy_id)
                if legacy is None:
                    continue
                if await self.role_repository.find_counterpart(db, legacy.name, legacy.branch_id) is not None:
                    report.already_present += 1
                    continue

                names = expand_legacy_permissions(legacy.permissions, self.catalog)
                permissions = await self.permission_repository.get_by_names(db, names)
                missing = names - {p.permission_name for p in permissions}
                if missing:
                    logger.warning(
                        "Permission(s) %s of legacy role %s are not seeded; skipped",
                        sorted(missing), legacy.name,
                    )

                try:
                    role = await self.role_repository.create(
                        db,
                        role_name=legacy.name,
                        description=legacy.description,
                        branch_id=legacy.branch_id,
                        is_system=legacy.is_system or legacy.branch_id is None,
                        permissions=sorted(permissions, key=lambda p: p.permission_name),
                    )
                    await self.audit_log_repository.record(
                        db,
                        action="role.synced",
                        entity_type="rbac_role",
                        entity_id=role.id,
                        branch_id=role.branch_id,
                        changes={"legacy_role_id": str(legacy.id), "permissions": len(permissions)},
                    )
                    entry = CreatedRole(
                        legacy_role_id=legacy.id,
                        role_id=role.id,
                        role_name=role.role_name,
                        branch_id=role.branch_id,
                        permission_count=len(permissions),
                    )
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    report.already_present += 1
                    continue

            report.created.append(entry)
            logger.info("Created RBAC role %s for legacy role %s in branch %s",
                        entry.role_id, entry.legacy_role_id, entry.branch_id)

        return report

    # ------------------------------------------------------------------
    # Backfill user assignments
    # ------------------------------------------------------------------

    async def backfill_user_assignments(self) -> BackfillReport:
        """
        Give every user holding a legacy role an assignment to its RBAC
        counterpart. The target branch is the legacy role's branch, or the
        user's home branch when the legacy role is global. Users with any
        assignment in the target branch are left alone.
        """
        report = BackfillReport()
        async with self.session_factory() as db:
            user_ids = await self.user_repository.list_ids_with_legacy_role(db)

        for user_id in user_ids:
            if self._stopping():
                report.stopped = True
                break

            async with self.session_factory() as db:
                user = await self.user_repository.get_by_id(db, user_id)
                if user is None or user.legacy_role is None:
                    continue
                legacy = user.legacy_role
                branch_id = legacy.branch_id or user.branch_id

                if branch_id is None:
                    report.skipped.append(SkippedUser(
                        user_id=user_id, reason="no_branch", legacy_role_name=legacy.name,
                    ))
                    continue
                if await self.user_roles_repository.has_assignment_in_branch(db, user_id, branch_id):
                    report.already_assigned += 1
                    continue

                role = await self.role_repository.find_counterpart(db, legacy.name, branch_id)
                if role is None:
                    report.skipped.append(SkippedUser(
                        user_id=user_id, reason="missing_rbac_role",
                        legacy_role_name=legacy.name, branch_id=branch_id,
                    ))
                    continue

                entry = CreatedAssignment(
                    user_id=user_id, role_id=role.id, role_name=role.role_name, branch_id=branch_id,
                )
                try:
                    assignment = await self.user_roles_repository.create(
                        db, user_id=user_id, rbac_role_id=role.id, branch_id=branch_id,
                    )
                    await self.audit_log_repository.record(
                        db,
                        action="role.backfilled",
                        entity_type="user_role",
                        entity_id=assignment.id,
                        branch_id=branch_id,
                        changes={"user_id": str(user_id), "role_id": str(role.id)},
                    )
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    report.already_assigned += 1
                    continue

            report.created.append(entry)
            logger.info("Backfilled role %s for user %s in branch %s", entry.role_name, user_id, branch_id)

        return report

    # ------------------------------------------------------------------
    # Repair orphan roles
    # ------------------------------------------------------------------

    async def repair_orphan_roles(self, default_branch_id: Optional[UUID] = None) -> OrphanRepairReport:
        """
        Move every non-system role without a branch into the default branch.

        The default branch is ``default_branch_id``, else the
        ``DEFAULT_BRANCH_ID`` setting, else the earliest-created active
        branch. Roles already assigned under other branches, or whose name is
        taken in the default branch, are reported for review rather than
        moved, since moving them would silently withdraw grants.
        """
        report = OrphanRepairReport()
        default_branch_id = default_branch_id or settings.DEFAULT_BRANCH_ID

        async with self.session_factory() as db:
            if default_branch_id is not None:
                branch = await self.branch_repository.get_by_id(db, default_branch_id)
                if branch is None or not branch.is_active:
                    report.error = f"Default branch {default_branch_id} does not exist or is inactive"
                    logger.error(report.error)
                    return report
            else:
                branch = await self.branch_repository.get_earliest_active(db)
                if branch is None:
                    report.error = "No active branch to adopt orphan roles"
                    logger.error(report.error)
                    return report
            target = branch.id
            orphan_ids = [role.id for role in await self.role_repository.list_orphans(db)]

        report.default_branch_id = target

        for role_id in orphan_ids:
            if self._stopping():
                report.stopped = True
                break

            async with self.session_factory() as db:
                role = await self.role_repository.get_by_id(db, role_id)
                if role is None or not role.is_orphan:
                    continue

                foreign = await self.user_roles_repository.list_for_role_outside_branch(db, role.id, target)
                if foreign:
                    report.needs_review.append(OrphanForReview(
                        role_id=role.id,
                        role_name=role.role_name,
                        reason="assigned_in_other_branches",
                        assigned_in_branches=sorted({a.branch_id for a in foreign}, key=str),
                    ))
                    continue
                if await self.role_repository.name_taken(db, role.role_name, target, exclude_id=role.id):
                    report.needs_review.append(OrphanForReview(
                        role_id=role.id, role_name=role.role_name, reason="name_taken_in_default_branch",
                    ))
                    continue

                entry = RepairedRole(role_id=role.id, role_name=role.role_name, branch_id=target)
                try:
                    await self.role_repository.update(db, role, branch_id=target)
                    await self.audit_log_repository.record(
                        db,
                        action="role.orphan_repaired",
                        entity_type="rbac_role",
                        entity_id=role.id,
                        branch_id=target,
                        changes={"branch_id": {"from": None, "to": str(target)}},
                    )
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    report.needs_review.append(OrphanForReview(
                        role_id=entry.role_id, role_name=entry.role_name, reason="name_taken_in_default_branch",
                    ))
                    continue

            report.repaired.append(entry)
            logger.info("Moved orphan role %s (%s) to branch %s", entry.role_name, entry.role_id, target)

        return report

    # ------------------------------------------------------------------
    # Detect drift
    # ------------------------------------------------------------------

    async def detect_drift(self) -> DriftReport:
        """Read-only comparison of both role systems; nothing is fixed here."""
        report = DriftReport()
        async with self.session_factory() as db:
            legacy_roles = await self.legacy_role_repository.list_all(db)
            rbac_roles = await self.role_repository.list_all(db)
            cross_branch = await self.user_roles_repository.list_cross_branch(db)

            rbac_scopes = {(role.role_name, role.branch_id) for role in rbac_roles}
            legacy_scopes = {(role.name, role.branch_id) for role in legacy_roles}
            legacy_names = {role.name for role in legacy_roles}

            for legacy in legacy_roles:
                if (legacy.name, legacy.branch_id) not in rbac_scopes and (legacy.name, None) not in rbac_scopes:
                    report.legacy_without_rbac.append(
                        DriftEntry(role_id=legacy.id, role_name=legacy.name, branch_id=legacy.branch_id)
                    )

            for role in rbac_roles:
                if role.branch_id is None:
                    matched = role.role_name in legacy_names
                else:
                    matched = (role.role_name, role.branch_id) in legacy_scopes or (role.role_name, None) in legacy_scopes
                if not matched:
                    report.rbac_without_legacy.append(
                        DriftEntry(role_id=role.id, role_name=role.role_name, branch_id=role.branch_id)
                    )
                if role.is_orphan:
                    report.orphan_roles.append(DriftEntry(role_id=role.id, role_name=role.role_name))

            for assignment in cross_branch:
                report.cross_branch_assignments.append(CrossBranchAssignment(
                    assignment_id=assignment.id,
                    user_id=assignment.user_id,
                    role_id=assignment.rbac_role_id,
                    role_branch_id=assignment.rbac_role.branch_id,
                    branch_id=assignment.branch_id,
                ))

        if report.has_drift:
            logger.warning(
                "Role drift: %d legacy role(s) without RBAC counterpart, %d RBAC role(s) without legacy "
                "counterpart, %d orphan role(s), %d cross-branch assignment(s)",
                len(report.legacy_without_rbac), len(report.rbac_without_legacy),
                len(report.orphan_roles), len(report.cross_branch_assignments),
            )
        return report
