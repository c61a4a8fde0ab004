"""Tests for the legacy/RBAC reconciliation routines."""
import asyncio
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from campus_rbac.api.v1.models import AuditLog, RBACRole, UserRole
from campus_rbac.api.v1.repositories import get_role_repository
from campus_rbac.api.v1.services import PermissionResolver, ReconciliationService
from campus_rbac.core.config import settings


async def count_rows(session_factory, model, *criteria):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model).where(*criteria))


async def load_role(session_factory, name, branch_id):
    async with session_factory() as session:
        return await get_role_repository().find_by_name(session, name, branch_id)


@pytest.fixture
def service(session_factory):
    return ReconciliationService(session_factory)


class TestSyncRoleCatalog:

    async def test_creates_counterparts_with_legacy_permissions(self, build, session_factory, service):
        b1 = await build.branch("B1")
        await build.legacy_role("Teacher", ["courses:read", "grades:create"], branch=b1)
        await build.legacy_role("Auditor", {"finance": ["*"]})

        report = await service.sync_role_catalog()

        assert {c.role_name for c in report.created} == {"Teacher", "Auditor"}
        teacher = await load_role(session_factory, "Teacher", b1.id)
        assert teacher.permission_names == {"courses:read", "grades:create"}
        assert not teacher.is_system

        auditor = await load_role(session_factory, "Auditor", None)
        assert auditor.is_system
        assert not auditor.is_orphan
        assert auditor.permission_names == {
            "finance:create", "finance:read", "finance:update", "finance:read_own",
        }
        assert await count_rows(session_factory, AuditLog, AuditLog.action == "role.synced") == 2

    async def test_rerun_changes_nothing(self, build, session_factory, service):
        b1 = await build.branch("B1")
        await build.legacy_role("Teacher", ["courses:read"], branch=b1)

        await service.sync_role_catalog()
        second = await service.sync_role_catalog()

        assert second.created == []
        assert second.already_present == 1
        assert await count_rows(session_factory, RBACRole) == 1

    async def test_existing_global_role_counts_as_counterpart(self, build, session_factory, service):
        b1 = await build.branch("B1")
        await build.legacy_role("Nurse", ["health:read"], branch=b1)
        await build.role("Nurse", ["health:read"], is_system=True)

        report = await service.sync_role_catalog()

        assert report.created == []
        assert report.already_present == 1


class TestBackfillUserAssignments:

    async def test_legacy_users_gain_assignment_and_keep_access(self, db, build, session_factory, service):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Teacher", ["courses:read", "grades:create"], branch=b1)
        users = [await build.user(f"teacher{i}", legacy_role=legacy, branch=b1) for i in range(3)]
        await service.sync_role_catalog()

        before = {u.id: await PermissionResolver(db).list_effective_permissions(u.id, b1.id) for u in users}
        report = await service.backfill_user_assignments()

        assert len(report.created) == 3
        assert await count_rows(session_factory, UserRole, UserRole.branch_id == b1.id) == 3
        for user in users:
            assert await PermissionResolver(db).list_effective_permissions(user.id, b1.id) == before[user.id]

    async def test_rerun_creates_nothing(self, build, session_factory, service):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Teacher", ["courses:read"], branch=b1)
        await build.user("teacher1", legacy_role=legacy, branch=b1)
        await service.sync_role_catalog()

        await service.backfill_user_assignments()
        second = await service.backfill_user_assignments()

        assert second.created == []
        assert second.already_assigned == 1
        assert await count_rows(session_factory, UserRole) == 1

    async def test_global_legacy_role_targets_home_branch(self, build, session_factory, service):
        b2 = await build.branch("B2")
        legacy = await build.legacy_role("Auditor", ["finance:read"])
        user = await build.user("auditor", legacy_role=legacy, branch=b2)
        await service.sync_role_catalog()

        report = await service.backfill_user_assignments()

        assert [(c.user_id, c.branch_id) for c in report.created] == [(user.id, b2.id)]

    async def test_users_without_target_are_skipped(self, build, service):
        b1 = await build.branch("B1")
        nurse = await build.legacy_role("Nurse", ["health:read"], branch=b1)
        drifter = await build.legacy_role("Drifter", ["courses:read"])
        nurse_user = await build.user("nurse", legacy_role=nurse, branch=b1)
        homeless = await build.user("homeless", legacy_role=drifter)

        report = await service.backfill_user_assignments()

        reasons = {s.user_id: s.reason for s in report.skipped}
        assert reasons == {nurse_user.id: "missing_rbac_role", homeless.id: "no_branch"}
        assert report.created == []

    async def test_user_with_any_assignment_in_branch_is_left_alone(self, build, session_factory, service):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Teacher", ["courses:read"], branch=b1)
        other = await build.role("Librarian", ["library:read"], branch=b1)
        user = await build.user("teacher1", legacy_role=legacy, branch=b1)
        await build.assignment(user, other, b1)
        await service.sync_role_catalog()

        report = await service.backfill_user_assignments()

        assert report.already_assigned == 1
        assert await count_rows(session_factory, UserRole) == 1


class TestRepairOrphanRoles:

    async def test_orphan_moves_to_earliest_active_branch(self, build, session_factory, service):
        b1 = await build.branch("B1", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        await build.branch("B2", created_at=datetime(2021, 1, 1, tzinfo=timezone.utc))
        await build.branch("B0", is_active=False, created_at=datetime(2019, 1, 1, tzinfo=timezone.utc))
        counselor = await build.role("Counselor", ["students:read"])

        report = await service.repair_orphan_roles()

        assert report.error is None
        assert report.default_branch_id == b1.id
        assert [r.role_id for r in report.repaired] == [counselor.id]
        repaired = await load_role(session_factory, "Counselor", b1.id)
        assert repaired.id == counselor.id
        assert await count_rows(session_factory, AuditLog, AuditLog.action == "role.orphan_repaired") == 1

        second = await service.repair_orphan_roles()
        assert second.repaired == []
        assert second.needs_review == []

    async def test_system_roles_are_not_orphans(self, build, service):
        await build.branch("B1")
        await build.role("Inspector", ["health:read"], is_system=True)

        report = await service.repair_orphan_roles()

        assert report.repaired == []

    async def test_explicit_default_branch(self, build, session_factory, service):
        await build.branch("B1", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        b2 = await build.branch("B2", created_at=datetime(2021, 1, 1, tzinfo=timezone.utc))
        await build.role("Counselor", ["students:read"])

        report = await service.repair_orphan_roles(b2.id)

        assert report.default_branch_id == b2.id
        assert (await load_role(session_factory, "Counselor", b2.id)) is not None

    async def test_configured_default_branch(self, build, session_factory, service, monkeypatch):
        await build.branch("B1", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        b2 = await build.branch("B2", created_at=datetime(2021, 1, 1, tzinfo=timezone.utc))
        await build.role("Counselor", ["students:read"])
        monkeypatch.setattr(settings, "DEFAULT_BRANCH_ID", b2.id)

        report = await service.repair_orphan_roles()

        assert report.default_branch_id == b2.id

    async def test_without_active_branch_reports_error(self, build, session_factory, service):
        await build.branch("B0", is_active=False)
        await build.role("Counselor", ["students:read"])

        report = await service.repair_orphan_roles()

        assert report.error
        assert report.repaired == []
        assert (await load_role(session_factory, "Counselor", None)) is not None

    async def test_unknown_default_branch_reports_error(self, build, service):
        await build.branch("B1")

        report = await service.repair_orphan_roles(uuid.uuid4())

        assert report.error

    async def test_role_assigned_elsewhere_needs_review(self, build, session_factory, service):
        b1 = await build.branch("B1", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        b2 = await build.branch("B2", created_at=datetime(2021, 1, 1, tzinfo=timezone.utc))
        counselor = await build.role("Counselor", ["students:read"])
        user = await build.user("counselor", branch=b2)
        await build.assignment(user, counselor, b2)

        report = await service.repair_orphan_roles()

        assert report.repaired == []
        assert [(r.role_id, r.reason, r.assigned_in_branches) for r in report.needs_review] == [
            (counselor.id, "assigned_in_other_branches", [b2.id]),
        ]
        assert (await load_role(session_factory, "Counselor", None)) is not None
        assert (await load_role(session_factory, "Counselor", b1.id)) is None

    async def test_name_clash_in_default_branch_needs_review(self, build, service):
        b1 = await build.branch("B1")
        await build.role("Counselor", ["students:read"], branch=b1)
        orphan = await build.role("Counselor", ["students:read"])

        report = await service.repair_orphan_roles()

        assert [(r.role_id, r.reason) for r in report.needs_review] == [(orphan.id, "name_taken_in_default_branch")]


class TestStopEvent:

    async def test_set_event_stops_before_first_unit(self, build, session_factory):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Teacher", ["courses:read"], branch=b1)
        await build.user("teacher1", legacy_role=legacy, branch=b1)
        await build.role("Counselor", ["students:read"])
        stop = asyncio.Event()
        stop.set()
        service = ReconciliationService(session_factory, stop_event=stop)

        sync = await service.sync_role_catalog()
        backfill = await service.backfill_user_assignments()
        repair = await service.repair_orphan_roles()

        assert sync.stopped and backfill.stopped and repair.stopped
        assert sync.created == [] and backfill.created == [] and repair.repaired == []
        assert await count_rows(session_factory, RBACRole) == 1
        assert await count_rows(session_factory, UserRole) == 0


class TestDetectDrift:

    async def test_reports_every_kind_of_drift_without_changes(self, build, session_factory, service):
        b1 = await build.branch("B1")
        b2 = await build.branch("B2")
        await build.legacy_role("Accountant", ["finance:read"], branch=b1)
        librarian = await build.role("Librarian", ["library:read"], branch=b1)
        counselor = await build.role("Counselor", ["students:read"])
        teacher = await build.role("Teacher", ["courses:read"], branch=b1)
        await build.legacy_role("Teacher", ["courses:read"], branch=b1)
        user = await build.user("teacher1", branch=b2)
        broken = await build.assignment(user, teacher, b2)

        report = await service.detect_drift()

        assert report.has_drift
        assert [e.role_name for e in report.legacy_without_rbac] == ["Accountant"]
        assert {e.role_id for e in report.rbac_without_legacy} == {librarian.id, counselor.id}
        assert [e.role_id for e in report.orphan_roles] == [counselor.id]
        assert [(c.assignment_id, c.role_branch_id, c.branch_id) for c in report.cross_branch_assignments] == [
            (broken.id, b1.id, b2.id),
        ]
        assert await count_rows(session_factory, RBACRole) == 3
        assert await count_rows(session_factory, AuditLog) == 0

    async def test_consistent_state_has_no_drift(self, build, service):
        b1 = await build.branch("B1")
        await build.legacy_role("Teacher", ["courses:read"], branch=b1)
        await service.sync_role_catalog()

        report = await service.detect_drift()

        assert not report.has_drift
