"""Tests for permission resolution: the pure decision and the database-backed resolver."""
import itertools
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from campus_rbac.api.v1.services.resolver import (
    AssignmentGrant,
    DecisionReason,
    PermissionResolver,
    PrincipalGrants,
    evaluate,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
B1 = uuid.uuid4()
B2 = uuid.uuid4()


def grant(role_name, permissions, branch_id, role_branch_id="same", expires_at=None):
    return AssignmentGrant(
        assignment_id=uuid.uuid4(),
        role_id=uuid.uuid4(),
        role_name=role_name,
        role_branch_id=branch_id if role_branch_id == "same" else role_branch_id,
        branch_id=branch_id,
        expires_at=expires_at,
        permissions=frozenset(permissions),
    )


def principal(legacy=None, assignments=(), is_active=True):
    return PrincipalGrants(
        user_id=uuid.uuid4(),
        is_active=is_active,
        legacy_role_id=uuid.uuid4() if legacy is not None else None,
        legacy_role_name="Legacy" if legacy is not None else None,
        legacy_permissions=legacy,
        assignments=tuple(assignments),
    )


class TestEvaluate:

    def test_teacher_scenario(self, catalog):
        teacher1 = principal(
            legacy=["courses:read", "grades:create"],
            assignments=[grant("Teacher", ["attendance:create"], B1)],
        )
        assert evaluate(teacher1, "grades:create", B1, NOW, catalog).granted
        assert evaluate(teacher1, "attendance:create", B1, NOW, catalog).granted
        assert not evaluate(teacher1, "attendance:create", B2, NOW, catalog).granted

    def test_grant_sources_name_the_roles(self, catalog):
        teacher1 = principal(
            legacy=["grades:create"],
            assignments=[grant("Teacher", ["grades:create"], B1)],
        )
        decision = evaluate(teacher1, "grades:create", B1, NOW, catalog)
        assert decision.reason is DecisionReason.GRANTED
        assert {(s.kind, s.role_name) for s in decision.granted_by} == {("legacy", "Legacy"), ("rbac", "Teacher")}

    def test_wildcard_grants_every_catalog_permission_in_every_branch(self, catalog):
        admin = principal(legacy=["*"])
        for branch_id in (B1, B2, None):
            assert all(evaluate(admin, name, branch_id, NOW, catalog) for name in catalog.names)

    def test_branch_isolation(self, catalog):
        user = principal(assignments=[grant("Clerk", ["finance:read"], B1)])
        assert evaluate(user, "finance:read", B1, NOW, catalog)
        assert not evaluate(user, "finance:read", B2, NOW, catalog)

    def test_branch_isolation_yields_to_separate_b2_grant(self, catalog):
        user = principal(assignments=[
            grant("Clerk", ["finance:read"], B1),
            grant("Auditor", ["finance:read"], B2),
        ])
        assert evaluate(user, "finance:read", B2, NOW, catalog)

    def test_global_role_applies_in_every_branch(self, catalog):
        user = principal(assignments=[grant("Inspector", ["health:read"], B1, role_branch_id=None)])
        assert evaluate(user, "health:read", B1, NOW, catalog)
        assert evaluate(user, "health:read", B2, NOW, catalog)
        assert evaluate(user, "health:read", None, NOW, catalog)

    def test_without_branch_only_legacy_and_global_grants_count(self, catalog):
        user = principal(
            legacy=["courses:read"],
            assignments=[grant("Teacher", ["attendance:create"], B1)],
        )
        assert evaluate(user, "courses:read", None, NOW, catalog)
        assert not evaluate(user, "attendance:create", None, NOW, catalog)

    def test_expired_assignment_does_not_grant(self, catalog):
        user = principal(assignments=[
            grant("Temp", ["library:update"], B1, expires_at=NOW - timedelta(seconds=1)),
        ])
        assert not evaluate(user, "library:update", B1, NOW, catalog)

    def test_future_expiry_grants(self, catalog):
        user = principal(assignments=[grant("Temp", ["library:update"], B1, expires_at=NOW + timedelta(days=1))])
        assert evaluate(user, "library:update", B1, NOW, catalog)

    def test_naive_expiry_is_read_as_utc(self, catalog):
        naive = (NOW + timedelta(minutes=5)).replace(tzinfo=None)
        user = principal(assignments=[grant("Temp", ["library:update"], B1, expires_at=naive)])
        assert evaluate(user, "library:update", B1, NOW, catalog)

    def test_cross_branch_assignment_is_ignored_and_logged(self, catalog, caplog):
        user = principal(assignments=[grant("Teacher", ["grades:update"], B2, role_branch_id=B1)])
        assert not evaluate(user, "grades:update", B2, NOW, catalog)
        assert not evaluate(user, "grades:update", B1, NOW, catalog)
        assert "cross-branch" in caplog.text

    def test_unknown_user_denies(self, catalog):
        decision = evaluate(None, "students:read", B1, NOW, catalog)
        assert not decision
        assert decision.reason is DecisionReason.PRINCIPAL_NOT_FOUND

    def test_unknown_permission_denies_even_for_wildcard(self, catalog, caplog):
        decision = evaluate(principal(legacy=["*"]), "students:raed", B1, NOW, catalog)
        assert not decision
        assert decision.reason is DecisionReason.UNKNOWN_PERMISSION
        assert "students:raed" in caplog.text

    def test_inactive_user_denies(self, catalog):
        decision = evaluate(principal(legacy=["*"], is_active=False), "students:read", B1, NOW, catalog)
        assert decision.reason is DecisionReason.PRINCIPAL_INACTIVE

    def test_not_granted(self, catalog):
        decision = evaluate(principal(legacy=["students:read"]), "students:delete", B1, NOW, catalog)
        assert decision.reason is DecisionReason.NOT_GRANTED
        assert decision.granted_by == ()


class TestMonotonicity:
    """Adding an assignment never turns a grant into a denial."""

    CANDIDATES = [
        grant("Teacher", ["attendance:create", "grades:create"], B1),
        grant("Clerk", ["finance:read"], B2),
        grant("Inspector", ["health:read", "courses:read"], B1, role_branch_id=None),
        grant("Expired", ["courses:update"], B1, expires_at=NOW - timedelta(days=1)),
        grant("Broken", ["courses:delete"], B2, role_branch_id=B1),
    ]
    PERMISSIONS = [
        "courses:read", "courses:update", "courses:delete", "grades:create",
        "attendance:create", "finance:read", "health:read", "students:read",
    ]

    @pytest.mark.parametrize("legacy", [None, [], ["courses:read"], ["*"], {"grades": ["*"]}])
    def test_adding_assignments_never_revokes(self, catalog, legacy):
        for size in range(len(self.CANDIDATES)):
            for base in itertools.combinations(self.CANDIDATES, size):
                before = principal(legacy=legacy, assignments=base)
                for extra in self.CANDIDATES:
                    if extra in base:
                        continue
                    after = PrincipalGrants(
                        user_id=before.user_id,
                        is_active=True,
                        legacy_role_id=before.legacy_role_id,
                        legacy_role_name=before.legacy_role_name,
                        legacy_permissions=legacy,
                        assignments=base + (extra,),
                    )
                    for permission, branch_id in itertools.product(self.PERMISSIONS, (B1, B2, None)):
                        if evaluate(before, permission, branch_id, NOW, catalog):
                            assert evaluate(after, permission, branch_id, NOW, catalog), (permission, extra.role_name)


class TestPermissionResolver:

    @pytest.mark.asyncio
    async def test_teacher_scenario_from_database(self, db, build):
        b1 = await build.branch("B1")
        b2 = await build.branch("B2")
        legacy = await build.legacy_role("Teacher", ["courses:read", "grades:create"], branch=b1)
        role = await build.role("Teacher", ["attendance:create"], branch=b1)
        teacher1 = await build.user("teacher1", legacy_role=legacy, branch=b1)
        await build.assignment(teacher1, role, b1)

        resolver = PermissionResolver(db)
        assert await resolver.is_allowed(teacher1.id, "grades:create", b1.id)
        assert await resolver.is_allowed(teacher1.id, "attendance:create", b1.id)
        assert not await resolver.is_allowed(teacher1.id, "attendance:create", b2.id)

    @pytest.mark.asyncio
    async def test_unknown_user_is_denied_without_raising(self, db, build):
        resolver = PermissionResolver(db)
        decision = await resolver.resolve(uuid.uuid4(), "students:read", uuid.uuid4())
        assert decision.reason is DecisionReason.PRINCIPAL_NOT_FOUND
        assert await resolver.list_effective_permissions(uuid.uuid4()) == frozenset()

    @pytest.mark.asyncio
    async def test_effective_permissions_are_the_union(self, db, build):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Student", ["courses:read"])
        role = await build.role("Librarian", ["library:read", "library:update"], branch=b1)
        user = await build.user("lib", legacy_role=legacy, branch=b1)
        await build.assignment(user, role, b1)

        resolver = PermissionResolver(db)
        assert await resolver.list_effective_permissions(user.id, b1.id) == {
            "courses:read", "library:read", "library:update",
        }
        assert await resolver.list_effective_permissions(user.id) == {"courses:read"}

    @pytest.mark.asyncio
    async def test_grants_are_cached_per_resolver_only(self, db, build):
        b1 = await build.branch("B1")
        role = await build.role("Clerk", ["finance:read"], branch=b1)
        user = await build.user("clerk", branch=b1)

        resolver = PermissionResolver(db)
        assert not await resolver.is_allowed(user.id, "finance:read", b1.id)

        await build.assignment(user, role, b1)
        # Same request: the snapshot taken earlier is reused.
        assert not await resolver.is_allowed(user.id, "finance:read", b1.id)
        # Next request: fresh resolver, fresh data.
        assert await PermissionResolver(db).is_allowed(user.id, "finance:read", b1.id)

    @pytest.mark.asyncio
    async def test_superadmin_requires_active_wildcard_holder(self, db, build):
        root = await build.legacy_role("SuperAdmin", ["*"], is_system=True)
        admin = await build.user("root", legacy_role=root)
        retired = await build.user("retired", legacy_role=root, is_active=False)

        resolver = PermissionResolver(db)
        assert await resolver.is_superadmin(admin.id)
        assert not await resolver.is_superadmin(retired.id)
        assert not await resolver.is_superadmin(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_any_and_all_of_several_permissions(self, db, build):
        b1 = await build.branch("B1")
        legacy = await build.legacy_role("Teacher", ["courses:read"])
        role = await build.role("Teacher", ["grades:create"], branch=b1)
        user = await build.user("teacher1", legacy_role=legacy, branch=b1)
        await build.assignment(user, role, b1)
        resolver = PermissionResolver(db)

        any_of = await resolver.resolve_any(user.id, ["grades:delete", "grades:create"], b1.id)
        assert any_of.granted and any_of.permission == "grades:create"

        none_of = await resolver.resolve_any(user.id, ["grades:delete", "courses:delete"], b1.id)
        assert not none_of.granted and none_of.permission == "grades:delete"

        assert (await resolver.resolve_all(user.id, ["courses:read", "grades:create"], b1.id)).granted
        missing = await resolver.resolve_all(user.id, ["courses:read", "grades:create"])
        assert not missing.granted and missing.permission == "grades:create"

        with pytest.raises(ValueError):
            await resolver.resolve_any(user.id, [], b1.id)
        with pytest.raises(ValueError):
            await resolver.resolve_all(user.id, [], b1.id)

    @pytest.mark.asyncio
    async def test_own_permission_applies_to_own_records_only(self, db, build):
        legacy = await build.legacy_role("Student", ["grades:read_own"])
        student = await build.user("student1", legacy_role=legacy)
        resolver = PermissionResolver(db)

        assert (await resolver.resolve_owned(student.id, "grades:read_own", student.id)).granted

        other = await resolver.resolve_owned(student.id, "grades:read_own", uuid.uuid4())
        assert not other.granted
        assert other.reason is DecisionReason.NOT_OWNER

        lacking = await resolver.resolve_owned(student.id, "finance:read_own", student.id)
        assert lacking.reason is DecisionReason.NOT_GRANTED
