"""A branch administrator can only change roles and assignments inside the branches they administer."""
import uuid

import pytest_asyncio
from sqlalchemy import func, select

from campus_rbac.api.v1.models import Permission, UserRole
from campus_rbac.api.v1.services import PermissionResolver


@pytest_asyncio.fixture
async def campus(build, make_token, session_factory):
    b1 = await build.branch("B1")
    b2 = await build.branch("B2")
    root = await build.legacy_role("SuperAdmin", ["*"], is_system=True)
    branch_admin = await build.role(
        "BranchAdmin",
        ["users:read", "users:update", "roles:read", "roles:create", "roles:update", "roles:delete"],
        branch=b1,
    )
    b1_clerk = await build.role("Clerk", ["finance:read"], branch=b1)
    b2_clerk = await build.role("Clerk", ["finance:read"], branch=b2)
    b2_super = await build.role("SuperAdmin", ["students:delete", "users:update"], branch=b2, is_system=True)
    inspector = await build.role("Inspector", ["health:read"], is_system=True)

    mallory = await build.user("mallory", branch=b1)
    colleague = await build.user("colleague", branch=b2)
    admin = await build.user("root", legacy_role=root)
    await build.assignment(mallory, branch_admin, b1)
    await build.assignment(colleague, b2_clerk, b2)

    async with session_factory() as session:
        finance_read = await session.scalar(select(Permission.id).where(Permission.permission_name == "finance:read"))

    return {
        "b1": str(b1.id),
        "b2": str(b2.id),
        "mallory": str(mallory.id),
        "colleague": str(colleague.id),
        "b1_clerk": str(b1_clerk.id),
        "b2_clerk": str(b2_clerk.id),
        "b2_super": str(b2_super.id),
        "inspector": str(inspector.id),
        "finance_read": str(finance_read),
        "mallory_auth": {"Authorization": f"Bearer {make_token(mallory.id)}", "X-Branch-Id": str(b1.id)},
        "admin_auth": {"Authorization": f"Bearer {make_token(admin.id)}"},
    }


async def assignment_count(session_factory):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(UserRole))


class TestAssignments:

    async def test_cannot_grant_self_a_role_in_another_branch(self, client, campus, session_factory):
        before = await assignment_count(session_factory)

        response = await client.post(
            f"/api/v1/users/{campus['mallory']}/roles",
            headers=campus["mallory_auth"],
            json={"role_id": campus["b2_super"], "branch_id": campus["b2"]},
        )

        assert response.status_code == 403
        assert await assignment_count(session_factory) == before
        async with session_factory() as session:
            assert not await PermissionResolver(session).is_allowed(
                uuid.UUID(campus["mallory"]), "students:delete", uuid.UUID(campus["b2"])
            )

    async def test_pointing_the_branch_header_at_the_target_does_not_help(self, client, campus):
        headers = {**campus["mallory_auth"], "X-Branch-Id": campus["b2"]}
        response = await client.post(
            f"/api/v1/users/{campus['mallory']}/roles",
            headers=headers,
            json={"role_id": campus["b2_super"], "branch_id": campus["b2"]},
        )
        assert response.status_code == 403

    async def test_assigning_inside_own_branch_still_works(self, client, campus):
        response = await client.post(
            f"/api/v1/users/{campus['colleague']}/roles",
            headers=campus["mallory_auth"],
            json={"role_id": campus["b1_clerk"], "branch_id": campus["b1"]},
        )
        assert response.status_code == 201

    async def test_global_roles_are_handed_out_by_superadmins_only(self, client, campus):
        body = {"role_id": campus["inspector"], "branch_id": campus["b1"]}
        url = f"/api/v1/users/{campus['colleague']}/roles"

        denied = await client.post(url, headers=campus["mallory_auth"], json=body)
        allowed = await client.post(url, headers=campus["admin_auth"], json=body)

        assert denied.status_code == 403
        assert allowed.status_code == 201

    async def test_superadmin_can_assign_in_any_branch(self, client, campus):
        response = await client.post(
            f"/api/v1/users/{campus['colleague']}/roles",
            headers=campus["admin_auth"],
            json={"role_id": campus["b2_super"], "branch_id": campus["b2"]},
        )
        assert response.status_code == 201

    async def test_cannot_revoke_or_expire_in_another_branch(self, client, campus, session_factory):
        url = f"/api/v1/users/{campus['colleague']}/roles/{campus['b2_clerk']}"
        params = {"branch_id": campus["b2"]}

        revoked = await client.delete(url, headers=campus["mallory_auth"], params=params)
        expired = await client.post(f"{url}/expire", headers=campus["mallory_auth"], params=params)

        assert revoked.status_code == 403
        assert expired.status_code == 403
        async with session_factory() as session:
            assert await PermissionResolver(session).is_allowed(
                uuid.UUID(campus["colleague"]), "finance:read", uuid.UUID(campus["b2"])
            )


class TestRoles:

    async def test_cannot_edit_roles_of_another_branch(self, client, campus):
        auth = campus["mallory_auth"]
        role_url = f"/api/v1/roles/{campus['b2_clerk']}"

        renamed = await client.put(role_url, headers=auth, json={"role_name": "Bursar"})
        widened = await client.put(f"{role_url}/permissions", headers=auth, json={"permissions": ["payroll:read"]})
        deleted = await client.delete(role_url, headers=auth)

        assert [renamed.status_code, widened.status_code, deleted.status_code] == [403, 403, 403]
        role = (await client.get(role_url, headers=campus["admin_auth"])).json()["data"]
        assert role["role_name"] == "Clerk"
        assert [p["permission_name"] for p in role["permissions"]] == ["finance:read"]

    async def test_cannot_widen_system_or_global_roles(self, client, campus):
        auth = campus["mallory_auth"]
        for role_id in (campus["b2_super"], campus["inspector"]):
            response = await client.put(
                f"/api/v1/roles/{role_id}/permissions", headers=auth, json={"permissions": ["roles:delete"]}
            )
            assert response.status_code == 403

    async def test_editing_own_branch_role_still_works(self, client, campus):
        response = await client.put(
            f"/api/v1/roles/{campus['b1_clerk']}/permissions",
            headers=campus["mallory_auth"],
            json={"permissions": ["finance:read", "finance:update"]},
        )
        assert response.status_code == 200

    async def test_cannot_create_roles_elsewhere_or_globally(self, client, campus):
        auth = campus["mallory_auth"]
        in_b2 = await client.post("/api/v1/roles", headers=auth, json={
            "role_name": "Shadow", "branch_id": campus["b2"], "permissions": ["students:delete"],
        })
        global_role = await client.post("/api/v1/roles", headers=auth, json={
            "role_name": "Shadow", "is_system": True, "permissions": ["students:delete"],
        })
        in_b1 = await client.post("/api/v1/roles", headers=auth, json={
            "role_name": "Shadow", "branch_id": campus["b1"], "permissions": ["students:read"],
        })

        assert in_b2.status_code == 403
        assert global_role.status_code == 403
        assert in_b1.status_code == 201

    async def test_permission_descriptions_are_superadmin_only(self, client, campus):
        url = f"/api/v1/permissions/{campus['finance_read']}"
        body = {"description": "Read every ledger"}

        assert (await client.put(url, headers=campus["mallory_auth"], json=body)).status_code == 403
        assert (await client.put(url, headers=campus["admin_auth"], json=body)).status_code == 200
