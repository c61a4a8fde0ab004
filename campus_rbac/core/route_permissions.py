"""
Route -> permission mapping consulted by the route guard.

Each group is mounted at ``{API_V1_STR}/{group}``; keys are
``"METHOD /pattern"`` with ``{param}`` placeholders. A value is either a
single permission name or a ``Requirement`` built with ``all_of``,
``any_of`` or ``owned``.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from campus_rbac.core.config import settings


@dataclass(frozen=True)
class Requirement:
    """
    What a route needs from the caller.

    ``match="all"`` needs every permission, ``match="any"`` at least one.
    ``own`` is enough by itself when the ``owner_param`` path parameter is
    the caller's user id.
    """
    permissions: Tuple[str, ...]
    match: str = "all"
    own: Optional[str] = None
    owner_param: str = "id"

    @property
    def names(self) -> Tuple[str, ...]:
        return self.permissions + ((self.own,) if self.own else ())


def all_of(*permissions: str) -> Requirement:
    return Requirement(tuple(permissions), "all")


def any_of(*permissions: str) -> Requirement:
    return Requirement(tuple(permissions), "any")


def owned(permission: str, own: str, owner_param: str = "id") -> Requirement:
    """``permission``, or ``own`` on records keyed by the caller's own user id."""
    return Requirement((permission,), "all", own, owner_param)


def as_requirement(value: Union[str, Requirement]) -> Requirement:
    return value if isinstance(value, Requirement) else all_of(value)


# Student and teacher records share the id of the person's user account,
# which is what the ``*:read_own`` routes compare against.
ROUTE_PERMISSIONS = {
    "students": {
        "GET /": "students:read",
        "GET /{id}": owned("students:read", "students:read_own"),
        "GET /{id}/enrollment": "students:read",
        "GET /{id}/grades": "students:read",
        "GET /{id}/attendance": "students:read",
        "POST /": "students:create",
        "PUT /{id}": "students:update",
        "DELETE /{id}": "students:delete",
    },
    "teachers": {
        "GET /": "teachers:read",
        "GET /{id}": "teachers:read",
        "GET /{id}/courses": "teachers:read",
        "GET /{id}/attendance": "teachers:read",
        "POST /": "teachers:create",
        "PUT /{id}": "teachers:update",
        "DELETE /{id}": "teachers:delete",
    },
    "users": {
        "GET /": "users:read",
        "GET /{id}": "users:read",
        "GET /{id}/roles": "users:read",
        "GET /{id}/effective-permissions": "users:read",
        "GET /{id}/permissions/check": "users:read",
        "POST /": "users:create",
        "POST /{id}/roles": "users:update",
        "PUT /{id}": "users:update",
        "PATCH /{id}": "users:update",
        "DELETE /{id}/roles/{role_id}": "users:update",
        "POST /{id}/roles/{role_id}/expire": "users:update",
        "DELETE /{id}": "users:delete",
    },
    "roles": {
        "GET /": "roles:read",
        "GET /{id}": "roles:read",
        "POST /": "roles:create",
        "PUT /{id}": "roles:update",
        "PUT /{id}/permissions": "roles:update",
        "DELETE /{id}": "roles:delete",
    },
    "permissions": {
        "GET /": "roles:read",
        "GET /{id}": "roles:read",
        "PUT /{id}": "roles:update",
    },
    "courses": {
        "GET /": "courses:read",
        "GET /{id}": "courses:read",
        "GET /{id}/students": "courses:read",
        "POST /": "courses:create",
        "PUT /{id}": "courses:update",
        "DELETE /{id}": "courses:delete",
    },
    "grades": {
        "GET /": "grades:read",
        "GET /student/{student_id}": owned("grades:read", "grades:read_own", "student_id"),
        "GET /course/{course_id}": "grades:read",
        "POST /": "grades:create",
        "PUT /{id}": "grades:update",
        "DELETE /{id}": "grades:delete",
    },
    "attendance": {
        "GET /": "attendance:read",
        "GET /student/{student_id}": owned("attendance:read", "attendance:read_own", "student_id"),
        "GET /course/{course_id}": "attendance:read",
        "POST /": "attendance:create",
        "PUT /{id}": "attendance:update",
        "DELETE /{id}": "attendance:delete",
    },
    "admissions": {
        "GET /": "admissions:read",
        "GET /{id}": "admissions:read",
        "POST /": "admissions:create",
        "PUT /{id}": "admissions:update",
        "DELETE /{id}": "admissions:delete",
    },
    "finance": {
        "GET /": "finance:read",
        "GET /student/{student_id}": owned("finance:read", "finance:read_own", "student_id"),
        "POST /": "finance:create",
        "PUT /{id}": "finance:update",
    },
    "payroll": {
        "GET /": "payroll:read",
        "GET /teacher/{teacher_id}": owned("payroll:read", "payroll:read_own", "teacher_id"),
        "POST /": "payroll:create",
        "PUT /{id}": "payroll:update",
    },
    "library": {
        "GET /books": "library:read",
        "GET /books/{id}": "library:read",
        "POST /books": "library:create",
        "PUT /books/{id}": "library:update",
        "DELETE /books/{id}": "library:delete",
        "POST /issue": "library:create",
        "POST /return": "library:update",
    },
    "announcements": {
        "GET /": "announcements:read",
        "GET /{id}": "announcements:read",
        "POST /": "announcements:create",
        "PUT /{id}": "announcements:create",
        "DELETE /{id}": "announcements:create",
    },
    "messaging": {
        "GET /": "messaging:read",
        "GET /{id}": "messaging:read",
        "POST /": "messaging:send",
        "PUT /{id}/read": "messaging:read",
    },
    "assignments": {
        "GET /": "assignments:read",
        "GET /{id}": "assignments:read",
        "GET /{id}/submissions": "assignments:read",
        "POST /": "assignments:create",
        "POST /{id}/submit": "assignments:submit",
        "PUT /{id}": "assignments:update",
    },
    "branches": {
        "GET /": "branches:read",
        "GET /{id}": "branches:read",
        "POST /": "branches:create",
        "PUT /{id}": "branches:update",
        "DELETE /{id}": "branches:delete",
    },
    "analytics": {
        "GET /dashboard": any_of("analytics:read", "reports:generate"),
        "GET /students": "analytics:read",
        "GET /teachers": "analytics:read",
        "GET /attendance": "analytics:read",
    },
    "reports": {
        "GET /": "reports:generate",
        "POST /generate": "reports:generate",
        "GET /export": all_of("reports:generate", "reports:export"),
    },
    "health": {
        "GET /": "health:read",
        "GET /student/{student_id}": "health:read",
        "POST /": "health:create",
        "PUT /{id}": "health:update",
    },
    "timetable": {
        "GET /": "courses:read",
        "POST /": "courses:create",
        "PUT /{id}": "courses:update",
    },
}


def public_routes(api_prefix: str = settings.API_V1_STR) -> list:
    """Reachable without authentication or permission checks (exact paths or prefixes)."""
    api_prefix = api_prefix.rstrip("/")
    return [
        f"{api_prefix}/auth/login",
        f"{api_prefix}/auth/register",
        f"{api_prefix}/auth/refresh",
        "/health",
        f"{api_prefix}/docs",
        f"{api_prefix}/redoc",
        f"{api_prefix}/openapi.json",
    ]


def superadmin_routes(api_prefix: str = settings.API_V1_STR) -> list:
    """Reachable only by a principal holding the wildcard legacy role."""
    api_prefix = api_prefix.rstrip("/")
    return [
        f"{api_prefix}/system/settings",
        f"{api_prefix}/system/audit",
        f"{api_prefix}/system/backup",
        f"{api_prefix}/system/rbac",
        f"{api_prefix}/branches",
    ]
