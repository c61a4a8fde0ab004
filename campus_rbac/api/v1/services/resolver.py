"""
Permission resolution.

A principal's access in a branch is the union of two grant sources:

1. the permissions of their legacy role, which apply in every branch
   (``*`` expands to the whole catalog);
2. the permissions of every non-expired RBAC role assignment that is in
   scope: the role is global, or the assignment was made under the
   requested branch.

Both sources are OR'ed, so adding an assignment can only widen access.
Branch-scoped assignments never apply when the request carries no branch.

``evaluate`` is the pure decision over already-loaded grants;
``PermissionResolver`` loads grants from the database, once per principal
per request.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, NamedTuple, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import User
from campus_rbac.api.v1.repositories import UserRepository, get_user_repository
from campus_rbac.api.v1.services.catalog import (
    PermissionCatalog,
    expand_legacy_permissions,
    get_permission_catalog,
    holds_wildcard,
)
from campus_rbac.core.models import as_utc, utcnow

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    GRANTED = "granted"
    PRINCIPAL_NOT_FOUND = "principal_not_found"
    PRINCIPAL_INACTIVE = "principal_inactive"
    UNKNOWN_PERMISSION = "unknown_permission"
    NOT_GRANTED = "not_granted"
    NOT_OWNER = "not_owner"


class GrantSource(NamedTuple):
    kind: str  # "legacy" | "rbac"
    role_id: Optional[UUID]
    role_name: str


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    permission: str
    branch_id: Optional[UUID]
    reason: DecisionReason
    granted_by: Tuple[GrantSource, ...] = ()

    def __bool__(self) -> bool:
        return self.granted


@dataclass(frozen=True)
class AssignmentGrant:
    assignment_id: UUID
    role_id: UUID
    role_name: str
    role_branch_id: Optional[UUID]
    branch_id: UUID
    expires_at: Optional[datetime]
    permissions: FrozenSet[str]

    @property
    def is_cross_branch(self) -> bool:
        return self.role_branch_id is not None and self.role_branch_id != self.branch_id

    def is_active_at(self, moment: datetime) -> bool:
        return self.expires_at is None or as_utc(self.expires_at) > moment

    def applies_to(self, branch_id: Optional[UUID]) -> bool:
        if self.role_branch_id is None:
            return True
        return branch_id is not None and self.branch_id == branch_id


@dataclass(frozen=True)
class PrincipalGrants:
    """Snapshot of everything resolution needs to know about one user."""
    user_id: UUID
    is_active: bool
    legacy_role_id: Optional[UUID] = None
    legacy_role_name: Optional[str] = None
    legacy_permissions: Any = None
    assignments: Tuple[AssignmentGrant, ...] = field(default_factory=tuple)

    @classmethod
    def from_user(cls, user: User) -> "PrincipalGrants":
        legacy = user.legacy_role
        return cls(
            user_id=user.id,
            is_active=user.is_active,
            legacy_role_id=legacy.id if legacy else None,
            legacy_role_name=legacy.name if legacy else None,
            legacy_permissions=legacy.permissions if legacy else None,
            assignments=tuple(
                AssignmentGrant(
                    assignment_id=a.id,
                    role_id=a.rbac_role_id,
                    role_name=a.rbac_role.role_name,
                    role_branch_id=a.rbac_role.branch_id,
                    branch_id=a.branch_id,
                    expires_at=a.expires_at,
                    permissions=a.rbac_role.permission_names,
                )
                for a in user.role_assignments
            ),
        )

    @property
    def is_superadmin(self) -> bool:
        return holds_wildcard(self.legacy_permissions)


def collect_grants(
        grants: PrincipalGrants,
        branch_id: Optional[UUID],
        now: datetime,
        catalog: PermissionCatalog,
) -> Dict[str, List[GrantSource]]:
    """Effective permissions in ``branch_id``, each with the roles granting it."""
    effective: Dict[str, List[GrantSource]] = {}

    if grants.legacy_role_name is not None:
        source = GrantSource("legacy", grants.legacy_role_id, grants.legacy_role_name)
        for name in expand_legacy_permissions(grants.legacy_permissions, catalog):
            effective.setdefault(name, []).append(source)

    for assignment in grants.assignments:
        if assignment.is_cross_branch:
            logger.warning(
                "Ignoring cross-branch assignment %s: role %s belongs to branch %s, assigned under %s",
                assignment.assignment_id, assignment.role_id, assignment.role_branch_id, assignment.branch_id,
            )
            continue
        if not assignment.is_active_at(now) or not assignment.applies_to(branch_id):
            continue
        source = GrantSource("rbac", assignment.role_id, assignment.role_name)
        for name in assignment.permissions:
            effective.setdefault(name, []).append(source)

    return effective


def evaluate(
        grants: Optional[PrincipalGrants],
        permission: str,
        branch_id: Optional[UUID],
        now: datetime,
        catalog: PermissionCatalog,
) -> AccessDecision:
    """Pure decision for one permission; never raises for a denial."""
    if permission not in catalog:
        logger.warning("Permission %r is not in the catalog; denying", permission)
        return AccessDecision(False, permission, branch_id, DecisionReason.UNKNOWN_PERMISSION)

    if grants is None:
        return AccessDecision(False, permission, branch_id, DecisionReason.PRINCIPAL_NOT_FOUND)

    if not grants.is_active:
        return AccessDecision(False, permission, branch_id, DecisionReason.PRINCIPAL_INACTIVE)

    sources = collect_grants(grants, branch_id, now, catalog).get(permission)
    if not sources:
        return AccessDecision(False, permission, branch_id, DecisionReason.NOT_GRANTED)
    return AccessDecision(True, permission, branch_id, DecisionReason.GRANTED, tuple(sources))


class PermissionResolver:
    """
    Resolves decisions against the database.

    Create one per request: loaded grants are cached on the instance only,
    so a role change is visible to the next request.
    """

    def __init__(
            self,
            db: AsyncSession,
            user_repository: Optional[UserRepository] = None,
            catalog: Optional[PermissionCatalog] = None,
            clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.user_repository = user_repository or get_user_repository()
        self.catalog = catalog or get_permission_catalog()
        self.clock = clock
        self._grants: Dict[UUID, Optional[PrincipalGrants]] = {}

    async def load_grants(self, user_id: UUID) -> Optional[PrincipalGrants]:
        if user_id not in self._grants:
            user = await self.user_repository.get_with_grants(self.db, user_id)
            self._grants[user_id] = PrincipalGrants.from_user(user) if user else None
        return self._grants[user_id]

    def invalidate(self, user_id: Optional[UUID] = None) -> None:
        if user_id is None:
            self._grants.clear()
        else:
            self._grants.pop(user_id, None)

    async def resolve(self, user_id: UUID, permission: str, branch_id: Optional[UUID] = None) -> AccessDecision:
        if permission not in self.catalog:
            return evaluate(None, permission, branch_id, self.clock(), self.catalog)
        grants = await self.load_grants(user_id)
        decision = evaluate(grants, permission, branch_id, self.clock(), self.catalog)
        logger.debug(
            "Resolved %s for user %s in branch %s: %s (%s)",
            permission, user_id, branch_id, decision.granted, decision.reason.value,
        )
        return decision

    async def resolve_any(
            self, user_id: UUID, permissions: Sequence[str], branch_id: Optional[UUID] = None
    ) -> AccessDecision:
        """The first granted decision among ``permissions``, else the first denial."""
        if not permissions:
            raise ValueError("At least one permission is required")
        denied = None
        for permission in permissions:
            decision = await self.resolve(user_id, permission, branch_id)
            if decision.granted:
                return decision
            denied = denied or decision
        return denied

    async def resolve_all(
            self, user_id: UUID, permissions: Sequence[str], branch_id: Optional[UUID] = None
    ) -> AccessDecision:
        """Granted only when every permission is; otherwise the first denial."""
        if not permissions:
            raise ValueError("At least one permission is required")
        decisions = [await self.resolve(user_id, permission, branch_id) for permission in permissions]
        for decision in decisions:
            if not decision.granted:
                return decision
        return decisions[0]

    async def resolve_owned(
            self, user_id: UUID, permission: str, owner_id: Optional[UUID], branch_id: Optional[UUID] = None
    ) -> AccessDecision:
        """
        Decision for a self-service permission such as ``grades:read_own``:
        it only covers records whose owner is the principal.
        """
        decision = await self.resolve(user_id, permission, branch_id)
        if decision.granted and owner_id != user_id:
            return AccessDecision(False, permission, branch_id, DecisionReason.NOT_OWNER)
        return decision

    async def is_allowed(self, user_id: UUID, permission: str, branch_id: Optional[UUID] = None) -> bool:
        return bool(await self.resolve(user_id, permission, branch_id))

    async def list_effective_permissions(self, user_id: UUID, branch_id: Optional[UUID] = None) -> FrozenSet[str]:
        """Same union ``resolve`` decides over; empty for unknown or inactive users."""
        grants = await self.load_grants(user_id)
        if grants is None or not grants.is_active:
            return frozenset()
        return frozenset(collect_grants(grants, branch_id, self.clock(), self.catalog))

    async def is_superadmin(self, user_id: UUID) -> bool:
        grants = await self.load_grants(user_id)
        return grants is not None and grants.is_active and grants.is_superadmin
