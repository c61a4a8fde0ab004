import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.models import UserRole
from campus_rbac.api.v1.repositories import (
    AuditLogRepository,
    BranchRepository,
    RoleRepository,
    UserRepository,
    UserRolesRepository,
    get_audit_log_repository,
    get_branch_repository,
    get_role_repository,
    get_user_repository,
    get_user_roles_repository,
)
from campus_rbac.core.models import BranchMismatchError, RecordNotFoundError, utcnow

logger = logging.getLogger(__name__)


class AssignmentOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    RENEWED = "renewed"


@dataclass(frozen=True)
class AssignmentResult:
    outcome: AssignmentOutcome
    assignment: UserRole

    @property
    def created(self) -> bool:
        return self.outcome is AssignmentOutcome.CREATED


class AssignmentService:
    """
    Creates and revokes role assignments.

    Each call is one transaction: the assignment change and its audit entry
    are committed together.
    """

    def __init__(
            self,
            user_repository: UserRepository,
            role_repository: RoleRepository,
            branch_repository: BranchRepository,
            user_roles_repository: UserRolesRepository,
            audit_log_repository: AuditLogRepository,
    ):
        self.user_repository = user_repository
        self.role_repository = role_repository
        self.branch_repository = branch_repository
        self.user_roles_repository = user_roles_repository
        self.audit_log_repository = audit_log_repository

    async def assign_role(
            self,
            db: AsyncSession,
            user_id: UUID,
            role_id: UUID,
            branch_id: UUID,
            assigned_by: Optional[UUID] = None,
            expires_at: Optional[datetime] = None,
    ) -> AssignmentResult:
        """
        Assign ``role_id`` to ``user_id`` under ``branch_id``.

        An identical non-expired assignment is left untouched and reported as
        ``ALREADY_EXISTS``; an expired one is renewed in place. A concurrent
        insert of the same triple loses on the unique constraint and is
        reported as ``ALREADY_EXISTS`` too.

        Raises:
            RecordNotFoundError: user, role or branch does not exist.
            BranchMismatchError: the role is scoped to another branch.
        """
        if await self.user_repository.get_by_id(db, user_id) is None:
            raise RecordNotFoundError(f"User {user_id} not found")
        role = await self.role_repository.get_by_id(db, role_id)
        if role is None:
            raise RecordNotFoundError(f"Role {role_id} not found")
        if await self.branch_repository.get_by_id(db, branch_id) is None:
            raise RecordNotFoundError(f"Branch {branch_id} not found")

        if role.branch_id is not None and role.branch_id != branch_id:
            raise BranchMismatchError(role.id, role.branch_id, branch_id)

        now = utcnow()
        existing = await self.user_roles_repository.find(db, user_id, role_id, branch_id)
        if existing is not None:
            if existing.is_active_at(now):
                return AssignmentResult(AssignmentOutcome.ALREADY_EXISTS, existing)

            previous_expiry = existing.expires_at
            await self.user_roles_repository.update(
                db, existing, assigned_by=assigned_by, assigned_at=now, expires_at=expires_at
            )
            await self.audit_log_repository.record(
                db,
                action="role.renewed",
                entity_type="user_role",
                entity_id=existing.id,
                user_id=assigned_by,
                branch_id=branch_id,
                changes={
                    "user_id": str(user_id),
                    "role_id": str(role_id),
                    "previous_expires_at": previous_expiry.isoformat() if previous_expiry else None,
                    "expires_at": expires_at.isoformat() if expires_at else None,
                },
            )
            await db.commit()
            logger.info("Renewed role %s for user %s in branch %s", role_id, user_id, branch_id)
            return AssignmentResult(AssignmentOutcome.RENEWED, existing)

        try:
            assignment = await self.user_roles_repository.create(
                db,
                user_id=user_id,
                rbac_role_id=role_id,
                branch_id=branch_id,
                assigned_by=assigned_by,
                assigned_at=now,
                expires_at=expires_at,
            )
            await self.audit_log_repository.record(
                db,
                action="role.assigned",
                entity_type="user_role",
                entity_id=assignment.id,
                user_id=assigned_by,
                branch_id=branch_id,
                changes={
                    "user_id": str(user_id),
                    "role_id": str(role_id),
                    "expires_at": expires_at.isoformat() if expires_at else None,
                },
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await self.user_roles_repository.find(db, user_id, role_id, branch_id)
            if existing is None:
                raise
            logger.info(
                "Concurrent assignment of role %s to user %s in branch %s; keeping the existing row",
                role_id, user_id, branch_id,
            )
            return AssignmentResult(AssignmentOutcome.ALREADY_EXISTS, existing)

        logger.info("Assigned role %s to user %s in branch %s", role_id, user_id, branch_id)
        return AssignmentResult(AssignmentOutcome.CREATED, assignment)

    async def revoke_role(
            self,
            db: AsyncSession,
            user_id: UUID,
            role_id: UUID,
            branch_id: UUID,
            revoked_by: Optional[UUID] = None,
    ) -> int:
        """Deletes the matching assignment(s); returns how many went. Zero is not an error."""
        removed = await self.user_roles_repository.delete_matching(db, user_id, role_id, branch_id)
        if not removed:
            return 0

        await self.audit_log_repository.record(
            db,
            action="role.revoked",
            entity_type="user_role",
            user_id=revoked_by,
            branch_id=branch_id,
            changes={"user_id": str(user_id), "role_id": str(role_id), "removed": removed},
        )
        await db.commit()
        logger.info("Revoked role %s from user %s in branch %s", role_id, user_id, branch_id)
        return removed

    async def expire_role(
            self,
            db: AsyncSession,
            user_id: UUID,
            role_id: UUID,
            branch_id: UUID,
            expired_by: Optional[UUID] = None,
    ) -> UserRole:
        """
        Sets the assignment's expiry to now. An assignment that has already
        lapsed keeps its original expiry.

        Raises:
            RecordNotFoundError: no such assignment.
        """
        assignment = await self.user_roles_repository.find(db, user_id, role_id, branch_id)
        if assignment is None:
            raise RecordNotFoundError(
                f"User {user_id} has no assignment of role {role_id} in branch {branch_id}"
            )

        now = utcnow()
        if not assignment.is_active_at(now):
            return assignment

        previous_expiry = assignment.expires_at
        await self.user_roles_repository.update(db, assignment, expires_at=now)
        await self.audit_log_repository.record(
            db,
            action="role.expired",
            entity_type="user_role",
            entity_id=assignment.id,
            user_id=expired_by,
            branch_id=branch_id,
            changes={
                "user_id": str(user_id),
                "role_id": str(role_id),
                "previous_expires_at": previous_expiry.isoformat() if previous_expiry else None,
                "expires_at": now.isoformat(),
            },
        )
        await db.commit()
        logger.info("Expired role %s for user %s in branch %s", role_id, user_id, branch_id)
        return assignment

    async def list_assignments(
            self, db: AsyncSession, user_id: UUID, branch_id: Optional[UUID] = None
    ) -> Sequence[UserRole]:
        if await self.user_repository.get_by_id(db, user_id) is None:
            raise RecordNotFoundError(f"User {user_id} not found")
        return await self.user_roles_repository.list_for_user(db, user_id, branch_id)


@lru_cache()
def get_assignment_service() -> AssignmentService:
    return AssignmentService(
        user_repository=get_user_repository(),
        role_repository=get_role_repository(),
        branch_repository=get_branch_repository(),
        user_roles_repository=get_user_roles_repository(),
        audit_log_repository=get_audit_log_repository(),
    )
