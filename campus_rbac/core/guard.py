import logging
import re
from functools import lru_cache
from typing import Annotated, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple, Union
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from campus_rbac.api.v1.services.catalog import PermissionCatalog, get_permission_catalog
from campus_rbac.api.v1.services.resolver import AccessDecision, PermissionResolver
from campus_rbac.core.config import settings
from campus_rbac.core.models import ConfigurationError
from campus_rbac.core.route_permissions import (
    ROUTE_PERMISSIONS,
    Requirement,
    as_requirement,
    public_routes as default_public_routes,
    superadmin_routes as default_superadmin_routes,
)
from campus_rbac.core.security import Principal, bearer_scheme, get_current_principal
from campus_rbac.db.session import get_session

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{([^/{}]+)\}")


def compile_route(prefix: str, pattern: str) -> Pattern:
    """``/api/v1/students`` + ``/{id}/grades`` -> regex matching ``/api/v1/students/<id>/grades``."""
    parts = PLACEHOLDER.split(pattern.rstrip("/"))
    # split() alternates literal text and placeholder names
    body = "".join(
        re.escape(part) if index % 2 == 0 else f"(?P<{part}>[^/]+)"
        for index, part in enumerate(parts)
    )
    return re.compile(f"^{re.escape(prefix)}{body}/?$")


def _matches_prefix(path: str, routes: Iterable[str]) -> bool:
    return any(path == route or path.startswith(route.rstrip("/") + "/") for route in routes)


def _as_uuid(value: Optional[str]) -> Optional[UUID]:
    try:
        return UUID(value) if value else None
    except ValueError:
        return None


class RouteGuard:
    """
    Maps an HTTP request to the permissions it requires and asks the
    resolver about them.

    Order of checks: public routes pass untouched; superadmin routes need the
    wildcard legacy role; every other route under the API prefix needs its
    mapped requirement, and unmapped routes are refused.
    """

    def __init__(
            self,
            route_permissions: Mapping[str, Mapping[str, Union[str, Requirement]]] = ROUTE_PERMISSIONS,
            public_routes: Optional[Iterable[str]] = None,
            superadmin_routes: Optional[Iterable[str]] = None,
            catalog: Optional[PermissionCatalog] = None,
            api_prefix: str = settings.API_V1_STR,
    ):
        self.catalog = catalog or get_permission_catalog()
        self.api_prefix = api_prefix.rstrip("/")
        self.public_routes = list(public_routes if public_routes is not None else default_public_routes(api_prefix))
        self.superadmin_routes = list(
            superadmin_routes if superadmin_routes is not None else default_superadmin_routes(api_prefix)
        )

        requirements = {
            (group, route): as_requirement(value)
            for group, routes in route_permissions.items()
            for route, value in routes.items()
        }

        unknown = sorted(
            f"{group}: {route} -> {permission}"
            for (group, route), requirement in requirements.items()
            for permission in requirement.names
            if permission not in self.catalog
        )
        if unknown:
            raise ConfigurationError("Route permissions reference unknown permission(s): " + "; ".join(unknown))

        self._routes: List[Tuple[str, Pattern, Requirement]] = []
        for (group, route), requirement in requirements.items():
            method, _, pattern = route.partition(" ")
            regex = compile_route(f"{self.api_prefix}/{group}", pattern)
            if requirement.own and requirement.owner_param not in regex.groupindex:
                raise ConfigurationError(
                    f"{group}: {route} checks ownership on missing parameter {{{requirement.owner_param}}}"
                )
            self._routes.append((method.upper(), regex, requirement))
        # Literal segments win over placeholders.
        self._routes.sort(key=lambda entry: entry[1].groups)

    def is_public(self, path: str) -> bool:
        return _matches_prefix(path, self.public_routes)

    def is_superadmin_route(self, path: str) -> bool:
        return _matches_prefix(path, self.superadmin_routes)

    def match(self, method: str, path: str) -> Optional[Tuple[Requirement, Dict[str, str]]]:
        """The requirement of the first matching route and its path parameters."""
        method = method.upper()
        for route_method, regex, requirement in self._routes:
            if route_method != method:
                continue
            found = regex.match(path)
            if found:
                return requirement, found.groupdict()
        return None

    def required_permission(self, method: str, path: str) -> Optional[Requirement]:
        matched = self.match(method, path)
        return matched[0] if matched else None

    async def check(
            self,
            resolver: PermissionResolver,
            principal: Principal,
            requirement: Requirement,
            params: Mapping[str, str],
            branch_id: Optional[UUID],
    ) -> AccessDecision:
        """Evaluates ``requirement`` for ``principal`` in ``branch_id``."""
        if requirement.match == "any":
            decision = await resolver.resolve_any(principal.user_id, requirement.permissions, branch_id)
        else:
            decision = await resolver.resolve_all(principal.user_id, requirement.permissions, branch_id)

        if not decision.granted and requirement.own:
            owner_id = _as_uuid(params.get(requirement.owner_param))
            own = await resolver.resolve_owned(principal.user_id, requirement.own, owner_id, branch_id)
            if own.granted:
                return own
        return decision

    async def authorize(self, resolver: PermissionResolver, principal: Principal, method: str, path: str) -> bool:
        if self.is_public(path):
            return True

        if self.is_superadmin_route(path):
            return await resolver.is_superadmin(principal.user_id)

        matched = self.match(method, path)
        if matched is None:
            logger.info("No permission mapped for %s %s; denying", method, path)
            return False

        requirement, params = matched
        decision = await self.check(resolver, principal, requirement, params, principal.branch_id)
        return decision.granted


@lru_cache()
def get_route_guard() -> RouteGuard:
    return RouteGuard()


def get_permission_resolver(db: Annotated[AsyncSession, Depends(get_session)]) -> PermissionResolver:
    """One resolver per request, shared by the guard and the endpoint."""
    return PermissionResolver(db)


def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


async def guard_route(
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
        guard: Annotated[RouteGuard, Depends(get_route_guard)],
) -> Optional[Principal]:
    """
    Router-level dependency enforcing the route table. Returns the principal
    (``None`` on public routes) so endpoints can depend on it as well.
    """
    method, path = request.method, request.url.path
    if guard.is_public(path):
        return None

    principal = get_current_principal(request, credentials)

    try:
        allowed = await guard.authorize(resolver, principal, method, path)
    except Exception:
        logger.exception("Route guard failed for %s %s; denying", method, path)
        allowed = False

    if not allowed:
        raise _forbidden()
    return principal


class BranchScope:
    """
    Authorization of the branch a write lands in.

    The route guard checks the caller in the branch of the request context;
    endpoints that write into a branch named by the payload (or owned by the
    target role) check the same route requirement there as well. Targets
    without a branch affect every branch and are reserved for superadmins.
    """

    def __init__(self, request: Request, principal: Principal, resolver: PermissionResolver, guard: RouteGuard):
        self.request = request
        self.principal = principal
        self.resolver = resolver
        self.guard = guard

    async def require_superadmin(self) -> None:
        if not await self.resolver.is_superadmin(self.principal.user_id):
            logger.warning(
                "User %s needs superadmin for %s %s",
                self.principal.user_id, self.request.method, self.request.url.path,
            )
            raise _forbidden()

    async def require_branch(self, branch_id: Optional[UUID]) -> None:
        if branch_id is None:
            await self.require_superadmin()
            return
        if branch_id == self.principal.branch_id:
            return

        matched = self.guard.match(self.request.method, self.request.url.path)
        granted = False
        if matched is not None:
            requirement, params = matched
            granted = (await self.guard.check(self.resolver, self.principal, requirement, params, branch_id)).granted
        if not granted:
            logger.warning(
                "User %s denied %s %s in target branch %s",
                self.principal.user_id, self.request.method, self.request.url.path, branch_id,
            )
            raise _forbidden()

    async def require_role_scope(self, branch_id: Optional[UUID], is_system: bool = False) -> None:
        """System and global roles are superadmin territory; branch roles need the route permission there."""
        if is_system or branch_id is None:
            await self.require_superadmin()
        else:
            await self.require_branch(branch_id)


async def get_branch_scope(
        request: Request,
        principal: Annotated[Optional[Principal], Depends(guard_route)],
        resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
        guard: Annotated[RouteGuard, Depends(get_route_guard)],
) -> BranchScope:
    if principal is None:
        raise _forbidden()
    return BranchScope(request, principal, resolver, guard)
