import logging

from fastapi import Depends, FastAPI

from campus_rbac.api.v1.routers import audit, permissions, roles, system, users
from campus_rbac.core.config import settings
from campus_rbac.core.guard import get_route_guard, guard_route

logger = logging.getLogger(__name__)


def bootstrap_app(app: FastAPI) -> None:
    """
    Mounts the API routers behind the route guard.

    The guard is built here so a route table referencing an unknown
    permission stops the application at startup.
    """
    get_route_guard()

    prefix = settings.API_V1_STR
    guarded = [Depends(guard_route)]

    app.include_router(roles.router, prefix=prefix, tags=["Roles"], dependencies=guarded)
    app.include_router(permissions.router, prefix=prefix, tags=["Permissions"], dependencies=guarded)
    app.include_router(users.router, prefix=prefix, tags=["Users"], dependencies=guarded)
    app.include_router(system.router, prefix=prefix, tags=["System"], dependencies=guarded)
    app.include_router(audit.router, prefix=prefix, tags=["Audit"], dependencies=guarded)
    logger.info("Routers mounted under %s", prefix)
