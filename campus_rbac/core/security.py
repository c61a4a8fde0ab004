from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from campus_rbac.core.config import settings

BRANCH_HEADER = "X-Branch-Id"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller and the branch the request operates against."""
    user_id: UUID
    branch_id: Optional[UUID] = None


def decode_token(token: str) -> dict:
    """Verifies signature and expiry of an access token; raises ``JWTError`` otherwise."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def _as_uuid(value) -> Optional[UUID]:
    if value is None or value == "":
        return None
    return UUID(str(value))


def get_current_principal(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Principal:
    """
    Reads the principal from the bearer token.

    The branch comes from the ``X-Branch-Id`` header, falling back to the
    token's ``branch_id`` claim; requests with neither are branch-agnostic.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise credentials_exception

    try:
        payload = decode_token(credentials.credentials)
        user_id = _as_uuid(payload.get("sub"))
        token_branch = payload.get("branch_id")
    except (JWTError, ValueError):
        raise credentials_exception
    if user_id is None:
        raise credentials_exception

    try:
        branch_id = _as_uuid(request.headers.get(BRANCH_HEADER) or token_branch)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {BRANCH_HEADER}")

    return Principal(user_id=user_id, branch_id=branch_id)
