from fastapi import Request, status
from fastapi.responses import JSONResponse
from jose import JWTError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from campus_rbac.core.config import settings
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.core.security import decode_token


def rate_limit_key(request: Request) -> str:
    """Bucket by the token subject when the caller is authenticated, else by client address."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            subject = decode_token(token).get("sub")
        except JWTError:
            subject = None
        if subject:
            return f"user:{subject}"
    return get_remote_address(request)


limiter = Limiter(key_func=rate_limit_key, enabled=settings.RATE_LIMIT_ENABLED)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    content = ApiResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        error=exc.__class__.__name__,
        detail=f"Rate limit exceeded: {exc.detail}. Please try again later.",
    )
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=content.model_dump())
