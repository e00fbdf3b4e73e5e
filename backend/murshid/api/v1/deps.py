# murshid/api/v1/deps.py
import logging

from fastapi import Depends, Request

from murshid.core.errors import Unauthenticated
from murshid.core.guard import extract_token
from murshid.models.user import User
from murshid.services import session_service

logger = logging.getLogger(__name__)


async def get_current_user(request: Request) -> User:
    """
    FastAPI dependency returning the user resolved by the route guard.

    The guard (``RouteGuardMiddleware``) has already validated the token and
    re-read the user from the database for this request.

    Raises:
        Unauthenticated (401): If the route was reached without a resolved user

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": str(user.id)}
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise Unauthenticated()
    return user


async def get_optional_user(request: Request) -> User | None:
    """
    Resolve a session on a public route when one is presented.

    A missing, expired or revoked token means anonymous; routes using this
    decide for themselves whether an anonymous caller may proceed.
    """
    token = extract_token(request)
    if not token:
        return None
    try:
        return await session_service.protect(token)
    except Unauthenticated as exc:
        logger.info("[auth] ignoring stale session on %s: %s", request.url.path, exc.code)
        return None


def restrict_to(*roles: str):
    """
    Dependency factory: allow only users whose current role is in ``roles``.

    Usage:
        @router.get("/users", dependencies=[Depends(restrict_to("admin"))])
    """
    async def _check(current: User = Depends(get_current_user)) -> User:
        return session_service.restrict_to(current, *roles)

    return _check


require_admin = restrict_to("admin")
