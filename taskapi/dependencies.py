"""Request-scoped wiring: services, the authentication guard and role gates."""

from typing import Callable

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from taskapi.cache.layer import CacheLayer
from taskapi.core.config import SettingsDep
from taskapi.core.errors import AuthenticationError, AuthorizationError
from taskapi.database import get_db
from taskapi.schemas import UserRead
from taskapi.services.auth_service import AuthService
from taskapi.services.task_service import TaskService


def get_cache(request: Request) -> CacheLayer:
    return request.app.state.cache


def get_auth_service(settings: SettingsDep, db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db, settings)


def get_task_service(
    settings: SettingsDep,
    db: AsyncSession = Depends(get_db),
    cache: CacheLayer = Depends(get_cache),
) -> TaskService:
    return TaskService(db, cache, settings)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request, auth: AuthService = Depends(get_auth_service)
) -> UserRead:
    """Resolve the bearer token to the public view of its user; no password hash."""
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError("Not authorized to access this route")

    user = UserRead.model_validate(await auth.authenticate(token))
    request.state.user = user
    return user


CurrentUser = Annotated[UserRead, Depends(get_current_user)]


def require_roles(*roles: str) -> Callable:
    """Dependency that lets only users whose role is in ``roles`` through."""

    async def check_role(user: CurrentUser) -> UserRead:
        if user.role not in roles:
            raise AuthorizationError(
                f"User role {user.role} is not authorized to access this route"
            )
        return user

    return check_role


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
