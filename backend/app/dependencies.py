"""FastAPI dependency injection providers."""

import uuid
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, PermissionDeniedError
from app.db.session import async_session_factory
from app.models.user import User
from app.services.auth_service import AuthService, decode_access_token

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is committed when the request succeeds and rolled back on
    any error, so multi-row writes such as a category move and its cascade
    are applied as a unit.

    Usage:
        @router.get("/products")
        async def list_products(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Extract and validate the bearer token, return the authenticated user.

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            is unknown or inactive
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    user_id_str = decode_access_token(credentials.credentials)
    if not user_id_str:
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = uuid.UUID(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid or expired token")

    user = await AuthService(db).get_user_by_id(user_id)

    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return user


def require_permission(permission: str) -> Callable:
    """Build a dependency that only lets users holding ``permission`` through.

    Usage:
        @router.post("", dependencies=[Depends(require_permission("manage_products"))])
    """

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_permission(permission):
            raise PermissionDeniedError(permission)
        return current_user

    return checker
