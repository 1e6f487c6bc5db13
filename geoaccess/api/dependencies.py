"""
FastAPI Dependencies

Common dependencies for dependency injection.
"""

from typing import Callable, Iterable, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from geoaccess.api.access.rbac import Permission, Role
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.core.exceptions import ForbiddenError


def get_engine(request: Request) -> AuthorizationEngine:
    """The engine attached to the running application."""
    return request.app.state.engine


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    engine: AuthorizationEngine = Depends(get_engine),
) -> User:
    """
    Resolve the caller through the identity provider.

    Token mechanics live in front of this service; it only receives the
    authenticated user id.

    Raises:
        HTTPException: If the header is missing or the user is unknown or inactive
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    user = engine.identity.get_user(x_user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_permission(permission: Permission) -> Callable:
    """Dependency factory: caller must hold ``permission``."""

    def dependency(
        user: User = Depends(get_current_user),
        engine: AuthorizationEngine = Depends(get_engine),
    ) -> User:
        if not engine.resolver.has_permission(user, permission):
            raise ForbiddenError(f"Permission required: {permission.value}", actor_id=user.id)
        return user

    return dependency


def require_roles(roles: Iterable[Role]) -> Callable:
    """Dependency factory: caller must hold one of ``roles``."""
    allowed = frozenset(roles)

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            names = ", ".join(sorted(r.value for r in allowed))
            raise ForbiddenError(f"Requires one of: {names}", actor_id=user.id)
        return user

    return dependency


def get_target_user(user_id: str, engine: AuthorizationEngine = Depends(get_engine)) -> User:
    """A user referenced in the path, looked up through the identity provider."""
    user = engine.identity.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User not found: {user_id}",
        )
    return user
