"""
Session-based RBAC dependencies.
A bearer token maps to a server-side session row; roles come from the user record.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from overtime_api.core.exceptions import AuthenticationError
from overtime_api.dependencies import get_auth_service
from overtime_api.models.user import UserRole
from overtime_api.schemas.auth import UserRecord
from overtime_api.services.auth import AuthService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service)
) -> UserRecord:
    try:
        return auth.authenticate(token)
    except AuthenticationError as e:
        logger.info(f"Authentication failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.put("/{key}")
        def update(user: UserRecord = Depends(require_role([UserRole.OWNER, UserRole.HR]))):
            ...
    """
    def role_checker(current_user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_settings_admin():
    """Owner or HR."""
    return require_role([UserRole.OWNER, UserRole.HR])


def require_admin_viewer():
    """Owner, HR or Project Coordinator."""
    return require_role([UserRole.OWNER, UserRole.HR, UserRole.PROJECT_COORDINATOR])
