"""
FastAPI dependencies for authentication and role checks.
"""
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from catering_ops.core.security import decode_token, is_token_blacklisted
from catering_ops.db.session import get_db
from catering_ops.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the Bearer access token to an active user, or 401."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    token = credentials.credentials
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        raise unauthorized

    if is_token_blacklisted(token, db):
        raise unauthorized

    user_id = payload.get("sub")
    user = db.get(User, int(user_id)) if user_id and str(user_id).isdigit() else None
    if user is None or not user.is_active:
        raise unauthorized

    return user


def require_roles(*allowed: str) -> Callable[..., User]:
    """
    Build a dependency that admits only users holding one of ``allowed`` roles.

    Usage:
        current_user: User = Depends(require_roles(roles.ADMIN, roles.HEAD_CHEF))
    """
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient permissions",
            )
        return current_user

    return dependency
