"""
Staff authentication: login, token rotation, logout and admin-created accounts.

There is no self-service sign-up; kitchen, dispatch and branch staff accounts
are created by an admin with their role, station and branches.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from catering_ops.core import roles
from catering_ops.core.deps import bearer_scheme, get_current_user, require_roles
from catering_ops.core.security import (
    REFRESH,
    decode_token,
    hash_password,
    is_token_blacklisted,
    issue_tokens,
    revoke_token,
    verify_password,
)
from catering_ops.db.session import get_db
from catering_ops.models.user import User
from catering_ops.schemas.auth import Token, TokenRefresh, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@router.post("/login", response_model=Token)
def login(user_data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == user_data.email).first()
    if user is None or not verify_password(user_data.password, user.hashed_password):
        raise _unauthorized("Invalid email or password")
    if not user.is_active:
        raise _unauthorized("Account is disabled")

    logger.info(f"Login: user {user.id} ({user.role})")
    return issue_tokens(user)


@router.post("/refresh", response_model=Token)
def refresh(token_data: TokenRefresh, db: Session = Depends(get_db)):
    """
    Exchange a refresh token for a new pair.

    Each refresh token works once: it is blacklisted on use, so replaying it
    means it leaked and the holder has to log in again.
    """
    old_token = token_data.refresh_token
    payload = decode_token(old_token)
    if payload is None:
        raise _unauthorized("Invalid or expired refresh token")
    if payload.get("type") != REFRESH:
        raise _unauthorized("Invalid token type")
    if is_token_blacklisted(old_token, db):
        logger.warning(f"Replayed refresh token for user {payload.get('sub')}")
        raise _unauthorized("Refresh token has already been used. Please log in again.")

    user_id = payload.get("sub")
    user = db.get(User, int(user_id)) if user_id and str(user_id).isdigit() else None
    if user is None or not user.is_active:
        raise _unauthorized("User not found")

    revoke_token(old_token, payload, db)
    return issue_tokens(user)


@router.post("/logout")
def logout(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Revoke the access token used for this request; the client drops its refresh token."""
    revoke_token(credentials.credentials, decode_token(credentials.credentials) or {}, db)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_roles(roles.ADMIN)),
    db: Session = Depends(get_db),
) -> User:
    if db.query(User).filter(User.email == user_data.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        role=user_data.role,
        station_assignment=user_data.station_assignment,
        branch_slugs=user_data.branch_slugs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {current_user.id} created {user.role} account {user.id}")
    return user
