"""
Password hashing, staff JWTs and token revocation.

Access tokens carry the staff member's role, station and branches so kitchen
tablets and branch dashboards can render without an extra /me round trip.
Authorization decisions are still made against the ``users`` row, never the
claims. Refresh tokens carry only the user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Any
import hashlib
import uuid

import bcrypt
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from catering_ops.core.config import get_settings

settings = get_settings()

ACCESS = "access"
REFRESH = "refresh"


def hash_token(token: str) -> str:
    """sha256 of a token; only hashes are stored in the blacklist."""
    return hashlib.sha256(token.encode()).hexdigest()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def _encode(subject: Any, token_type: str, lifetime: timedelta, claims: dict | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        **(claims or {}),
        "sub": str(subject),
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        # Two tokens minted in the same second must still hash differently
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: Any, expires_delta: timedelta | None = None, claims: dict | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(subject, ACCESS, lifetime, claims)


def create_refresh_token(subject: Any, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(subject, REFRESH, lifetime)


def staff_claims(user) -> dict:
    """Display claims for a staff member's access token."""
    return {
        "role": user.role,
        "station": user.station_assignment,
        "branches": list(user.branch_slugs or []),
    }


def issue_tokens(user) -> dict:
    """A fresh access/refresh pair for ``user``."""
    return {
        "access_token": create_access_token(user.id, claims=staff_claims(user)),
        "refresh_token": create_refresh_token(user.id),
    }


def decode_token(token: str) -> dict | None:
    """Payload of a valid, unexpired token, else None."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def token_expiry(payload: dict) -> datetime | None:
    exp = payload.get("exp")
    return datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None


def is_token_blacklisted(token: str, db: Session) -> bool:
    from catering_ops.models.token_blacklist import TokenBlacklist

    return db.get(TokenBlacklist, hash_token(token)) is not None


def blacklist_token(
    token: str,
    expires_at: datetime,
    db: Session,
    token_type: str = ACCESS,
    user_id: int | None = None,
) -> None:
    """
    Record a revoked token until ``expires_at``. Revoking twice is a no-op.

    ``expires_at`` is kept so ``cleanup_expired_tokens`` can drop rows once the
    token would have been rejected anyway.
    """
    from catering_ops.models.token_blacklist import TokenBlacklist

    token_hash = hash_token(token)
    if db.get(TokenBlacklist, token_hash) is None:
        db.add(TokenBlacklist(token_hash=token_hash, token_type=token_type, user_id=user_id, expires_at=expires_at))
        db.commit()


def revoke_token(token: str, payload: dict, db: Session) -> bool:
    """Blacklist a decoded token for the rest of its lifetime; False if it has no expiry."""
    expires_at = token_expiry(payload)
    if expires_at is None:
        return False
    user_id = payload.get("sub")
    blacklist_token(
        token,
        expires_at,
        db,
        token_type=payload.get("type") or ACCESS,
        user_id=int(user_id) if user_id and str(user_id).isdigit() else None,
    )
    return True


def cleanup_expired_tokens(db: Session) -> int:
    """Delete blacklist rows whose tokens have expired. Returns the number removed."""
    from catering_ops.models.token_blacklist import TokenBlacklist

    removed = db.query(TokenBlacklist).filter(
        TokenBlacklist.expires_at < datetime.now(timezone.utc)
    ).delete()
    db.commit()
    return removed
