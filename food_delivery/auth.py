"""
Authentication & Sessions

Password hashing with bcrypt and server-side session tokens for admins and
drivers. A token is an opaque random string handed out at login; only its
SHA-256 digest is stored. Routes receive the authenticated principal
through the require_admin / require_driver dependencies.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional, Union

import bcrypt
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from food_delivery.core.config import get_settings
from food_delivery.database import get_db
from food_delivery.models import AdminUser, Driver, SubjectType, as_utc, utcnow
from food_delivery.storage import Storage

logger = logging.getLogger(__name__)
settings = get_settings()

Principal = Union[AdminUser, Driver]


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, stored_hash: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash."""
    if not password or not stored_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


# =============================================================================
# SESSIONS
# =============================================================================

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def issue_session(storage: Storage, subject_id: str, subject_type: SubjectType) -> str:
    """Create a session for a principal and return its bearer token."""
    token = secrets.token_urlsafe(32)
    await storage.create_session({
        "token": hash_token(token),
        "subject_id": subject_id,
        "subject_type": subject_type,
        "expires_at": utcnow() + timedelta(hours=settings.session_ttl_hours),
    })
    logger.info(f"Session issued for {subject_type.value} {subject_id}")
    return token


async def resolve_session(
    storage: Storage,
    token: str,
    subject_type: SubjectType,
) -> Principal:
    """
    Return the principal behind a token.

    Expired sessions are deleted on sight. Raises 401 for unknown, expired
    or deactivated sessions and 403 when the token belongs to the other
    kind of principal.
    """
    session = await storage.get_session(hash_token(token))
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    if as_utc(session.expires_at) <= utcnow():
        await storage.delete_session(session.token)
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    if session.subject_type != subject_type:
        raise HTTPException(status_code=403, detail=f"{subject_type.value.capitalize()} access required")

    if subject_type == SubjectType.ADMIN:
        principal = await storage.get_admin(session.subject_id)
    else:
        principal = await storage.get_driver(session.subject_id)

    if principal is None or not principal.is_active:
        raise HTTPException(status_code=401, detail="Account is not active")

    return principal


async def invalidate_session(storage: Storage, token: str) -> bool:
    return await storage.delete_session(hash_token(token))


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_storage(db: AsyncSession = Depends(get_db)) -> Storage:
    return Storage(db)


async def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


async def require_admin(
    token: str = Depends(get_bearer_token),
    storage: Storage = Depends(get_storage),
) -> AdminUser:
    return await resolve_session(storage, token, SubjectType.ADMIN)


async def require_driver(
    token: str = Depends(get_bearer_token),
    storage: Storage = Depends(get_storage),
) -> Driver:
    return await resolve_session(storage, token, SubjectType.DRIVER)


# =============================================================================
# BOOTSTRAP
# =============================================================================

async def ensure_default_admin(storage: Storage) -> Optional[AdminUser]:
    """Create the configured admin account if it does not exist yet."""
    existing = await storage.get_admin_by_email(settings.default_admin_email)
    if existing is not None:
        return None

    admin = await storage.create_admin({
        "name": "Administrator",
        "username": "admin",
        "email": settings.default_admin_email,
        "password_hash": hash_password(settings.default_admin_password),
        "user_type": "admin",
        "is_active": True,
    })
    logger.info(f"Default admin created: {admin.email}")
    return admin
