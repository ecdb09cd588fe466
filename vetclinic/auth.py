"""
Caller identity at the HTTP boundary.

Sessions and sign-in live with the identity provider; this module only
verifies the bearer token it issued and resolves the caller's role once, into
a closed Role variant that the rest of the code branches on.
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from fastapi import Depends, HTTPException, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import CRON_SECRET, JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

security = HTTPBearer()


class Role(str, Enum):
    CLIENT = "client"
    VETERINARIAN = "veterinarian"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """Authenticated caller resolved from the bearer token"""

    subject: str
    role: Role
    profile_id: Optional[int] = None  # clients.id / veterinarians.id for the subject


def create_access_token(
    subject: str,
    role: Role,
    profile_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token

    Used by the identity provider integration and by tests.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode: dict[str, Any] = {"sub": subject, "role": role.value, "exp": expire}
    if profile_id is not None:
        to_encode["profile_id"] = profile_id
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def resolve_caller(token: str) -> Caller:
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    try:
        role = Role(payload.get("role"))
    except ValueError as e:
        logger.warning(f"⚠️ Unknown role in token for subject {subject}: {payload.get('role')}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    profile_id = payload.get("profile_id")
    return Caller(subject=subject, role=role, profile_id=int(profile_id) if profile_id else None)


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Caller:
    return resolve_caller(credentials.credentials)


def require_roles(*roles: Role):
    """Dependency factory restricting an endpoint to the given roles"""

    async def dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in roles:
            logger.warning(f"⚠️ {caller.role.value} {caller.subject} denied (requires {[r.value for r in roles]})")
            raise HTTPException(status_code=403, detail="Not authorized")
        return caller

    return dependency


require_staff = require_roles(Role.VETERINARIAN, Role.ADMIN)
require_admin = require_roles(Role.ADMIN)


async def verify_cron_secret(
    request: Request,
    secret: Optional[str] = Query(None),
) -> None:
    """Shared-secret check for scheduler-triggered endpoints"""
    provided = secret or request.headers.get("x-cron-secret")
    if not CRON_SECRET or not provided:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not hmac.compare_digest(provided.encode("utf-8"), CRON_SECRET.encode("utf-8")):
        logger.warning(f"⚠️ Cron trigger rejected for {request.url.path}: bad secret")
        raise HTTPException(status_code=401, detail="Unauthorized")
