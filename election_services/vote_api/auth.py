"""Bearer token validation for the Vote API."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from ..shared.errors import Forbidden, Unauthorized
from .config import settings

ADMIN_ROLE = "admin"
VOTER_ROLE = "voter"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """Caller identity carried by a validated token."""
    subject: str
    role: str = VOTER_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(subject: str, role: str = VOTER_ROLE,
                        expires_minutes: int = settings.ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Sign a token for a subject. Used by development tooling and tests."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Principal:
    """
    Validate a bearer token and extract the caller.

    Raises:
        Unauthorized: Token is malformed, expired, or has no subject
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except JWTError:
        raise Unauthorized("Invalid token")

    subject = payload.get("sub") or payload.get("id")
    if not subject:
        raise Unauthorized("Token has no subject")

    return Principal(subject=str(subject), role=payload.get("role") or VOTER_ROLE)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Principal:
    """FastAPI dependency: authenticated caller or Unauthorized."""
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    return decode_token(credentials.credentials)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """FastAPI dependency: authenticated administrator or Forbidden."""
    if not principal.is_admin:
        raise Forbidden()
    return principal
