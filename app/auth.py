import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.config import settings
from app.models.domain import Host, Meetup
from app.utils.errors import service_error

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class HostCredential:
    """What the caller presented for a host action: a session, an access code, or both."""
    host_id: Optional[UUID] = None
    host_code: Optional[str] = None

    def with_code(self, host_code: Optional[str]) -> "HostCredential":
        """Fall back to an access code supplied in the request body."""
        if self.host_code or not host_code:
            return self
        return HostCredential(host_id=self.host_id, host_code=host_code)


def create_session_token(host: Host, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(host.id),
        "username": host.username,
        "iat": now,
        "exp": now + timedelta(hours=settings.SESSION_TTL_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Validate a host session token.

    Returns dict with:
    - host_id: UUID
    - username: str
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
        return {
            "host_id": UUID(payload["sub"]),
            "username": payload.get("username"),
        }
    except (JWTError, KeyError, ValueError):
        raise service_error('INVALID_SESSION')


async def get_host_credential(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_host_code: Optional[str] = Header(None),
) -> HostCredential:
    """Collect the host credential from the Authorization and X-Host-Code headers."""
    host_id = None
    if credentials is not None:
        host_id = decode_session_token(credentials.credentials)["host_id"]
    return HostCredential(host_id=host_id, host_code=x_host_code)


async def get_current_host(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Require a logged-in host session."""
    if credentials is None:
        raise service_error('INVALID_SESSION', 'Login required')
    return decode_session_token(credentials.credentials)


def authorize_host(meetup: Meetup, credential: HostCredential) -> None:
    """
    Full-trust host check: the session owns the meetup or the access code matches.

    Raises NOT_HOST otherwise.
    """
    by_session = (
        credential.host_id is not None
        and meetup.host_id is not None
        and meetup.host_id == credential.host_id
    )
    by_code = bool(credential.host_code) and hmac.compare_digest(
        credential.host_code.encode("utf-8"), meetup.host_code.encode("utf-8")
    )
    if not (by_session or by_code):
        raise service_error('NOT_HOST')
