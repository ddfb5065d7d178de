"""Signed session tokens issued at login and checked on every authenticated request."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "ytsa_session"


class InvalidSessionToken(ValueError):
    """Token is malformed, expired, or was not issued by this service."""


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: Optional[str]
    expires_at: datetime


def issue_session_token(
    user_id: str,
    email: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    ttl_hours: Optional[int] = None,
) -> Dict[str, Any]:
    """Sign a token for ``user_id``. The access tier is never embedded; quota checks re-read it."""
    issued_at = now or datetime.now(timezone.utc)
    lifetime = max(int(ttl_hours or settings.JWT_EXPIRATION_HOURS), 1)
    expires_at = issued_at + timedelta(hours=lifetime)

    claims: Dict[str, Any] = {
        "sub": user_id,
        "typ": SESSION_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email

    return {
        "token": jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        "expires_at": expires_at.isoformat(),
    }


def read_session_token(token: str) -> SessionClaims:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise InvalidSessionToken("Session expired. Please log in again.") from exc
    except JWTError as exc:
        raise InvalidSessionToken("Invalid access token.") from exc

    user_id = str(claims.get("sub") or "").strip()
    if claims.get("typ") != SESSION_TOKEN_TYPE or not user_id:
        raise InvalidSessionToken("Invalid access token.")

    return SessionClaims(
        user_id=user_id,
        email=claims.get("email") or None,
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
