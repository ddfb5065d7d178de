"""Bearer-token dependencies that resolve the calling account."""

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.user import User
from services.session_token import InvalidSessionToken, SessionClaims, read_session_token


bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_claims(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> SessionClaims:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required.")

    try:
        return read_session_token(credentials.credentials)
    except InvalidSessionToken as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


async def get_current_user(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the account behind the token; deleted accounts lose access immediately."""
    result = await db.execute(select(User).where(User.id == claims.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="Account no longer exists.")
    return user
