"""
Authentication router for account registration and password login.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.user import User
from routers.rate_limit import auth_rate_limit
from services.passwords import hash_password, verify_password
from services.session_token import issue_session_token

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


def _normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "access_level": user.access_level,
        "subscription_status": user.subscription_status,
        "preferred_voice": user.preferred_voice,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _session_payload(user: User) -> Dict[str, Any]:
    session = issue_session_token(user.id, user.email)
    return {
        "token": session["token"],
        "expires_at": session["expires_at"],
        "user": serialize_user(user),
    }


@router.post("/register")
async def register(
    request: RegisterRequest,
    _rate_limit: None = Depends(auth_rate_limit()),
    db: AsyncSession = Depends(get_db),
):
    """Create a free-tier account and return a session token."""
    email = _normalize_email(request.email)
    if not email or not request.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    if "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email address is required")
    if len(request.password) < settings.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=hash_password(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        access_level="free",
        subscription_status="active",
        preferred_voice="default",
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="User already exists")
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _session_payload(user)


@router.post("/login")
async def login(
    request: LoginRequest,
    _rate_limit: None = Depends(auth_rate_limit()),
    db: AsyncSession = Depends(get_db),
):
    """Exchange email and password for a session token."""
    result = await db.execute(select(User).where(User.email == _normalize_email(request.email)))
    user = result.scalar_one_or_none()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return _session_payload(user)
