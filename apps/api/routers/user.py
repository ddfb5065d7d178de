"""User profile, quota summary and preferences router."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth import serialize_user
from routers.auth_scope import get_current_user
from routers.rate_limit import api_rate_limit
from services.quota import get_quota_summary
from services.voice_presets import voice_exists

router = APIRouter(dependencies=[Depends(api_rate_limit())])


class PreferencesRequest(BaseModel):
    preferred_voice: Optional[str] = None


@router.get("/profile")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current user with this month's usage against the tier's limits."""
    summary = await get_quota_summary(db, user)
    return {
        "user": serialize_user(user),
        "usage": {feature: item["used"] for feature, item in summary["features"].items()},
        "quotas": summary,
    }


@router.patch("/preferences")
async def update_preferences(
    request: PreferencesRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if request.preferred_voice is not None:
        voice = request.preferred_voice.strip().lower()
        if not await voice_exists(db, voice):
            raise HTTPException(status_code=400, detail="Unknown voice preset")
        user.preferred_voice = voice
        await db.commit()
        await db.refresh(user)
    return {"user": serialize_user(user)}
