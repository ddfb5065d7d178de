"""Public voice preset catalog."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.voice_presets import list_voice_presets

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def get_voice_presets(db: AsyncSession = Depends(get_db)):
    try:
        return {"presets": await list_voice_presets(db)}
    except SQLAlchemyError as exc:
        logger.exception("Voice preset listing failed")
        raise HTTPException(status_code=500, detail="Failed to retrieve voice presets") from exc
