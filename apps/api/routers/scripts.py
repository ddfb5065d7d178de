"""Saved scripts router."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.user import User
from routers.auth_scope import get_current_user
from routers.rate_limit import api_rate_limit
from services.saved_scripts import delete_script, get_script, list_scripts, save_script, update_script

router = APIRouter(dependencies=[Depends(api_rate_limit())])
logger = logging.getLogger(__name__)


class SaveScriptRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=500)
    topic: str = Field(min_length=1)
    audience: Optional[str] = Field(default=None, max_length=100)
    duration: Optional[str] = Field(default=None, max_length=20)
    tone: Optional[str] = Field(default=None, max_length=100)
    video_type: Optional[str] = Field(default=None, max_length=100)
    voice_preset: Optional[str] = Field(default=None, max_length=100)
    script_content: Optional[str] = None
    hooks: Optional[List[Any]] = None
    titles: Optional[List[Any]] = None
    outline: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[Any]] = None
    thumbnail_text: Optional[List[Any]] = None
    call_to_actions: Optional[List[Any]] = None
    script_stats: Optional[Dict[str, Any]] = None


class UpdateScriptRequest(SaveScriptRequest):
    topic: Optional[str] = Field(default=None, min_length=1)


@router.post("/save")
async def save_saved_script(
    request: SaveScriptRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await save_script(db, user_id=user.id, payload=request.model_dump())
    except SQLAlchemyError as exc:
        logger.exception("Save script failed for user=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to save script") from exc


@router.get("/saved")
async def list_saved_scripts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return {"scripts": await list_scripts(db, user_id=user.id)}
    except SQLAlchemyError as exc:
        logger.exception("List saved scripts failed for user=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to retrieve saved scripts") from exc


@router.get("/{script_id}")
async def get_saved_script(
    script_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await get_script(db, user_id=user.id, script_id=script_id)
    except SQLAlchemyError as exc:
        logger.exception("Get saved script failed for user=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to retrieve script") from exc


@router.put("/{script_id}")
async def update_saved_script(
    script_id: str,
    request: UpdateScriptRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await update_script(
            db,
            user_id=user.id,
            script_id=script_id,
            payload=request.model_dump(exclude_unset=True),
        )
    except SQLAlchemyError as exc:
        logger.exception("Update saved script failed for user=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to update script") from exc


@router.delete("/{script_id}")
async def delete_saved_script(
    script_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await delete_script(db, user_id=user.id, script_id=script_id)
    except SQLAlchemyError as exc:
        logger.exception("Delete saved script failed for user=%s", user.id)
        raise HTTPException(status_code=500, detail="Failed to delete script") from exc
    return {"success": True}
