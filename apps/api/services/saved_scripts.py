"""Saved script persistence scoped to the owning user."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.saved_script import SavedScript

JSON_LIST_FIELDS = ("hooks", "titles", "tags", "thumbnail_text", "call_to_actions")
TEXT_FIELDS = (
    "topic",
    "audience",
    "duration",
    "tone",
    "video_type",
    "voice_preset",
    "script_content",
    "outline",
    "description",
)


def serialize_saved_script(row: SavedScript) -> Dict[str, Any]:
    return {
        "id": row.id,
        "title": row.title,
        "topic": row.topic,
        "audience": row.audience,
        "duration": row.duration,
        "tone": row.tone,
        "video_type": row.video_type,
        "voice_preset": row.voice_preset,
        "script_content": row.script_content,
        "hooks": row.hooks or [],
        "titles": row.titles or [],
        "outline": row.outline,
        "description": row.description,
        "tags": row.tags or [],
        "thumbnail_text": row.thumbnail_text or [],
        "call_to_actions": row.call_to_actions or [],
        "script_stats": row.script_stats or {},
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def _apply_payload(row: SavedScript, payload: Mapping[str, Any]) -> None:
    for name in TEXT_FIELDS:
        if name == "topic" and not payload.get("topic"):
            continue
        if name in payload:
            setattr(row, name, payload[name])
    for name in JSON_LIST_FIELDS:
        if name in payload:
            setattr(row, name, list(payload[name] or []))
    if "script_stats" in payload:
        row.script_stats = dict(payload["script_stats"] or {})

    title = str(payload.get("title") or "").strip()
    if title:
        row.title = title
    elif not row.title:
        row.title = row.topic


async def _get_owned_script(db: AsyncSession, user_id: str, script_id: str) -> SavedScript:
    result = await db.execute(
        select(SavedScript).where(
            SavedScript.id == script_id,
            SavedScript.user_id == user_id,
        )
    )
    row = result.scalar_one_or_none()
    if not row:
        raise HTTPException(status_code=404, detail="Script not found")
    return row


async def save_script(db: AsyncSession, *, user_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    row = SavedScript(id=str(uuid.uuid4()), user_id=user_id, title="", topic=str(payload.get("topic") or ""))
    _apply_payload(row, payload)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return {
        "success": True,
        "script_id": row.id,
        "saved_at": row.created_at.isoformat() if row.created_at else None,
    }


async def update_script(
    db: AsyncSession,
    *,
    user_id: str,
    script_id: str,
    payload: Mapping[str, Any],
) -> Dict[str, Any]:
    row = await _get_owned_script(db, user_id, script_id)
    _apply_payload(row, payload)
    row.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(row)
    return serialize_saved_script(row)


async def list_scripts(db: AsyncSession, *, user_id: str) -> List[Dict[str, Any]]:
    query = (
        select(SavedScript)
        .where(SavedScript.user_id == user_id)
        .order_by(SavedScript.updated_at.desc(), SavedScript.created_at.desc())
    )
    result = await db.execute(query)
    return [serialize_saved_script(row) for row in result.scalars().all()]


async def get_script(db: AsyncSession, *, user_id: str, script_id: str) -> Dict[str, Any]:
    return serialize_saved_script(await _get_owned_script(db, user_id, script_id))


async def delete_script(db: AsyncSession, *, user_id: str, script_id: str) -> None:
    row = await _get_owned_script(db, user_id, script_id)
    await db.delete(row)
    await db.commit()
