"""Usage ledger: append-only generation attempt log and period accounting."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.usage_log import UsageLog
from models.usage_quota import FeatureType

logger = logging.getLogger(__name__)


def current_period_start(now: Optional[datetime] = None) -> datetime:
    """First instant (UTC) of the calendar month containing ``now``."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    current = current.astimezone(timezone.utc)
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


async def record_usage(
    db: AsyncSession,
    *,
    user_id: str,
    feature: FeatureType,
    success: bool,
    processing_time_ms: int = 0,
    tokens_used: int = 0,
    error_message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Append one usage record. Failures are logged and never raised."""
    try:
        entry = UsageLog(
            id=str(uuid.uuid4()),
            user_id=user_id,
            feature_type=feature.value,
            success=bool(success),
            processing_time_ms=max(int(processing_time_ms or 0), 0),
            tokens_used=max(int(tokens_used or 0), 0),
            error_message=error_message,
            metadata_json=dict(metadata or {}),
        )
        db.add(entry)
        await db.commit()
    except Exception:
        logger.exception(
            "Usage logging failed for user=%s feature=%s success=%s",
            user_id,
            feature.value,
            success,
        )
        try:
            await db.rollback()
        except Exception:
            logger.exception("Rollback after usage logging failure also failed")


async def count_successful_usage(
    db: AsyncSession,
    user_id: str,
    feature: FeatureType,
    now: Optional[datetime] = None,
) -> int:
    """Successful attempts for one feature in the current accounting period."""
    result = await db.execute(
        select(func.count(UsageLog.id)).where(
            UsageLog.user_id == user_id,
            UsageLog.feature_type == feature.value,
            UsageLog.success.is_(True),
            UsageLog.created_at >= current_period_start(now),
        )
    )
    return int(result.scalar() or 0)


async def get_period_usage(
    db: AsyncSession,
    user_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Successful current-period usage for every feature type, zero-filled."""
    result = await db.execute(
        select(UsageLog.feature_type, func.count(UsageLog.id))
        .where(
            UsageLog.user_id == user_id,
            UsageLog.success.is_(True),
            UsageLog.created_at >= current_period_start(now),
        )
        .group_by(UsageLog.feature_type)
    )
    counts = {feature.value: 0 for feature in FeatureType}
    for feature_type, count in result.all():
        if feature_type in counts:
            counts[feature_type] = int(count or 0)
    return counts
