from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.future import select

from models.usage_log import UsageLog
from models.usage_quota import FeatureType
from services.usage_ledger import count_successful_usage, get_period_usage, record_usage


@pytest.mark.asyncio
async def test_record_usage_appends_one_row_per_attempt(session_maker, create_user):
    user, _ = await create_user()

    async with session_maker() as session:
        await record_usage(
            session,
            user_id=user.id,
            feature=FeatureType.HOOKS,
            success=True,
            processing_time_ms=412,
            tokens_used=88,
            metadata={"request": {"topic": "Sourdough"}, "voice_preset": "default"},
        )
        await record_usage(
            session,
            user_id=user.id,
            feature=FeatureType.HOOKS,
            success=False,
            processing_time_ms=30,
            error_message="API request failed: timeout",
        )

    async with session_maker() as session:
        result = await session.execute(
            select(UsageLog).where(UsageLog.user_id == user.id).order_by(UsageLog.success.desc())
        )
        rows = result.scalars().all()

    assert len(rows) == 2
    succeeded, failed = rows
    assert succeeded.feature_type == "hooks"
    assert succeeded.tokens_used == 88
    assert succeeded.processing_time_ms == 412
    assert succeeded.metadata_json["request"] == {"topic": "Sourdough"}
    assert succeeded.created_at is not None
    assert failed.success is False
    assert failed.error_message == "API request failed: timeout"
    assert failed.metadata_json == {}


@pytest.mark.asyncio
async def test_record_usage_swallows_storage_errors():
    mock_db = MagicMock()
    mock_db.commit = AsyncMock(side_effect=RuntimeError("disk full"))
    mock_db.rollback = AsyncMock()

    await record_usage(mock_db, user_id="user-1", feature=FeatureType.SCRIPT, success=True)

    mock_db.add.assert_called_once()
    mock_db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_period_usage_is_zero_filled_and_counts_successes(session_maker, create_user):
    user, _ = await create_user()
    async with session_maker() as session:
        for success in (True, True, False):
            await record_usage(session, user_id=user.id, feature=FeatureType.TAGS, success=success)
        await record_usage(session, user_id=user.id, feature=FeatureType.SCRIPT, success=True)

    async with session_maker() as session:
        usage = await get_period_usage(session, user.id)
        tags = await count_successful_usage(session, user.id, FeatureType.TAGS)
        next_year = await count_successful_usage(
            session, user.id, FeatureType.TAGS, now=datetime(2999, 1, 5, tzinfo=timezone.utc)
        )

    assert usage == {
        "script": 1,
        "hooks": 0,
        "titles": 0,
        "outline": 0,
        "description": 0,
        "tags": 2,
        "thumbnail": 0,
        "ctas": 0,
    }
    assert tags == 2
    assert next_year == 0
