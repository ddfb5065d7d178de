from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from models.usage_log import UsageLog
from models.usage_quota import FeatureType
from services.quota import DenialKind, evaluate_quota, get_quota_summary
from services.quota_policy import DEFAULT_QUOTA_POLICIES, seed_quota_policies
from services.usage_ledger import current_period_start


async def _add_usage(session_maker, user_id, feature, count, *, success=True, created_at=None):
    async with session_maker() as session:
        for _ in range(count):
            entry = UsageLog(
                user_id=user_id,
                feature_type=feature,
                success=success,
                tokens_used=100,
                processing_time_ms=10,
                metadata_json={"topic": "seeded"},
            )
            if created_at is not None:
                entry.created_at = created_at
            session.add(entry)
        await session.commit()


def test_current_period_start_is_first_instant_of_month():
    now = datetime(2026, 3, 17, 15, 4, 5, 123456, tzinfo=timezone.utc)
    assert current_period_start(now) == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert current_period_start(datetime(2026, 12, 31, 23, 59)) == datetime(2026, 12, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_allowed_until_count_reaches_limit(session_maker, create_user):
    user, _ = await create_user("free")
    await _add_usage(session_maker, user.id, "script", 4)

    async with session_maker() as session:
        decision = await evaluate_quota(session, user.id, FeatureType.SCRIPT)
    assert decision.allowed is True
    assert decision.current_usage == 4
    assert decision.limit == 5
    assert decision.reason is None
    assert decision.denial_kind is None

    await _add_usage(session_maker, user.id, "script", 1)
    async with session_maker() as session:
        decision = await evaluate_quota(session, user.id, "script")
    assert decision.allowed is False
    assert decision.current_usage == 5
    assert decision.denial_kind == DenialKind.LIMIT_REACHED
    assert "5" in decision.reason


@pytest.mark.asyncio
async def test_failed_attempts_and_previous_months_are_free(session_maker, create_user):
    user, _ = await create_user("free")
    await _add_usage(session_maker, user.id, "script", 3, success=False)
    last_month = current_period_start() - timedelta(days=2)
    await _add_usage(session_maker, user.id, "script", 5, created_at=last_month)
    await _add_usage(session_maker, user.id, "hooks", 4)

    async with session_maker() as session:
        decision = await evaluate_quota(session, user.id, FeatureType.SCRIPT)
    assert decision.allowed is True
    assert decision.current_usage == 0


@pytest.mark.asyncio
async def test_counts_are_per_user(session_maker, create_user):
    first, _ = await create_user("free")
    second, _ = await create_user("free")
    await _add_usage(session_maker, first.id, "script", 5)

    async with session_maker() as session:
        assert (await evaluate_quota(session, first.id, FeatureType.SCRIPT)).allowed is False
        assert (await evaluate_quota(session, second.id, FeatureType.SCRIPT)).allowed is True


@pytest.mark.asyncio
async def test_disabled_feature_is_denied_regardless_of_count(session_maker, create_user):
    async with session_maker() as session:
        await seed_quota_policies(
            session,
            {
                "starter": {
                    "limits": {feature.value: 1000 for feature in FeatureType},
                    "features_enabled": ["script", "titles"],
                }
            },
        )
    user, _ = await create_user("starter")

    async with session_maker() as session:
        hooks = await evaluate_quota(session, user.id, FeatureType.HOOKS)
        titles = await evaluate_quota(session, user.id, FeatureType.TITLES)

    assert hooks.allowed is False
    assert hooks.denial_kind == DenialKind.FEATURE_DISABLED
    assert hooks.reason == "Feature not available in your plan"
    assert titles.allowed is True


@pytest.mark.asyncio
async def test_zero_limit_denies_first_use(session_maker, create_user):
    limits = dict(DEFAULT_QUOTA_POLICIES["free"]["limits"], thumbnail=0)
    async with session_maker() as session:
        await seed_quota_policies(
            session,
            {"trial": {"limits": limits, "features_enabled": [feature.value for feature in FeatureType]}},
        )
    user, _ = await create_user("trial")

    async with session_maker() as session:
        decision = await evaluate_quota(session, user.id, FeatureType.THUMBNAIL)
    assert decision.allowed is False
    assert decision.limit == 0
    assert decision.denial_kind == DenialKind.LIMIT_REACHED


@pytest.mark.asyncio
async def test_missing_user_policy_and_feature_fail_closed(session_maker, create_user):
    legacy_user, _ = await create_user("legacy")
    free_user, _ = await create_user("free")

    async with session_maker() as session:
        missing_user = await evaluate_quota(session, "no-such-user", FeatureType.SCRIPT)
        missing_policy = await evaluate_quota(session, legacy_user.id, FeatureType.SCRIPT)
        unknown_feature = await evaluate_quota(session, free_user.id, "podcast")

    assert missing_user.allowed is False
    assert missing_user.denial_kind == DenialKind.USER_NOT_FOUND
    assert missing_user.reason == "User not found"

    assert missing_policy.allowed is False
    assert missing_policy.denial_kind == DenialKind.NO_POLICY

    assert unknown_feature.allowed is False
    assert unknown_feature.denial_kind == DenialKind.UNKNOWN_FEATURE


@pytest.mark.asyncio
async def test_storage_failure_fails_closed_with_distinct_kind():
    mock_db = AsyncMock()
    mock_db.execute.side_effect = RuntimeError("connection refused")

    decision = await evaluate_quota(mock_db, "user-1", FeatureType.SCRIPT)

    assert decision.allowed is False
    assert decision.denial_kind == DenialKind.UNAVAILABLE
    assert decision.degraded is True
    assert "connection refused" not in decision.reason
    assert decision.reason != "Monthly limit of 5 reached"


@pytest.mark.asyncio
async def test_evaluation_has_no_side_effects(session_maker, create_user):
    user, _ = await create_user("free")
    async with session_maker() as session:
        for _ in range(3):
            await evaluate_quota(session, user.id, FeatureType.SCRIPT)
        summary = await get_quota_summary(session, user)

    assert summary["features"]["script"] == {"used": 0, "limit": 5, "remaining": 5, "enabled": True}


@pytest.mark.asyncio
async def test_quota_summary_reports_every_feature(session_maker, create_user):
    user, _ = await create_user("premium")
    await _add_usage(session_maker, user.id, "titles", 7)
    await _add_usage(session_maker, user.id, "titles", 2, success=False)

    async with session_maker() as session:
        summary = await get_quota_summary(session, user)

    assert summary["access_level"] == "premium"
    assert summary["configured"] is True
    assert set(summary["features"]) == {feature.value for feature in FeatureType}
    assert summary["features"]["titles"] == {"used": 7, "limit": 200, "remaining": 193, "enabled": True}
    assert summary["features"]["script"]["used"] == 0
