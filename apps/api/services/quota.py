"""Quota evaluator: per-tier, per-feature monthly entitlement checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.usage_quota import FeatureType
from models.user import User
from services.quota_policy import get_quota_policy
from services.usage_ledger import count_successful_usage, current_period_start, get_period_usage

logger = logging.getLogger(__name__)


class DenialKind(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    NO_POLICY = "no_policy"
    UNKNOWN_FEATURE = "unknown_feature"
    FEATURE_DISABLED = "feature_disabled"
    LIMIT_REACHED = "limit_reached"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    current_usage: int = 0
    limit: int = 0
    reason: Optional[str] = None
    denial_kind: Optional[DenialKind] = None

    @property
    def degraded(self) -> bool:
        """True when the denial comes from system health, not the user's plan."""
        return self.denial_kind == DenialKind.UNAVAILABLE


def _deny(kind: DenialKind, reason: str, *, current_usage: int = 0, limit: int = 0) -> QuotaDecision:
    return QuotaDecision(
        allowed=False,
        current_usage=current_usage,
        limit=limit,
        reason=reason,
        denial_kind=kind,
    )


async def evaluate_quota(
    db: AsyncSession,
    user_id: str,
    feature: Union[FeatureType, str],
    now: Optional[datetime] = None,
) -> QuotaDecision:
    """
    Decide whether ``user_id`` may run ``feature`` right now.

    Pure read. Every failure path denies; storage errors are reported with
    ``DenialKind.UNAVAILABLE`` so callers can tell degradation from a plan limit.
    """
    try:
        result = await db.execute(select(User.access_level).where(User.id == user_id))
        access_level = result.scalar_one_or_none()
        if access_level is None:
            return _deny(DenialKind.USER_NOT_FOUND, "User not found")

        policy = await get_quota_policy(db, access_level)
        if policy is None:
            return _deny(DenialKind.NO_POLICY, "No quota configuration found for your plan")

        feature_type = FeatureType.parse(feature)
        if feature_type is None:
            return _deny(DenialKind.UNKNOWN_FEATURE, "Unknown feature type")

        if not policy.is_enabled(feature_type):
            return _deny(DenialKind.FEATURE_DISABLED, "Feature not available in your plan")

        limit = policy.limit_for(feature_type)
        current_usage = await count_successful_usage(db, user_id, feature_type, now)
    except Exception:
        logger.exception("Quota check failed for user=%s feature=%s", user_id, feature)
        return _deny(DenialKind.UNAVAILABLE, "Quota check failed. Please try again later.")

    if current_usage >= limit:
        return _deny(
            DenialKind.LIMIT_REACHED,
            f"Monthly limit of {limit} reached",
            current_usage=current_usage,
            limit=limit,
        )
    return QuotaDecision(allowed=True, current_usage=current_usage, limit=limit)


async def get_quota_summary(
    db: AsyncSession,
    user: User,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Per-feature usage, limit and remaining count for the user's tier."""
    policy = await get_quota_policy(db, user.access_level)
    usage = await get_period_usage(db, user.id, now)

    features: Dict[str, Dict[str, Any]] = {}
    for feature in FeatureType:
        used = usage.get(feature.value, 0)
        if policy is None:
            features[feature.value] = {"used": used, "limit": 0, "remaining": 0, "enabled": False}
            continue
        limit = policy.limit_for(feature)
        enabled = policy.is_enabled(feature)
        features[feature.value] = {
            "used": used,
            "limit": limit,
            "remaining": max(limit - used, 0) if enabled else 0,
            "enabled": enabled,
        }

    return {
        "access_level": user.access_level,
        "period_start": current_period_start(now).isoformat(),
        "configured": policy is not None,
        "features_enabled": policy.enabled_features() if policy else [],
        "features": features,
    }
