"""Quota policy store: tier lookup and idempotent seeding."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.usage_quota import FEATURE_LIMIT_COLUMNS, FeatureType, UsageQuota

logger = logging.getLogger(__name__)

ALL_FEATURES = [feature.value for feature in FeatureType]

DEFAULT_QUOTA_POLICIES: Dict[str, Dict[str, Any]] = {
    "free": {
        "limits": {
            "script": 5,
            "hooks": 10,
            "titles": 20,
            "outline": 5,
            "description": 5,
            "tags": 10,
            "thumbnail": 10,
            "ctas": 10,
        },
        "features_enabled": ALL_FEATURES,
    },
    "premium": {
        "limits": {
            "script": 50,
            "hooks": 100,
            "titles": 200,
            "outline": 50,
            "description": 50,
            "tags": 100,
            "thumbnail": 100,
            "ctas": 100,
        },
        "features_enabled": ALL_FEATURES,
    },
    "pro": {
        "limits": {
            "script": 200,
            "hooks": 400,
            "titles": 800,
            "outline": 200,
            "description": 200,
            "tags": 400,
            "thumbnail": 400,
            "ctas": 400,
        },
        "features_enabled": ALL_FEATURES,
    },
}


class InvalidQuotaPolicy(ValueError):
    """Raised when a policy definition is not seedable."""


def normalize_policy(access_level: str, policy: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate one policy definition and flatten it into UsageQuota column values."""
    tier = str(access_level or "").strip().lower()
    if not tier:
        raise InvalidQuotaPolicy("access_level is required")

    limits = dict(policy.get("limits") or {})
    unknown = [key for key in limits if FeatureType.parse(key) is None]
    if unknown:
        raise InvalidQuotaPolicy(f"{tier}: unknown feature types in limits: {sorted(unknown)}")

    values: Dict[str, Any] = {"access_level": tier}
    for feature, column in FEATURE_LIMIT_COLUMNS.items():
        raw = limits.get(feature.value)
        if raw is None:
            raise InvalidQuotaPolicy(f"{tier}: missing limit for {feature.value}")
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            raise InvalidQuotaPolicy(f"{tier}: limit for {feature.value} must be a whole number >= 0")
        values[column] = raw

    enabled: List[str] = []
    for item in policy.get("features_enabled") or []:
        feature = FeatureType.parse(item)
        if feature is None:
            raise InvalidQuotaPolicy(f"{tier}: unknown enabled feature {item!r}")
        if feature.value not in enabled:
            enabled.append(feature.value)
    values["features_enabled"] = enabled
    return values


def serialize_policy(policy: UsageQuota) -> Dict[str, Any]:
    return {
        "access_level": policy.access_level,
        "limits": {feature.value: policy.limit_for(feature) for feature in FeatureType},
        "features_enabled": policy.enabled_features(),
    }


async def get_quota_policy(db: AsyncSession, access_level: str) -> Optional[UsageQuota]:
    result = await db.execute(select(UsageQuota).where(UsageQuota.access_level == access_level))
    return result.scalar_one_or_none()


async def list_quota_policies(db: AsyncSession) -> List[UsageQuota]:
    result = await db.execute(select(UsageQuota).order_by(UsageQuota.access_level))
    return list(result.scalars().all())


async def seed_quota_policies(
    db: AsyncSession,
    policies: Optional[Mapping[str, Mapping[str, Any]]] = None,
    *,
    force_update: bool = False,
) -> Dict[str, int]:
    """
    Insert missing tier policies.

    Existing rows are left alone unless ``force_update`` is set, so limits tuned
    by an operator survive restarts. Re-running with the same input is a no-op.
    """
    definitions = policies if policies is not None else DEFAULT_QUOTA_POLICIES
    normalized = [normalize_policy(tier, policy) for tier, policy in definitions.items()]

    summary = {"inserted": 0, "updated": 0, "unchanged": 0}
    for values in normalized:
        existing = await get_quota_policy(db, values["access_level"])
        if existing is None:
            db.add(UsageQuota(**values))
            summary["inserted"] += 1
            continue

        if not force_update:
            summary["unchanged"] += 1
            continue

        changed = _apply_policy_values(existing, values)
        summary["updated" if changed else "unchanged"] += 1

    await db.commit()
    logger.info(
        "Quota policies seeded: inserted=%s updated=%s unchanged=%s force_update=%s",
        summary["inserted"],
        summary["updated"],
        summary["unchanged"],
        force_update,
    )
    return summary


def _apply_policy_values(row: UsageQuota, values: Dict[str, Any]) -> bool:
    changed = False
    for column in _policy_columns(values):
        if getattr(row, column) != values[column]:
            setattr(row, column, values[column])
            changed = True
    return changed


def _policy_columns(values: Iterable[str]) -> List[str]:
    return [column for column in values if column != "access_level"]
