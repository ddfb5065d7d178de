"""UsageQuota model: monthly ceilings and enabled features per access tier."""

from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import CheckConstraint, Column, Integer, JSON, String

from database import Base


class FeatureType(str, Enum):
    """Metered content types. Each value has a limit column on UsageQuota."""

    SCRIPT = "script"
    HOOKS = "hooks"
    TITLES = "titles"
    OUTLINE = "outline"
    DESCRIPTION = "description"
    TAGS = "tags"
    THUMBNAIL = "thumbnail"
    CTAS = "ctas"

    @classmethod
    def parse(cls, value) -> Optional["FeatureType"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


FEATURE_LIMIT_COLUMNS: Dict[FeatureType, str] = {
    FeatureType.SCRIPT: "monthly_script_limit",
    FeatureType.HOOKS: "monthly_hooks_limit",
    FeatureType.TITLES: "monthly_titles_limit",
    FeatureType.OUTLINE: "monthly_outline_limit",
    FeatureType.DESCRIPTION: "monthly_description_limit",
    FeatureType.TAGS: "monthly_tags_limit",
    FeatureType.THUMBNAIL: "monthly_thumbnail_limit",
    FeatureType.CTAS: "monthly_ctas_limit",
}


class UsageQuota(Base):
    """Reference row keyed by access tier (matched against users.access_level)."""

    __tablename__ = "usage_quotas"
    __table_args__ = tuple(
        CheckConstraint(f"{column} >= 0", name=f"ck_usage_quotas_{column}_non_negative")
        for column in FEATURE_LIMIT_COLUMNS.values()
    )

    access_level = Column(String(50), primary_key=True)
    monthly_script_limit = Column(Integer, nullable=False)
    monthly_hooks_limit = Column(Integer, nullable=False)
    monthly_titles_limit = Column(Integer, nullable=False)
    monthly_outline_limit = Column(Integer, nullable=False)
    monthly_description_limit = Column(Integer, nullable=False)
    monthly_tags_limit = Column(Integer, nullable=False)
    monthly_thumbnail_limit = Column(Integer, nullable=False)
    monthly_ctas_limit = Column(Integer, nullable=False)
    features_enabled = Column(JSON, nullable=False, default=list)

    def limit_for(self, feature: FeatureType) -> int:
        return int(getattr(self, FEATURE_LIMIT_COLUMNS[feature]))

    def enabled_features(self) -> List[str]:
        return [str(item) for item in (self.features_enabled or [])]

    def is_enabled(self, feature: FeatureType) -> bool:
        return feature.value in self.enabled_features()
