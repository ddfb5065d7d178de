"""Models package."""

from .user import User
from .usage_log import UsageLog
from .usage_quota import FEATURE_LIMIT_COLUMNS, FeatureType, UsageQuota
from .saved_script import SavedScript
from .voice_preset import VoicePreset
