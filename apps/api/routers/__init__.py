"""Routers package."""

from . import (
    health,
    auth,
    user,
    generate,
    scripts,
    voice_presets,
)
