"""Voice preset catalog, seeding and prompt resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.voice_preset import VoicePreset

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "default"
BASELINE_SYSTEM_PROMPT = (
    "You are an expert YouTube content creator focused on creating viral, engaging content."
)

VOICE_PRESET_CATALOG: Dict[str, Dict[str, Any]] = {
    "default": {
        "display_name": "Default Voice",
        "description": "Balanced, professional content creation",
        "system_prompt": (
            "You are an expert YouTube content creator with deep knowledge of viral content strategies."
        ),
        "style_additions": "",
        "is_premium": False,
    },
    "conversational": {
        "display_name": "Conversational",
        "description": "Natural, flowing speaking style like talking to a friend",
        "system_prompt": (
            "Create content in a conversational, approachable tone. Use \"you\" and \"I\" language "
            "naturally. Include personal experiences and relatable examples."
        ),
        "style_additions": "\n".join([
            "CONVERSATIONAL VOICE:",
            "- Natural, flowing speaking style like talking to a friend",
            "- Use \"you\" and \"I\" language to create connection",
            "- Include conversational transitions naturally",
            "- Share personal experiences and relatable examples",
            "- Ask rhetorical questions to engage viewers",
            "- Use everyday language that feels authentic and unscripted",
            "- Balance professionalism with accessibility",
        ]),
        "is_premium": False,
    },
    "brenda_lawrence": {
        "display_name": "Brenda Lawrence - Leadership & Process Expert",
        "description": "Executive coaching with 30+ years operational excellence",
        "system_prompt": (
            "You are Brenda Lawrence - a business and executive coach, inspirational speaker, consultant, "
            "trainer, trusted advisor, and safe space creator with a strong focus on process improvement "
            "and 30+ years of operational excellence. You optimize both the LEADER AND the business "
            "systems simultaneously. Your unique positioning combines leadership evolution + process "
            "optimization + systems thinking."
        ),
        "style_additions": "\n".join([
            "BRENDA LAWRENCE VOICE & APPROACH:",
            "- Optimize both the leader and the business systems simultaneously",
            "- Executive-level strategic frameworks rooted in operational excellence",
            "- Real-world experience with CMMI Level 3 & 5 certifications, not theory",
            "- Proven case studies of process improvements that drove leadership evolution",
            "- Actionable content leaders can implement in their operations immediately",
            "- Executive presence with operational mastery and systematic thinking",
            "- Values-driven approach that scales businesses without sacrificing culture",
        ]),
        "is_premium": True,
    },
    "motivational": {
        "display_name": "Motivational Speaker",
        "description": "High energy and inspiring tone",
        "system_prompt": (
            "Create motivational content that inspires action. Focus on overcoming challenges, achieving "
            "goals, and building confidence. Use powerful success stories and transformational examples."
        ),
        "style_additions": "\n".join([
            "MOTIVATIONAL SPEAKER VOICE:",
            "- High energy and inspiring tone",
            "- Focus on overcoming challenges and achieving goals",
            "- Use powerful success stories and transformational examples",
            "- Encourage action and personal growth",
            "- Build confidence and self-belief",
        ]),
        "is_premium": False,
    },
    "educational": {
        "display_name": "Educational Expert",
        "description": "Clear, structured, and informative approach",
        "system_prompt": (
            "Break down complex concepts into digestible steps. Use examples and analogies to explain "
            "difficult topics. Focus on practical learning outcomes and encourage deeper understanding."
        ),
        "style_additions": "\n".join([
            "EDUCATIONAL EXPERT VOICE:",
            "- Clear, structured, and informative approach",
            "- Break down complex concepts into digestible steps",
            "- Use examples and analogies to explain difficult topics",
            "- Focus on practical learning outcomes",
            "- Encourage questions and deeper understanding",
        ]),
        "is_premium": False,
    },
    "casual_creator": {
        "display_name": "Casual Content Creator",
        "description": "Friendly, relatable, and approachable tone",
        "system_prompt": (
            "Keep content light and entertaining while informative. Connect with audience through shared "
            "experiences. Maintain authenticity and genuine personality."
        ),
        "style_additions": "\n".join([
            "CASUAL CONTENT CREATOR VOICE:",
            "- Friendly, relatable, and approachable tone",
            "- Use everyday language and personal anecdotes",
            "- Keep content light and entertaining while informative",
            "- Connect with audience through shared experiences",
            "- Maintain authenticity and genuine personality",
        ]),
        "is_premium": False,
    },
}


@dataclass(frozen=True)
class ResolvedVoice:
    name: str
    system_prompt: str
    style_additions: str

    def as_prompt_prefix(self) -> str:
        parts = [self.system_prompt.strip()]
        if self.style_additions.strip():
            parts.append(self.style_additions.strip())
        return "\n\n".join(parts)


def _normalize_voice_name(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


async def resolve_voice(db: AsyncSession, voice_name: Optional[str]) -> ResolvedVoice:
    """
    Look up a voice preset by name.

    Unknown or empty names fall back to the baseline prompt. Lookup errors are
    logged and also fall back, since a voice is styling rather than entitlement.
    """
    name = _normalize_voice_name(voice_name) or DEFAULT_VOICE
    try:
        result = await db.execute(select(VoicePreset).where(VoicePreset.name == name))
        preset = result.scalar_one_or_none()
    except Exception:
        logger.exception("Voice preset lookup failed for %s", name)
        # Clear the failed transaction so the usage record can still commit.
        await db.rollback()
        preset = None

    if preset is None:
        return ResolvedVoice(name=DEFAULT_VOICE, system_prompt=BASELINE_SYSTEM_PROMPT, style_additions="")

    return ResolvedVoice(
        name=preset.name,
        system_prompt=preset.system_prompt or BASELINE_SYSTEM_PROMPT,
        style_additions=preset.style_additions or "",
    )


async def voice_exists(db: AsyncSession, voice_name: Optional[str]) -> bool:
    name = _normalize_voice_name(voice_name)
    if not name:
        return False
    result = await db.execute(select(VoicePreset.id).where(VoicePreset.name == name))
    return result.scalar_one_or_none() is not None


async def list_voice_presets(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(VoicePreset).order_by(VoicePreset.name))
    return [
        {
            "name": preset.name,
            "display_name": preset.display_name,
            "description": preset.description,
            "is_premium": bool(preset.is_premium),
        }
        for preset in result.scalars().all()
    ]


async def seed_voice_presets(db: AsyncSession) -> Dict[str, int]:
    """Upsert the built-in catalog. Preset text is code-defined, so existing rows are refreshed."""
    summary = {"inserted": 0, "updated": 0}
    for name, definition in VOICE_PRESET_CATALOG.items():
        result = await db.execute(select(VoicePreset).where(VoicePreset.name == name))
        preset = result.scalar_one_or_none()
        if preset is None:
            db.add(VoicePreset(name=name, **definition))
            summary["inserted"] += 1
            continue
        for field, value in definition.items():
            setattr(preset, field, value)
        summary["updated"] += 1
    await db.commit()
    return summary
