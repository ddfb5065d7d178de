"""Generation orchestrator: quota check, remote call, usage recording."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.usage_quota import FeatureType
from services.llm import GenerationError
from services.prompt_templates import MAX_TOKENS, STRUCTURED_FEATURES, compose_prompt
from services.quota import QuotaDecision, evaluate_quota
from services.usage_ledger import record_usage
from services.voice_presets import resolve_voice

logger = logging.getLogger(__name__)

STATUS_DENIED = "denied"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

_FENCE_LANG = re.compile(r"```json\n?", re.IGNORECASE)
_FENCE = re.compile(r"```\n?")


class SupportsGenerate(Protocol):
    async def generate(self, prompt: str, max_tokens: int) -> str: ...


@dataclass
class GenerationResult:
    feature: FeatureType
    status: str
    decision: QuotaDecision
    content: Any = None
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers (```json / ```) wrapped around model output."""
    cleaned = (text or "").strip()
    cleaned = _FENCE_LANG.sub("", cleaned)
    cleaned = _FENCE.sub("", cleaned)
    return cleaned.strip()


def parse_structured_content(raw_text: str) -> list:
    try:
        parsed = json.loads(strip_code_fences(raw_text))
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Malformed structured response: {exc.msg}") from exc
    if not isinstance(parsed, list):
        raise GenerationError("Structured response must be a JSON array")
    return parsed


def word_count(text: str) -> int:
    return len((text or "").split())


def compute_stats(feature: FeatureType, content: Any, processing_time_ms: int) -> Dict[str, Any]:
    stats: Dict[str, Any] = {"processing_time_ms": processing_time_ms}
    if feature in STRUCTURED_FEATURES:
        stats["items"] = len(content)
        return stats

    words = word_count(content)
    stats["words"] = words
    if feature == FeatureType.SCRIPT:
        wpm = max(int(settings.WORDS_PER_MINUTE), 1)
        stats["estimated_duration"] = round(words / wpm, 2)
    return stats


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))


async def run_generation(
    db: AsyncSession,
    *,
    user_id: str,
    feature: FeatureType,
    params: Mapping[str, Any],
    generator: SupportsGenerate,
    default_voice: Optional[str] = None,
) -> GenerationResult:
    """
    Run one metered generation.

    A quota denial returns immediately without a usage record. Every attempt
    that reaches the remote call writes exactly one usage record, success or not.
    """
    decision = await evaluate_quota(db, user_id, feature)
    if not decision.allowed:
        logger.info(
            "Generation denied for user=%s feature=%s kind=%s",
            user_id,
            feature.value,
            decision.denial_kind.value if decision.denial_kind else None,
        )
        return GenerationResult(feature=feature, status=STATUS_DENIED, decision=decision, error=decision.reason)

    request_params = {key: value for key, value in dict(params).items() if value is not None}
    started = time.perf_counter()
    voice_name = request_params.get("voice_preset") or default_voice

    try:
        voice = await resolve_voice(db, voice_name)
        prompt = compose_prompt(feature, voice.as_prompt_prefix(), request_params)
        raw_text = await generator.generate(prompt, MAX_TOKENS[feature])
        if feature in STRUCTURED_FEATURES:
            content: Any = parse_structured_content(raw_text)
        else:
            content = raw_text.strip()
    except Exception as exc:
        processing_time_ms = _elapsed_ms(started)
        logger.exception("%s generation failed for user=%s", feature.value, user_id)
        await record_usage(
            db,
            user_id=user_id,
            feature=feature,
            success=False,
            processing_time_ms=processing_time_ms,
            tokens_used=0,
            error_message=str(exc) or exc.__class__.__name__,
            metadata={"request": request_params, "voice_preset": voice_name},
        )
        return GenerationResult(
            feature=feature,
            status=STATUS_FAILED,
            decision=decision,
            stats={"processing_time_ms": processing_time_ms},
            error=str(exc) or exc.__class__.__name__,
        )

    processing_time_ms = _elapsed_ms(started)
    stats = compute_stats(feature, content, processing_time_ms)
    await record_usage(
        db,
        user_id=user_id,
        feature=feature,
        success=True,
        processing_time_ms=processing_time_ms,
        tokens_used=word_count(raw_text),
        metadata={"request": request_params, "voice_preset": voice.name, "stats": stats},
    )
    return GenerationResult(
        feature=feature,
        status=STATUS_SUCCEEDED,
        decision=decision,
        content=content,
        stats=stats,
    )
