"""Per-content-type prompt templates and generation budgets."""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Mapping

from config import settings
from models.usage_quota import FeatureType

MAX_TOKENS: Dict[FeatureType, int] = {
    FeatureType.SCRIPT: 2000,
    FeatureType.HOOKS: 1000,
    FeatureType.TITLES: 800,
    FeatureType.OUTLINE: 1200,
    FeatureType.DESCRIPTION: 800,
    FeatureType.TAGS: 400,
    FeatureType.THUMBNAIL: 400,
    FeatureType.CTAS: 600,
}

# Content types whose model output is a JSON array rather than prose.
STRUCTURED_FEATURES = {
    FeatureType.HOOKS,
    FeatureType.TITLES,
    FeatureType.TAGS,
    FeatureType.THUMBNAIL,
    FeatureType.CTAS,
}


def _text(params: Mapping[str, Any], key: str, default: str = "") -> str:
    value = params.get(key)
    text = str(value).strip() if value is not None else ""
    return text or default


def duration_minutes(duration: Any) -> int:
    """Lower bound of a duration like "8-10" or "5"; defaults to 5 minutes."""
    match = re.search(r"\d+", str(duration or ""))
    if not match:
        return 5
    return max(int(match.group(0)), 1)


def target_word_count(duration: Any) -> int:
    return duration_minutes(duration) * max(int(settings.WORDS_PER_MINUTE), 1)


def _script_prompt(params: Mapping[str, Any]) -> str:
    duration = _text(params, "duration", "5")
    custom = _text(params, "custom_prompt")
    lines = [
        f"Create an extremely retentive script for a {duration}-minute {_text(params, 'video_type', 'YouTube')} "
        f"video about \"{_text(params, 'topic')}\" that keeps viewers watching until the end.",
        "",
        f"TARGET: {_text(params, 'audience', 'general')} | TONE: {_text(params, 'tone', 'engaging')} "
        f"| KEYWORDS: {_text(params, 'keywords', 'N/A')}",
    ]
    if custom:
        lines.append(f"SPECIAL INSTRUCTIONS: {custom}")
    lines.extend([
        "",
        "STRUCTURE:",
        "- HOOK (0-15s): bold statement, surprising statistic or curiosity gap; no introductions.",
        "- INTRO (15-45s): quick credibility, restate the promise, preview what is coming.",
        "- MAIN CONTENT: 3-4 segments with cliffhangers, pattern interrupts every 30-45 seconds,",
        "  open loops resolved later and specific examples.",
        "- REVELATION (around 70%): deliver the main promise with actionable steps.",
        "- CONCLUSION & CTA (final 15%): key takeaways, subscribe call to action, tease the next video.",
        "",
        f"Word count: approximately {target_word_count(duration)} words.",
    ])
    return "\n".join(lines)


def _hooks_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Create 8 highly retentive YouTube hooks for \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | TYPE: {_text(params, 'video_type', 'YouTube')} "
        f"| TONE: {_text(params, 'tone', 'engaging')}",
        "",
        "Use one of each category: shocking revelation, social proof, curiosity gap, pattern interrupt,",
        "personal stakes, specific outcome, story teaser, authority hook.",
        "Each hook must be 10-15 seconds when spoken, create a curiosity gap within 3 seconds and",
        "promise a specific, tangible outcome.",
        "",
        'Format as JSON: [{"type": "Hook Category", "text": "Exact hook text", "psychology": "Why this works"}]',
    ])


def _titles_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Create 10 viral YouTube titles for \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | TYPE: {_text(params, 'video_type', 'YouTube')}",
        "",
        "Each title must be 60 characters or less, promise a specific outcome and create curiosity or",
        "urgency. Use a different proven formula for each: curiosity gap, specific outcome, mistake,",
        "authority, transformation, urgency, controversy, specific number, story hook, problem/solution.",
        "",
        "Format as JSON array of strings.",
    ])


def _outline_prompt(params: Mapping[str, Any]) -> str:
    duration = _text(params, "duration", "5")
    return "\n".join([
        f"Create a detailed outline for a {duration}-minute {_text(params, 'video_type', 'YouTube')} video "
        f"about \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | TONE: {_text(params, 'tone', 'engaging')}",
        "",
        "Include the hook, intro, 3-5 main sections with talking points and timestamps, a revelation",
        "moment and the closing call to action. Use plain text with numbered sections.",
    ])


def _description_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Write an SEO-optimized YouTube description for a video about \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | KEYWORDS: {_text(params, 'keywords', 'N/A')}",
        "",
        "Open with two compelling lines that appear above the fold, follow with a short summary,",
        "placeholder timestamps, a subscribe call to action and 3-5 relevant hashtags.",
    ])


def _tags_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Suggest 15 YouTube tags for a video about \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | KEYWORDS: {_text(params, 'keywords', 'N/A')}",
        "",
        "Mix broad, mid-tail and long-tail search phrases. Format as JSON array of strings.",
    ])


def _thumbnail_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Create 6 thumbnail text options for a YouTube video about \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | TONE: {_text(params, 'tone', 'engaging')}",
        "",
        "Each option must be 2-5 words, readable on a phone screen and create curiosity without",
        "repeating the title. Format as JSON array of strings.",
    ])


def _ctas_prompt(params: Mapping[str, Any]) -> str:
    return "\n".join([
        f"Write 5 calls to action for a YouTube video about \"{_text(params, 'topic')}\".",
        "",
        f"AUDIENCE: {_text(params, 'audience', 'general')} | TONE: {_text(params, 'tone', 'engaging')}",
        "",
        "Cover subscribe, comment, like, watch-next and a lead magnet. Each must feel natural when spoken.",
        'Format as JSON: [{"placement": "Where in the video", "text": "Exact CTA text"}]',
    ])


TEMPLATES: Dict[FeatureType, Callable[[Mapping[str, Any]], str]] = {
    FeatureType.SCRIPT: _script_prompt,
    FeatureType.HOOKS: _hooks_prompt,
    FeatureType.TITLES: _titles_prompt,
    FeatureType.OUTLINE: _outline_prompt,
    FeatureType.DESCRIPTION: _description_prompt,
    FeatureType.TAGS: _tags_prompt,
    FeatureType.THUMBNAIL: _thumbnail_prompt,
    FeatureType.CTAS: _ctas_prompt,
}


def compose_prompt(feature: FeatureType, voice_prefix: str, params: Mapping[str, Any]) -> str:
    body = TEMPLATES[feature](params)
    prefix = (voice_prefix or "").strip()
    return f"{prefix}\n\n{body}" if prefix else body
