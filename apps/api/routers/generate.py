"""Content generation router: one metered endpoint per feature type."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.usage_quota import FeatureType
from models.user import User
from routers.auth_scope import get_current_user
from routers.rate_limit import api_rate_limit, generation_rate_limit
from services.generation import STATUS_DENIED, STATUS_FAILED, run_generation
from services.llm import TextGenerator, get_text_generator
from services.quota import DenialKind

router = APIRouter(dependencies=[Depends(api_rate_limit())])

RESPONSE_KEYS: Dict[FeatureType, str] = {
    FeatureType.SCRIPT: "script",
    FeatureType.HOOKS: "hooks",
    FeatureType.TITLES: "titles",
    FeatureType.OUTLINE: "outline",
    FeatureType.DESCRIPTION: "description",
    FeatureType.TAGS: "tags",
    FeatureType.THUMBNAIL: "thumbnail_text",
    FeatureType.CTAS: "call_to_actions",
}

FAILURE_LABELS: Dict[FeatureType, str] = {
    FeatureType.SCRIPT: "Script",
    FeatureType.HOOKS: "Hooks",
    FeatureType.TITLES: "Titles",
    FeatureType.OUTLINE: "Outline",
    FeatureType.DESCRIPTION: "Description",
    FeatureType.TAGS: "Tags",
    FeatureType.THUMBNAIL: "Thumbnail text",
    FeatureType.CTAS: "Call-to-action",
}


class GenerationRequest(BaseModel):
    topic: str = Field(min_length=1, max_length=500)
    audience: Optional[str] = Field(default=None, max_length=100)
    duration: Optional[str] = Field(default=None, max_length=20)
    tone: Optional[str] = Field(default=None, max_length=100)
    video_type: Optional[str] = Field(default=None, max_length=100)
    keywords: Optional[str] = Field(default=None, max_length=500)
    custom_prompt: Optional[str] = Field(default=None, max_length=2000)
    voice_preset: Optional[str] = Field(default=None, max_length=100)


@router.post("/{feature_type}")
async def generate_content(
    feature_type: FeatureType,
    request: GenerationRequest,
    _generation_rate_limit: None = Depends(generation_rate_limit()),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    generator: TextGenerator = Depends(get_text_generator),
):
    """Generate one content type after the user's plan admits it."""
    result = await run_generation(
        db,
        user_id=user.id,
        feature=feature_type,
        params=request.model_dump(exclude_none=True),
        generator=generator,
        default_voice=user.preferred_voice,
    )

    if result.status == STATUS_DENIED:
        decision = result.decision
        if decision.denial_kind == DenialKind.UNAVAILABLE:
            raise HTTPException(status_code=503, detail={"error": decision.reason, "denial_kind": "unavailable"})
        raise HTTPException(
            status_code=429,
            detail={
                "error": decision.reason,
                "denial_kind": decision.denial_kind.value if decision.denial_kind else None,
                "current_usage": decision.current_usage,
                "limit": decision.limit,
            },
        )

    if result.status == STATUS_FAILED:
        raise HTTPException(status_code=500, detail=f"{FAILURE_LABELS[feature_type]} generation failed")

    return {
        RESPONSE_KEYS[feature_type]: result.content,
        "stats": result.stats,
    }
