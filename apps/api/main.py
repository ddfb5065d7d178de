"""
YouTube Script AI - FastAPI Backend
Main application entry point with health check and API routing.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import async_session_maker, engine, Base
import models  # noqa: F401
from routers import (
    health,
    auth,
    user,
    generate,
    scripts,
    voice_presets,
)
from services.quota_policy import seed_quota_policies
from services.voice_presets import seed_voice_presets


async def _seed_reference_data() -> None:
    async with async_session_maker() as db:
        quota_summary = await seed_quota_policies(db, force_update=settings.QUOTA_SEED_FORCE_UPDATE)
        print(
            "📏 Quota policies: "
            f"inserted={quota_summary['inserted']} updated={quota_summary['updated']} "
            f"unchanged={quota_summary['unchanged']}"
        )
        voice_summary = await seed_voice_presets(db)
        print(f"🎙️ Voice presets: inserted={voice_summary['inserted']} updated={voice_summary['updated']}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting YouTube Script AI API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    if settings.QUOTA_SEED_ON_STARTUP:
        try:
            await _seed_reference_data()
        except Exception as exc:
            print(f"⚠️ Reference data seeding skipped: {exc}")
    print(f"🤖 OpenAI API: {'Configured' if settings.OPENAI_API_KEY else 'Missing'}")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="YouTube Script AI API",
    description="Generate YouTube scripts, hooks and titles within per-plan monthly quotas",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/api/user", tags=["User"])
app.include_router(generate.router, prefix="/api/generate", tags=["Generation"])
app.include_router(scripts.router, prefix="/api/scripts", tags=["Saved Scripts"])
app.include_router(voice_presets.router, prefix="/api/voice-presets", tags=["Voice Presets"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "YouTube Script AI API",
        "version": "0.1.0",
        "status": "running"
    }
