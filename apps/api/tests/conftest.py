import uuid
from typing import Callable, List, Optional, Tuple, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, get_db
from main import app
from models.user import User
from routers import rate_limit
from services.llm import get_text_generator
from services.quota_policy import seed_quota_policies
from services.session_token import issue_session_token
from services.voice_presets import seed_voice_presets


class ScriptedGenerator:
    """Stand-in for the remote text generator that replays canned responses."""

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None, default: str = "Generated text"):
        self.responses = list(responses or [])
        self.default = default
        self.calls: List[Tuple[str, int]] = []

    async def generate(self, prompt: str, max_tokens: int) -> str:
        self.calls.append((prompt, max_tokens))
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    previous_backend = getattr(app.state, "rate_limit_backend", None)
    app.state.disable_rate_limits = True
    rate_limit._local_backend.clear()
    yield
    rate_limit._local_backend.clear()
    app.state.disable_rate_limits = previous
    app.state.rate_limit_backend = previous_backend


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "ytscript.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with maker() as session:
        await seed_quota_policies(session)
        await seed_voice_presets(session)

    yield maker
    await engine.dispose()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest_asyncio.fixture
async def api_client(session_maker, generator):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_generator] = lambda: generator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_text_generator, None)


@pytest.fixture
def create_user(session_maker) -> Callable:
    async def _create(access_level: str = "free", preferred_voice: str = "default") -> Tuple[User, dict]:
        user_id = f"user-{uuid.uuid4().hex[:8]}"
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            password_hash="not-a-real-hash",
            access_level=access_level,
            preferred_voice=preferred_voice,
        )
        async with session_maker() as session:
            session.add(user)
            await session.commit()
        token = issue_session_token(user_id, user.email)["token"]
        return user, {"Authorization": f"Bearer {token}"}

    return _create

