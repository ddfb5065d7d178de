import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from main import app
from models.usage_log import UsageLog
from routers.rate_limit import MemoryRateLimitBackend, RedisRateLimitBackend, window_start_for

FROZEN_NOW = 1_800_000_000


class FrozenClockBackend(MemoryRateLimitBackend):
    """Pins every hit to one instant so a test never straddles a window boundary."""

    async def hit(self, key, window_seconds, now=None):
        return await super().hit(key, window_seconds, now=FROZEN_NOW)


@pytest.fixture
def enable_rate_limits():
    app.state.disable_rate_limits = False
    app.state.rate_limit_backend = FrozenClockBackend()
    yield app.state.rate_limit_backend


def test_windows_align_to_fixed_boundaries():
    assert window_start_for(0, 60) == 0
    assert window_start_for(59.999, 60) == 0
    assert window_start_for(60, 60) == 60
    assert window_start_for(1000, 900) == 900


@pytest.mark.asyncio
async def test_memory_backend_admits_max_then_resets_at_boundary():
    backend = MemoryRateLimitBackend()
    limit = 10
    counts = [(await backend.hit("k", 60, now=120 + i)).count for i in range(limit + 1)]

    assert counts[:limit] == list(range(1, limit + 1))
    assert counts[limit] == limit + 1

    late = await backend.hit("k", 60, now=179.9)
    assert late.count == limit + 2

    fresh = await backend.hit("k", 60, now=180)
    assert fresh.count == 1
    assert fresh.window_start == 180
    assert fresh.reset_at == 240


@pytest.mark.asyncio
async def test_memory_backend_counts_identities_independently():
    backend = MemoryRateLimitBackend()
    for _ in range(5):
        await backend.hit("auth:1.1.1.1", 900, now=10)
    other = await backend.hit("auth:2.2.2.2", 900, now=10)
    same_identity_other_scope = await backend.hit("api:1.1.1.1", 60, now=10)

    assert other.count == 1
    assert same_identity_other_scope.count == 1


@pytest.mark.asyncio
async def test_general_api_scope_rejects_31st_call(api_client, create_user, enable_rate_limits):
    _, headers = await create_user()

    for _ in range(30):
        response = await api_client.get("/api/user/profile", headers=headers)
        assert response.status_code == 200

    response = await api_client.get("/api/user/profile", headers=headers)
    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded for api. Try again later."
    assert int(response.headers["retry-after"]) >= 1


@pytest.mark.asyncio
async def test_generation_scope_rejects_before_quota_and_remote_call(
    api_client, create_user, generator, session_maker, enable_rate_limits
):
    user, headers = await create_user()
    generator.default = '["Title one", "Title two"]'

    statuses = []
    for _ in range(11):
        response = await api_client.post(
            "/api/generate/titles",
            json={"topic": "Budget travel", "audience": "students"},
            headers=headers,
        )
        statuses.append(response.status_code)

    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429
    assert response.json()["detail"] == "Rate limit exceeded for generation. Try again later."
    assert len(generator.calls) == 10

    async with session_maker() as session:
        result = await session.execute(select(func.count(UsageLog.id)).where(UsageLog.user_id == user.id))
        assert result.scalar() == 10


@pytest.mark.asyncio
async def test_auth_scope_allows_five_attempts_per_window(api_client, enable_rate_limits):
    statuses = []
    for _ in range(6):
        response = await api_client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "wrong-password"},
        )
        statuses.append(response.status_code)

    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429


@pytest.mark.asyncio
async def test_redis_outage_falls_back_to_local_counters(api_client, create_user):
    _, headers = await create_user()
    app.state.disable_rate_limits = False
    app.state.rate_limit_backend = RedisRateLimitBackend("redis://127.0.0.1:1")

    response = await api_client.get("/api/user/profile", headers=headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_generation_routes_also_count_against_general_api_scope(
    api_client, create_user, generator, session_maker, enable_rate_limits
):
    user, headers = await create_user()

    for _ in range(30):
        assert (await api_client.get("/api/user/profile", headers=headers)).status_code == 200

    response = await api_client.post("/api/generate/titles", json={"topic": "Budget travel"}, headers=headers)

    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded for api. Try again later."
    assert generator.calls == []
    async with session_maker() as session:
        result = await session.execute(select(func.count(UsageLog.id)).where(UsageLog.user_id == user.id))
        assert result.scalar() == 0
