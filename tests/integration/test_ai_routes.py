"""Integration tests for the /ai endpoints via the ASGI app."""

import asyncio
import json
import threading
import time
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.app.api.routes.ai import get_chat_model, get_rate_limit_middleware
from backend.app.db.engine import get_session
from backend.app.main import app
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.ratelimit import (
    AI_CHAT_BUCKET,
    AI_QUERY_BUCKET,
    InMemoryRateLimiter,
    RedisRateLimiter,
)
from tests.factories import ALICE, CAROL, NOBODY, ORG_A, ORG_B, ROOT

pytestmark = pytest.mark.integration


class ScriptedClient:
    """Model client returning queued responses."""

    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)

    async def complete_json(self, messages: list[dict[str, str]]) -> str:
        return self.responses.pop(0)


class SlowRedis:
    """Blocking redis double that records which thread served each INCR."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.threads: list[int] = []
        self.counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def incr(self, key: str) -> int:
        self.threads.append(threading.get_ident())
        time.sleep(self.delay)
        with self._lock:
            self.counts[key] = self.counts.get(key, 0) + 1
            return self.counts[key]

    def expire(self, key: str, seconds: int) -> bool:
        return True

    def ttl(self, key: str) -> int:
        return 60


def bearer(user_id: str, org_id: str | None = None) -> dict[str, str]:
    token = f"{user_id}:{org_id}" if org_id else user_id
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(seeded_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """Client with sessions bound to the seeded database and generous rate limits."""

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(seeded_engine) as session:
            yield session

    limits = RateLimitMiddleware(
        {
            AI_CHAT_BUCKET: InMemoryRateLimiter(max_requests=100),
            AI_QUERY_BUCKET: InMemoryRateLimiter(max_requests=100),
        },
        create_default_bucket_map(),
    )
    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_rate_limit_middleware] = lambda: limits

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class TestQueryEndpoint:
    @pytest.mark.asyncio
    async def test_list_templates_for_member(self, client: AsyncClient) -> None:
        response = await client.get("/ai/query", headers=bearer(ALICE, ORG_A))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["scope"] == "org"
        assert data["canCompareOrgs"] is False
        assert len(data["templates"]) == 10
        assert "cross_org_spending" not in data["templates"]

    @pytest.mark.asyncio
    async def test_list_templates_for_superadmin(self, client: AsyncClient) -> None:
        response = await client.get("/ai/query", headers=bearer(ROOT))

        data = response.json()["data"]
        assert data["scope"] == "global"
        assert data["canCompareOrgs"] is True
        assert len(data["templates"]) == 12

    @pytest.mark.asyncio
    async def test_query_defaults_org(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ALICE, ORG_A),
            json={"template": "current_price", "params": {"itemId": "item-a-flour"}},
        )

        assert response.status_code == 200
        assert response.json()["data"]["currentPrice"] == 12.0

    @pytest.mark.asyncio
    async def test_query_uses_active_org_for_multi_org_member(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(CAROL, ORG_B),
            json={
                "template": "monthly_expenses",
                "params": {"startDate": "2025-01-01", "endDate": "2025-01-31"},
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["grandTotal"] == 500.0

    @pytest.mark.asyncio
    async def test_cross_tenant_query_is_403(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ALICE, ORG_A),
            json={
                "template": "current_price",
                "params": {"itemId": "item-b-flour", "orgId": ORG_B},
            },
        )

        assert response.status_code == 403
        assert response.json()["detail"] == {
            "code": "cross_tenant",
            "message": "Access denied to organization",
        }

    @pytest.mark.asyncio
    async def test_cross_org_template_is_403_for_member(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ALICE),
            json={
                "template": "cross_org_spending",
                "params": {"startDate": "2025-01-01", "endDate": "2025-01-31"},
            },
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_cross_org_spending_for_superadmin(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ROOT),
            json={
                "template": "cross_org_spending",
                "params": {"startDate": "2025-01-01", "endDate": "2025-01-31"},
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["grandTotal"] == 1610.0

    @pytest.mark.asyncio
    async def test_unknown_template_is_404(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query", headers=bearer(ALICE), json={"template": "nonexistent_template"}
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_invalid_params_are_400(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ALICE),
            json={"template": "monthly_expenses", "params": {"startDate": "yesterday"}},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "bad_request"

    @pytest.mark.asyncio
    async def test_missing_item_is_404_no_data(self, client: AsyncClient) -> None:
        response = await client.post(
            "/ai/query",
            headers=bearer(ALICE),
            json={"template": "current_price", "params": {"itemId": "item-a-yeast"}},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "no_data"


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client: AsyncClient) -> None:
        response = await client.get("/ai/query")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_user_without_membership_is_401(self, client: AsyncClient) -> None:
        response = await client.get("/ai/query", headers=bearer(NOBODY))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_foreign_active_org_is_401(self, client: AsyncClient) -> None:
        response = await client.get("/ai/query", headers=bearer(ALICE, ORG_B))

        assert response.status_code == 401


class TestChatEndpoint:
    @pytest.mark.asyncio
    async def test_chat_runs_proposed_query(self, client: AsyncClient) -> None:
        llm = ScriptedClient(
            json.dumps(
                {
                    "message": "Checking flour.",
                    "query": {"template": "current_price", "params": {"itemId": "item-a-flour"}},
                }
            ),
            json.dumps({"message": "Flour is $12 per bag."}),
        )
        app.dependency_overrides[get_chat_model] = lambda: llm

        response = await client.post(
            "/ai/chat",
            headers=bearer(ALICE, ORG_A),
            json={"messages": [{"role": "user", "content": "How much is flour?"}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Checking flour."
        assert body["data"]["currentPrice"] == 12.0
        assert body["analysis"] == "Flour is $12 per bag."
        assert body["errorKind"] is None

    @pytest.mark.asyncio
    async def test_chat_cannot_reach_other_org(self, client: AsyncClient) -> None:
        llm = ScriptedClient(
            json.dumps(
                {
                    "message": "Checking.",
                    "query": {
                        "template": "current_price",
                        "params": {"itemId": "item-b-flour", "orgId": ORG_B},
                    },
                }
            )
        )
        app.dependency_overrides[get_chat_model] = lambda: llm

        response = await client.post(
            "/ai/chat",
            headers=bearer(ALICE, ORG_A),
            json={"messages": [{"role": "user", "content": "What does Beta pay for flour?"}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["errorKind"] == "cross_tenant"
        assert body["data"] is None

    @pytest.mark.asyncio
    async def test_chat_requires_messages(self, client: AsyncClient) -> None:
        response = await client.post("/ai/chat", headers=bearer(ALICE), json={"messages": []})

        assert response.status_code == 422


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_over_quota_is_429_with_retry_after(self, client: AsyncClient) -> None:
        limits = RateLimitMiddleware(
            {AI_QUERY_BUCKET: InMemoryRateLimiter(max_requests=1)},
            create_default_bucket_map(),
        )
        app.dependency_overrides[get_rate_limit_middleware] = lambda: limits

        first = await client.get("/ai/query", headers=bearer(ALICE))
        second = await client.get("/ai/query", headers=bearer(ALICE))

        assert first.status_code == 200
        assert second.status_code == 429
        assert int(second.headers["Retry-After"]) >= 1
        assert second.json()["detail"]["code"] == "rate_limited"

    @pytest.mark.asyncio
    async def test_blocking_redis_limiter_does_not_stall_event_loop(
        self, client: AsyncClient
    ) -> None:
        slow = SlowRedis(delay=0.3)
        limits = RateLimitMiddleware(
            {AI_QUERY_BUCKET: RedisRateLimiter(slow, max_requests=100)},
            create_default_bucket_map(),
        )
        app.dependency_overrides[get_rate_limit_middleware] = lambda: limits
        loop_thread = threading.get_ident()

        started = time.monotonic()
        responses = await asyncio.gather(
            *(client.get("/ai/query", headers=bearer(ALICE)) for _ in range(4))
        )
        elapsed = time.monotonic() - started

        assert [r.status_code for r in responses] == [200] * 4
        assert len(slow.threads) == 4
        assert loop_thread not in slow.threads
        # Serialized on the loop this would take at least 1.2s
        assert elapsed < 1.0


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_suggestions_by_scope(self, client: AsyncClient) -> None:
        member = await client.get("/ai/suggestions", headers=bearer(ALICE))
        admin = await client.get("/ai/suggestions", headers=bearer(ROOT))

        assert member.status_code == 200
        assert len(member.json()["data"]) == 4
        assert len(admin.json()["data"]) == 6
