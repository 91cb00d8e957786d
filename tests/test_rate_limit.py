"""Tests for rate limiting backends, policies and the limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from catalog.app.core.config import Settings
from catalog.app.exceptions import RateLimited
from catalog.app.middleware.rate_limit import (
    AUTHENTICATED,
    PUBLIC,
    AuthenticatedPolicy,
    InMemoryRateLimiter,
    PublicPolicy,
    RateLimiter,
    RedisRateLimiter,
    build_rate_limiter,
)
from catalog.app.middleware.rate_limit.policies import build_policies, ip_key

from conftest import FakeTime, make_subject


class TestInMemoryRateLimiter:
    """Tests for the in-memory fixed window limiter."""

    @pytest.fixture
    def clock(self):
        return FakeTime()

    @pytest.fixture
    def limiter(self, clock):
        return InMemoryRateLimiter(window_seconds=60, clock=clock)

    @pytest.mark.asyncio
    async def test_allows_requests_under_limit(self, limiter):
        result = await limiter.is_allowed("test_key", limit=10)
        assert result.allowed is True
        assert result.remaining == 9
        assert result.limit == 10

    @pytest.mark.asyncio
    async def test_blocks_over_limit(self, limiter):
        for _ in range(10):
            assert (await limiter.is_allowed("test_key", limit=10)).allowed

        result = await limiter.is_allowed("test_key", limit=10)
        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after == 60

    @pytest.mark.asyncio
    async def test_window_resets(self, limiter, clock):
        for _ in range(3):
            await limiter.is_allowed("test_key", limit=3)
        assert not (await limiter.is_allowed("test_key", limit=3)).allowed

        clock.advance(45)
        blocked = await limiter.is_allowed("test_key", limit=3)
        assert blocked.allowed is False
        assert blocked.retry_after == 15

        clock.advance(15)
        assert (await limiter.is_allowed("test_key", limit=3)).allowed

    @pytest.mark.asyncio
    async def test_burst_across_window_boundary(self, limiter, clock):
        """A fixed window admits up to twice the limit around its reset."""
        assert (await limiter.is_allowed("test_key", limit=3)).allowed
        clock.advance(59)
        for _ in range(2):
            assert (await limiter.is_allowed("test_key", limit=3)).allowed

        clock.advance(1)
        for _ in range(3):
            assert (await limiter.is_allowed("test_key", limit=3)).allowed
        assert not (await limiter.is_allowed("test_key", limit=3)).allowed


    @pytest.mark.asyncio
    async def test_different_keys_independent(self, limiter):
        for _ in range(2):
            await limiter.is_allowed("key1", limit=2)
        assert not (await limiter.is_allowed("key1", limit=2)).allowed
        assert (await limiter.is_allowed("key2", limit=2)).allowed

    @pytest.mark.asyncio
    async def test_lru_eviction_bounds_table(self, clock):
        limiter = InMemoryRateLimiter(window_seconds=60, max_entries=10, clock=clock)
        for i in range(25):
            await limiter.is_allowed(f"key{i}", limit=5)
        assert len(limiter._storage) <= 10
        assert "key24" in limiter._storage

    @pytest.mark.asyncio
    async def test_cleanup_removes_expired_windows(self, limiter, clock):
        await limiter.is_allowed("old", limit=5)
        clock.advance(61)
        await limiter.is_allowed("fresh", limit=5)
        await limiter.cleanup()
        assert list(limiter._storage) == ["fresh"]


class TestRedisRateLimiter:
    """Tests for the Redis limiter against a mocked pipeline."""

    @staticmethod
    def _client(count, ttl=42):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[count, True, ttl])
        client = MagicMock()
        client.pipeline.return_value = pipe
        return client, pipe

    @pytest.mark.asyncio
    async def test_allows_under_limit(self):
        client, pipe = self._client(count=1)
        limiter = RedisRateLimiter(redis_client=client, window_seconds=60)

        result = await limiter.is_allowed("ratelimit:public:ip:abc", limit=60)

        assert result.allowed is True
        assert result.remaining == 59
        pipe.incr.assert_called_once_with("ratelimit:public:ip:abc")
        pipe.expire.assert_called_once_with("ratelimit:public:ip:abc", 60, nx=True)

    @pytest.mark.asyncio
    async def test_blocks_over_limit(self):
        client, _ = self._client(count=61, ttl=42)
        limiter = RedisRateLimiter(redis_client=client, window_seconds=60)

        result = await limiter.is_allowed("k", limit=60)

        assert result.allowed is False
        assert result.retry_after == 42

    @pytest.mark.asyncio
    async def test_redis_errors_propagate(self):
        client = MagicMock()
        client.pipeline.side_effect = redis.ConnectionError("down")
        limiter = RedisRateLimiter(redis_client=client)

        with pytest.raises(redis.ConnectionError):
            await limiter.is_allowed("k", limit=60)


class TestPolicies:
    def test_public_policy_keys_by_ip(self):
        policy = PublicPolicy(per_minute=60)
        subject = make_subject(id=3)
        assert policy.limit_for(subject) == 60
        assert policy.bucket_key(subject, "10.0.0.1") == f"ratelimit:public:{ip_key('10.0.0.1')}"

    def test_ip_is_hashed(self):
        assert "10.0.0.1" not in ip_key("10.0.0.1")

    def test_authenticated_policy_limits(self):
        policy = AuthenticatedPolicy(per_minute=120, premium_per_minute=300)
        assert policy.limit_for(make_subject(is_premium=False)) == 120
        assert policy.limit_for(make_subject(is_premium=True)) == 300
        assert policy.limit_for(None) == 120

    def test_authenticated_policy_keys(self):
        policy = AuthenticatedPolicy()
        assert policy.bucket_key(make_subject(id=9), "10.0.0.1") == "ratelimit:authenticated:user:9"
        assert policy.bucket_key(None, "10.0.0.1") == f"ratelimit:authenticated:{ip_key('10.0.0.1')}"

    def test_build_policies_from_settings(self):
        policies = build_policies(
            Settings(
                rate_limit_public_per_minute=5,
                rate_limit_authenticated_per_minute=7,
                rate_limit_premium_per_minute=11,
            )
        )
        assert policies[PUBLIC].limit_for(None) == 5
        assert policies[AUTHENTICATED].limit_for(make_subject()) == 7
        assert policies[AUTHENTICATED].limit_for(make_subject(is_premium=True)) == 11


class TestRateLimiter:
    @pytest.fixture
    def limiter(self):
        return RateLimiter(
            InMemoryRateLimiter(window_seconds=60, clock=FakeTime()),
            build_policies(Settings()),
        )

    @pytest.mark.asyncio
    async def test_public_allows_60_then_rejects(self, limiter):
        for _ in range(60):
            await limiter.hit(PUBLIC, None, "10.0.0.1")

        with pytest.raises(RateLimited) as exc_info:
            await limiter.hit(PUBLIC, None, "10.0.0.1")
        assert exc_info.value.status_code == 429
        assert exc_info.value.limit == 60
        assert exc_info.value.message == "Too many requests. Please try again later."

    @pytest.mark.asyncio
    async def test_public_buckets_are_per_ip(self, limiter):
        for _ in range(60):
            await limiter.hit(PUBLIC, None, "10.0.0.1")
        result = await limiter.hit(PUBLIC, None, "10.0.0.2")
        assert result.allowed

    @pytest.mark.asyncio
    async def test_standard_subject_capped_at_120(self, limiter):
        subject = make_subject(id=1, is_premium=False)
        for _ in range(120):
            await limiter.hit(AUTHENTICATED, subject, "10.0.0.1")
        with pytest.raises(RateLimited):
            await limiter.hit(AUTHENTICATED, subject, "10.0.0.1")

    @pytest.mark.asyncio
    async def test_premium_subject_allowed_300(self, limiter):
        subject = make_subject(id=2, is_premium=True)
        for _ in range(300):
            await limiter.hit(AUTHENTICATED, subject, "10.0.0.1")
        with pytest.raises(RateLimited):
            await limiter.hit(AUTHENTICATED, subject, "10.0.0.1")

    @pytest.mark.asyncio
    async def test_unknown_policy(self, limiter):
        with pytest.raises(KeyError):
            await limiter.hit("nope", None, "10.0.0.1")


class TestBuildRateLimiter:
    def test_uses_in_memory_by_default(self):
        limiter = build_rate_limiter(Settings(redis_enabled=False))
        assert isinstance(limiter.backend, InMemoryRateLimiter)

    def test_uses_redis_when_enabled(self):
        limiter = build_rate_limiter(Settings(redis_enabled=True))
        assert isinstance(limiter.backend, RedisRateLimiter)
        assert limiter.backend.window_seconds == 60
