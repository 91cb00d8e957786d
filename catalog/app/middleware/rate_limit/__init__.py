"""Rate limiting for the catalog routes.

Each route group declares its named policy through a FastAPI dependency
(``throttle_public`` / ``throttle_authenticated``). The ``RateLimiter`` that
evaluates them is built once per application and kept on ``app.state``.
"""

from typing import Mapping, Optional

from fastapi import Request, Response

from catalog.app.core.config import Settings
from catalog.app.core.logging import get_log_context, get_logger
from catalog.app.exceptions import RateLimited
from catalog.app.middleware.auth import OptionalSubjectDep
from catalog.app.middleware.rate_limit.backends import (
    InMemoryRateLimiter,
    RateLimitBackend,
    RedisRateLimiter,
)
from catalog.app.middleware.rate_limit.models import RateLimitEntry, RateLimitResult
from catalog.app.middleware.rate_limit.policies import (
    AUTHENTICATED,
    PUBLIC,
    AuthenticatedPolicy,
    PublicPolicy,
    RateLimitPolicy,
    build_policies,
)
from catalog.app.services.authorization import Subject

logger = get_logger(__name__)

__all__ = [
    "RateLimitResult",
    "RateLimitEntry",
    "RateLimitBackend",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "RateLimitPolicy",
    "PublicPolicy",
    "AuthenticatedPolicy",
    "PUBLIC",
    "AUTHENTICATED",
    "RateLimiter",
    "build_rate_limiter",
    "client_ip",
    "throttle_public",
    "throttle_authenticated",
]


class RateLimiter:
    """Evaluates named policies against a storage backend."""

    def __init__(
        self,
        backend: RateLimitBackend,
        policies: Mapping[str, RateLimitPolicy],
    ):
        self.backend = backend
        self.policies = dict(policies)

    async def hit(
        self,
        policy_name: str,
        subject: Optional[Subject],
        client_ip: str,
    ) -> RateLimitResult:
        """Count one request under ``policy_name``.

        Raises:
            KeyError: Unknown policy name.
            RateLimited: The caller exceeded the policy ceiling.
        """
        policy = self.policies[policy_name]
        key = policy.bucket_key(subject, client_ip)
        result = await self.backend.is_allowed(key, policy.limit_for(subject))

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra=get_log_context(
                    policy=policy_name,
                    subject_id=str(subject.id) if subject else None,
                    limit=result.limit,
                ),
            )
            raise RateLimited(
                policy=policy_name,
                limit=result.limit,
                retry_after=result.retry_after or self.backend.window_seconds,
                reset_time=result.reset_time,
            )
        return result

    async def close(self) -> None:
        await self.backend.close()


def build_rate_limiter(config: Settings) -> RateLimiter:
    """Create the limiter with the backend selected by configuration."""
    backend: RateLimitBackend
    if config.redis_enabled:
        backend = RedisRateLimiter(
            redis_url=config.redis_url,
            window_seconds=config.rate_limit_window_seconds,
        )
        logger.info("Using Redis rate limiter backend")
    else:
        backend = InMemoryRateLimiter(
            window_seconds=config.rate_limit_window_seconds,
            max_entries=config.rate_limit_max_entries,
        )
        logger.debug("Using in-memory rate limiter backend")
    return RateLimiter(backend, build_policies(config))


def client_ip(request: Request) -> str:
    """Caller IP: first ``X-Forwarded-For`` hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def _throttle(
    request: Request,
    response: Response,
    policy_name: str,
    subject: Optional[Subject],
) -> RateLimitResult:
    limiter: RateLimiter = request.app.state.rate_limiter
    result = await limiter.hit(policy_name, subject, client_ip(request))
    response.headers.update(result.headers())
    # Error handlers build fresh responses and copy these back
    request.state.rate_limit = result
    return result


async def throttle_public(request: Request, response: Response) -> RateLimitResult:
    """Dependency applying the ``public`` policy (keyed by IP)."""
    return await _throttle(request, response, PUBLIC, None)


async def throttle_authenticated(
    request: Request,
    response: Response,
    subject: OptionalSubjectDep,
) -> RateLimitResult:
    """Dependency applying the ``authenticated`` policy (keyed by subject)."""
    return await _throttle(request, response, AUTHENTICATED, subject)
