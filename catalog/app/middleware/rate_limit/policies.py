"""Named rate limit policies.

A policy maps a request (subject and client IP) to a bucket key and a
ceiling for the window.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from catalog.app.core.config import Settings
from catalog.app.services.authorization import Subject

PUBLIC = "public"
AUTHENTICATED = "authenticated"


def ip_key(client_ip: str) -> str:
    """Hash the IP address so raw addresses never reach the store."""
    # 32 hex chars (128 bits) for collision resistance
    return "ip:" + hashlib.sha256(client_ip.encode()).hexdigest()[:32]


class RateLimitPolicy(ABC):
    """Base class for rate limit policies."""

    name: str

    @abstractmethod
    def limit_for(self, subject: Optional[Subject]) -> int:
        """Ceiling of requests per window for ``subject``."""

    @abstractmethod
    def subject_key(self, subject: Optional[Subject], client_ip: str) -> str:
        """Identify the bucket owner."""

    def bucket_key(self, subject: Optional[Subject], client_ip: str) -> str:
        return f"ratelimit:{self.name}:{self.subject_key(subject, client_ip)}"


class PublicPolicy(RateLimitPolicy):
    """Fixed ceiling per caller IP."""

    name = PUBLIC

    def __init__(self, per_minute: int = 60):
        self.per_minute = per_minute

    def limit_for(self, subject: Optional[Subject]) -> int:
        return self.per_minute

    def subject_key(self, subject: Optional[Subject], client_ip: str) -> str:
        return ip_key(client_ip)


class AuthenticatedPolicy(RateLimitPolicy):
    """Per-subject ceiling, higher for premium subjects.

    Falls back to the caller IP when no subject is present.
    """

    name = AUTHENTICATED

    def __init__(self, per_minute: int = 120, premium_per_minute: int = 300):
        self.per_minute = per_minute
        self.premium_per_minute = premium_per_minute

    def limit_for(self, subject: Optional[Subject]) -> int:
        if subject is not None and subject.is_premium:
            return self.premium_per_minute
        return self.per_minute

    def subject_key(self, subject: Optional[Subject], client_ip: str) -> str:
        if subject is not None:
            return f"user:{subject.id}"
        return ip_key(client_ip)


def build_policies(config: Settings) -> dict[str, RateLimitPolicy]:
    """Create the named policies from configuration."""
    policies: list[RateLimitPolicy] = [
        PublicPolicy(per_minute=config.rate_limit_public_per_minute),
        AuthenticatedPolicy(
            per_minute=config.rate_limit_authenticated_per_minute,
            premium_per_minute=config.rate_limit_premium_per_minute,
        ),
    ]
    return {policy.name: policy for policy in policies}
