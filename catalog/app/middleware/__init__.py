"""Middleware package for the catalog service."""

from catalog.app.middleware.auth import OptionalSubjectDep, get_optional_subject
from catalog.app.middleware.rate_limit import (
    RateLimiter,
    throttle_authenticated,
    throttle_public,
)
from catalog.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "OptionalSubjectDep",
    "get_optional_subject",
    "RateLimiter",
    "throttle_authenticated",
    "throttle_public",
    "RequestIdMiddleware",
    "get_request_id",
]
