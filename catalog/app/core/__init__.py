"""Core utilities for the catalog application."""

from catalog.app.core.cache import (
    CacheBackend,
    InMemoryCache,
    RedisCache,
    build_cache,
)
from catalog.app.core.clock import Clock, FixedClock, SystemClock
from catalog.app.core.config import Settings, settings
from catalog.app.core.logging import get_logger, setup_logging

__all__ = [
    "CacheBackend",
    "InMemoryCache",
    "RedisCache",
    "build_cache",
    "Clock",
    "FixedClock",
    "SystemClock",
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
