"""Service handles for request handlers.

Every shared service (cache, rate limiter, clock, gates) is created by
``create_app`` and stored on ``app.state``; these dependencies hand them to
route handlers, and tests replace them through ``app.dependency_overrides``.
"""

import re
from typing import Annotated

from fastapi import Depends, Request

from catalog.app.core.cache import CacheBackend
from catalog.app.core.clock import Clock
from catalog.app.core.config import Settings
from catalog.app.db.dependencies import SessionDep
from catalog.app.exceptions import ValidationError
from catalog.app.services.authorization import AuthorizationGate
from catalog.app.services.product_catalog import (
    ProductCatalog,
    ProductStore,
    SqlProductStore,
)

_INTEGER_RE = re.compile(r"[+-]?\d+")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheBackend:
    return request.app.state.cache


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_resource_gate(request: Request) -> AuthorizationGate:
    return request.app.state.resource_gate


SettingsDep = Annotated[Settings, Depends(get_settings)]
CacheDep = Annotated[CacheBackend, Depends(get_cache)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ResourceGateDep = Annotated[AuthorizationGate, Depends(get_resource_gate)]


def get_product_store(session: SessionDep) -> ProductStore:
    return SqlProductStore(session)


def get_product_catalog(
    config: SettingsDep,
    cache: CacheDep,
    store: Annotated[ProductStore, Depends(get_product_store)],
) -> ProductCatalog:
    return ProductCatalog.from_settings(config, cache, store)


CatalogDep = Annotated[ProductCatalog, Depends(get_product_catalog)]


def get_page(request: Request) -> int:
    """Validate the ``page`` query parameter (integer, at least 1, default 1)."""
    raw = request.query_params.get("page")
    if raw is None:
        return 1

    raw = raw.strip()
    if not _INTEGER_RE.fullmatch(raw):
        raise ValidationError({"page": ["The page field must be an integer."]})

    page = int(raw)
    if page < 1:
        raise ValidationError({"page": ["The page field must be at least 1."]})
    return page


PageDep = Annotated[int, Depends(get_page)]

