"""Cached read path for the product listing.

Pages are cached under ``<prefix><page>`` (``products_page_3``) as the JSON
of a ``ProductPage``. A hit is returned as stored; a miss runs the store
query and caches the result for the configured TTL. Concurrent misses on
the same key may each query the store; the result is deterministic for a
given page, so the last write wins harmlessly.
"""

import math
from typing import List, Optional, Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.app.core.cache import CacheBackend
from catalog.app.core.config import Settings
from catalog.app.core.logging import get_logger
from catalog.app.db.crud import fetch_product_page

logger = get_logger(__name__)


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryRecord(_Record):
    id: int
    name: str


class TagRecord(_Record):
    id: int
    name: str


class ReviewerRecord(_Record):
    id: int
    name: str


class ReviewRecord(_Record):
    id: int
    product_id: int
    rating: int
    comment: Optional[str] = None
    user_id: int
    user: Optional[ReviewerRecord] = None


class ProductRecord(_Record):
    """A product with the associations the listing needs."""

    id: int
    name: str
    price: float
    description: Optional[str] = None
    category_id: Optional[int] = None
    category: Optional[CategoryRecord] = None
    tags: List[TagRecord] = []
    reviews: List[ReviewRecord] = []


class ProductPage(BaseModel):
    """One page of products plus the counts needed to paginate."""

    items: List[ProductRecord]
    current_page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


class ProductStore(Protocol):
    """Persistent source of product pages."""

    async def fetch_page(self, page: int, per_page: int) -> ProductPage: ...


class SqlProductStore:
    """``ProductStore`` backed by the SQLAlchemy session of the request."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def fetch_page(self, page: int, per_page: int) -> ProductPage:
        products, total = await fetch_product_page(self._session, page, per_page)
        return ProductPage(
            items=[ProductRecord.model_validate(p) for p in products],
            current_page=page,
            per_page=per_page,
            total=total,
        )


class ProductCatalog:
    """Serves product pages through the cache.

    Args:
        cache: Cache backend shared by the application
        store: Source queried on a cache miss
        ttl_seconds: Lifetime of a cached page
        key_prefix: Namespace prepended to the page number
        per_page: Page size
    """

    def __init__(
        self,
        cache: CacheBackend,
        store: ProductStore,
        ttl_seconds: int = 600,
        key_prefix: str = "products_page_",
        per_page: int = 10,
    ):
        self.cache = cache
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.per_page = per_page

    @classmethod
    def from_settings(
        cls, config: Settings, cache: CacheBackend, store: ProductStore
    ) -> "ProductCatalog":
        return cls(
            cache=cache,
            store=store,
            ttl_seconds=config.product_cache_ttl_seconds,
            key_prefix=config.product_cache_prefix,
            per_page=config.products_per_page,
        )

    def cache_key(self, page: int) -> str:
        return f"{self.key_prefix}{page}"

    async def get_page(self, page: int) -> ProductPage:
        """Return ``page``, from cache when fresh, else from the store."""
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        key = self.cache_key(page)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Product page cache hit: {key}")
            return ProductPage.model_validate_json(cached)

        logger.debug(f"Product page cache miss: {key}")
        return await self._load_and_store(page)

    async def refresh(self, page: int) -> ProductPage:
        """Recompute ``page`` and overwrite its cache entry."""
        return await self._load_and_store(page)

    async def forget(self, page: int) -> None:
        """Drop the cached entry for ``page``."""
        await self.cache.delete(self.cache_key(page))

    async def _load_and_store(self, page: int) -> ProductPage:
        result = await self.store.fetch_page(page, self.per_page)
        await self.cache.set(
            self.cache_key(page),
            result.model_dump_json().encode(),
            self.ttl_seconds,
        )
        return result
