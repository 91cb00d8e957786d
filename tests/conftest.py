"""Shared fixtures for the catalog tests."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.app.core.cache import InMemoryCache
from catalog.app.core.clock import FixedClock
from catalog.app.core.config import Settings
from catalog.app.db.models import Category, Department, Product, Resource, Review, Tag, User
from catalog.app.dependencies import get_product_store
from catalog.app.main import create_app
from catalog.app.middleware.auth import get_optional_subject, hash_api_key
from catalog.app.services.authorization import Subject
from catalog.app.services.product_catalog import (
    CategoryRecord,
    ProductPage,
    ProductRecord,
    ReviewerRecord,
    ReviewRecord,
    TagRecord,
)

SQLITE_URL = "sqlite+aiosqlite:///:memory:"
WORKDAY_NOON = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


class FakeTime:
    """Manually advanced time source for TTL and window tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_product(product_id: int) -> ProductRecord:
    return ProductRecord(
        id=product_id,
        name=f"Product {product_id}",
        price=9.5 + product_id,
        description=f"Description {product_id}",
        category_id=1,
        category=CategoryRecord(id=1, name="Books"),
        tags=[TagRecord(id=1, name="new"), TagRecord(id=2, name="sale")],
        reviews=[
            ReviewRecord(
                id=product_id * 10,
                product_id=product_id,
                rating=5,
                comment="Great",
                user_id=7,
                user=ReviewerRecord(id=7, name="Ana"),
            )
        ],
    )


class CountingStore:
    """In-memory ``ProductStore`` that records every query."""

    def __init__(self, total: int = 25):
        self.products = [make_product(i) for i in range(1, total + 1)]
        self.calls: list[tuple[int, int]] = []

    async def fetch_page(self, page: int, per_page: int) -> ProductPage:
        self.calls.append((page, per_page))
        start = (page - 1) * per_page
        return ProductPage(
            items=self.products[start:start + per_page],
            current_page=page,
            per_page=per_page,
            total=len(self.products),
        )


def make_subject(**overrides) -> Subject:
    values = dict(id=1, name="Ana", role="staff", department_id=10, is_premium=False)
    values.update(overrides)
    return Subject(**values)


def make_resource(**overrides) -> SimpleNamespace:
    values = dict(
        id=5,
        title="Quarterly report",
        status="published",
        department_id=10,
        owner_id=1,
        department=SimpleNamespace(name="Finance"),
        owner=SimpleNamespace(name="Ana"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


async def seed(session: AsyncSession) -> None:
    """Insert one department, user and resource plus twelve products."""
    finance = Department(id=10, name="Finance")
    books = Category(id=1, name="Books")
    new, sale = Tag(id=1, name="new"), Tag(id=2, name="sale")
    ana = User(
        id=1,
        name="Ana",
        email="ana@example.com",
        api_key_hash=hash_api_key("ana-key"),
        role="staff",
        department_id=10,
    )
    session.add_all([finance, books, new, sale, ana])

    for i in range(1, 13):
        session.add(
            Product(
                id=i,
                name=f"Product {i}",
                price=10 + i,
                description=f"Description {i}",
                category_id=1 if i != 12 else None,
                sku=f"SKU-{i}",
                cost_price=5.0,
                tags=[sale, new] if i == 1 else [],
            )
        )
    session.add_all(
        [
            Review(id=2, product_id=1, user_id=1, rating=4, comment="Good"),
            Review(id=1, product_id=1, user_id=1, rating=5, comment="Great"),
            Resource(id=5, title="Quarterly report", status="published", department_id=10, owner_id=1),
        ]
    )
    await session.commit()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(database_url=SQLITE_URL, redis_enabled=False)


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def app(test_settings, store):
    application = create_app(
        test_settings,
        cache=InMemoryCache(),
        clock=FixedClock(WORKDAY_NOON),
    )
    application.dependency_overrides[get_product_store] = lambda: store
    application.dependency_overrides[get_optional_subject] = lambda: None
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def set_subject(app, subject) -> None:
    """Make every request on ``app`` resolve to ``subject``."""
    app.dependency_overrides[get_optional_subject] = lambda: subject
