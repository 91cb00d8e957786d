"""Database tests against an in-memory SQLite database."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from catalog.app.core.config import Settings
from catalog.app.db.async_session import close_engine, create_engine_for, create_session_maker
from catalog.app.db import crud
from catalog.app.db.base import Base
from catalog.app.db.crud import (
    count_products,
    fetch_product_page,
    get_resource,
    lookup_user_by_hash,
)
from catalog.app.db.init_db import init_database, verify_connection
from catalog.app.middleware.auth import hash_api_key
from catalog.app.services.product_catalog import SqlProductStore

from conftest import SQLITE_URL, seed


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_for(Settings(database_url=SQLITE_URL))
    await init_database(engine)
    yield engine
    await close_engine(engine)


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = create_session_maker(engine)
    async with session_maker() as s:
        await seed(s)
    async with session_maker() as s:
        yield s


def test_models_register_tables():
    tables = Base.metadata.tables.keys()
    for name in ("departments", "users", "categories", "tags", "product_tag", "products", "reviews", "resources"):
        assert name in tables


def test_crud_exports_only_used_queries():
    assert sorted(crud.__all__) == ["count_products", "fetch_product_page", "get_resource", "lookup_user_by_hash"]


@pytest.mark.asyncio
async def test_verify_connection(engine):
    assert await verify_connection(engine) is True


@pytest.mark.asyncio
async def test_init_database_drop_first(engine, session):
    await init_database(engine, drop_first=True)
    async with create_session_maker(engine)() as s:
        assert await count_products(s) == 0


class TestProductQueries:
    @pytest.mark.asyncio
    async def test_count(self, session):
        assert await count_products(session) == 12

    @pytest.mark.asyncio
    async def test_first_page(self, session):
        products, total = await fetch_product_page(session, page=1, per_page=10)

        assert total == 12
        assert [p.id for p in products] == list(range(1, 11))

        first = products[0]
        assert first.category.name == "Books"
        assert [t.name for t in first.tags] == ["new", "sale"]
        assert [r.id for r in first.reviews] == [1, 2]
        assert first.reviews[0].user.name == "Ana"

    @pytest.mark.asyncio
    async def test_second_page(self, session):
        products, total = await fetch_product_page(session, page=2, per_page=10)
        assert [p.id for p in products] == [11, 12]
        assert products[1].category is None

    @pytest.mark.asyncio
    async def test_past_last_page(self, session):
        products, total = await fetch_product_page(session, page=3, per_page=10)
        assert products == []
        assert total == 12

    @pytest.mark.asyncio
    async def test_page_beyond_integer_range(self, session):
        products, total = await fetch_product_page(session, page=99999999999999999999, per_page=10)
        assert products == []
        assert total == 12

    @pytest.mark.asyncio
    async def test_store_builds_records(self, session):
        page = await SqlProductStore(session).fetch_page(1, 10)

        assert page.total == 12
        assert page.last_page == 2
        record = page.items[0]
        assert record.price == 11.0
        assert record.reviews[1].comment == "Good"
        assert "sku" not in record.model_dump()


class TestUserQueries:
    @pytest.mark.asyncio
    async def test_lookup_by_hash(self, session):
        user = await lookup_user_by_hash(session, hash_api_key("ana-key"))
        assert user is not None
        assert user.name == "Ana"

    @pytest.mark.asyncio
    async def test_lookup_unknown_hash(self, session):
        assert await lookup_user_by_hash(session, hash_api_key("nope")) is None


class TestResourceQueries:
    @pytest.mark.asyncio
    async def test_get_resource_with_relations(self, session):
        resource = await get_resource(session, 5)

        assert resource.title == "Quarterly report"
        assert resource.department.name == "Finance"
        assert resource.owner.name == "Ana"

    @pytest.mark.asyncio
    async def test_missing_resource(self, session):
        assert await get_resource(session, 404) is None
