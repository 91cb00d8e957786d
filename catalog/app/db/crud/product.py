"""Product CRUD operations."""
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import load_only, selectinload

from catalog.app.db.models import Category, Product, Review, Tag, User


async def count_products(session: AsyncSession) -> int:
    """Return the total number of products."""
    total = await session.scalar(select(func.count()).select_from(Product))
    return total or 0


async def fetch_product_page(
    session: AsyncSession,
    page: int,
    per_page: int,
) -> Tuple[List[Product], int]:
    """Fetch one page of products with their listing associations loaded.

    Only the columns the listing needs are selected: base product fields,
    category ``id/name``, tag ``id/name``, review ``id/product_id/rating/
    comment/user_id`` and reviewer ``id/name``.

    Args:
        session: Database session
        page: 1-based page number
        per_page: Page size

    Returns:
        Tuple of (products on the page, total product count). A page past
        the end yields an empty list.
    """
    total = await count_products(session)

    offset = (page - 1) * per_page
    if offset >= total:
        # Arbitrarily large pages never reach the driver's integer range
        return [], total

    stmt = (
        select(Product)
        .options(
            load_only(
                Product.id,
                Product.name,
                Product.price,
                Product.description,
                Product.category_id,
            ),
            selectinload(Product.category).load_only(Category.id, Category.name),
            selectinload(Product.tags).load_only(Tag.id, Tag.name),
            selectinload(Product.reviews).options(
                load_only(
                    Review.id,
                    Review.product_id,
                    Review.rating,
                    Review.comment,
                    Review.user_id,
                ),
                selectinload(Review.user).load_only(User.id, User.name),
            ),
        )
        .order_by(Product.id)
        .offset(offset)
        .limit(per_page)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
