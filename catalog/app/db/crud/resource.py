"""Resource CRUD operations."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from catalog.app.db.models import Resource


async def get_resource(session: AsyncSession, resource_id: int) -> Optional[Resource]:
    """Get a resource with its department and owner loaded.

    Returns:
        Resource object if found, None otherwise
    """
    result = await session.execute(
        select(Resource)
        .options(selectinload(Resource.department), selectinload(Resource.owner))
        .where(Resource.id == resource_id)
    )
    return result.scalar_one_or_none()
