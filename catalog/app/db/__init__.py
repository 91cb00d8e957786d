"""Database package for the catalog service.

This package provides:
- Database models (User, Department, Product, Category, Tag, Review, Resource)
- Asynchronous engine and session management
- CRUD operations
- FastAPI dependency injection support
"""

from catalog.app.db.base import Base
from catalog.app.db.models import (
    Category,
    Department,
    Product,
    Resource,
    Review,
    Tag,
    User,
)
from catalog.app.db.async_session import (
    close_engine,
    create_engine_for,
    create_session_maker,
    get_db,
)
from catalog.app.db.dependencies import SessionDep

__all__ = [
    "Base",
    "Category",
    "Department",
    "Product",
    "Resource",
    "Review",
    "Tag",
    "User",
    "close_engine",
    "create_engine_for",
    "create_session_maker",
    "get_db",
    "SessionDep",
]
