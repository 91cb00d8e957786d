"""CRUD operations grouped by model."""

from catalog.app.db.crud.product import count_products, fetch_product_page
from catalog.app.db.crud.resource import get_resource
from catalog.app.db.crud.user import lookup_user_by_hash

__all__ = [
    "count_products",
    "fetch_product_page",
    "get_resource",
    "lookup_user_by_hash",
]
