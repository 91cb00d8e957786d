"""API routers for the catalog service."""

from catalog.app.api.products import public_router as products_router
from catalog.app.api.products import user_router as user_products_router
from catalog.app.api.resources import router as resources_router

__all__ = ["products_router", "user_products_router", "resources_router"]
