"""Product listing endpoints."""

from fastapi import APIRouter, Depends

from catalog.app.dependencies import CatalogDep, PageDep
from catalog.app.middleware.rate_limit import throttle_authenticated, throttle_public
from catalog.app.services.shaper import ProductListResponse, shape_page

public_router = APIRouter(tags=["products"], dependencies=[Depends(throttle_public)])
user_router = APIRouter(
    prefix="/user",
    tags=["products"],
    dependencies=[Depends(throttle_authenticated)],
)


@public_router.get("/products", response_model=ProductListResponse)
async def list_products(page: PageDep, catalog: CatalogDep) -> ProductListResponse:
    """List products, ten per page, served from cache when fresh."""
    return shape_page(await catalog.get_page(page))


@user_router.get("/products", response_model=ProductListResponse)
async def list_products_for_user(page: PageDep, catalog: CatalogDep) -> ProductListResponse:
    """Same listing under the ``authenticated`` policy.

    Signed-in callers are counted per subject (with the premium ceiling
    when flagged); anonymous callers fall back to their IP bucket.
    """
    return shape_page(await catalog.get_page(page))
