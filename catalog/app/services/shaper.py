"""Response shaping for the public API.

Internal records are never serialized directly; these models list every
field that crosses the API boundary.
"""

from typing import List, Optional

from pydantic import BaseModel

from catalog.app.db.models import Resource
from catalog.app.services.product_catalog import ProductPage, ProductRecord


class ReviewSummary(BaseModel):
    rating: int
    comment: Optional[str]
    user: Optional[str]


class ProductResource(BaseModel):
    id: int
    name: str
    price: float
    description: Optional[str]
    category: Optional[str]
    tags: List[str]
    reviews: List[ReviewSummary]


class Pagination(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int


class ProductListResponse(BaseModel):
    success: bool = True
    data: List[ProductResource]
    pagination: Pagination


class ResourceDetail(BaseModel):
    id: int
    title: str
    status: str
    department: Optional[str]
    owner: Optional[str]


class ResourceResponse(BaseModel):
    success: bool = True
    data: ResourceDetail


def shape_product(record: ProductRecord) -> ProductResource:
    return ProductResource(
        id=record.id,
        name=record.name,
        price=record.price,
        description=record.description,
        category=record.category.name if record.category else None,
        tags=[tag.name for tag in record.tags],
        reviews=[
            ReviewSummary(
                rating=review.rating,
                comment=review.comment,
                user=review.user.name if review.user else None,
            )
            for review in record.reviews
        ],
    )


def shape_page(page: ProductPage) -> ProductListResponse:
    """Build the ``{success, data, pagination}`` listing body."""
    return ProductListResponse(
        data=[shape_product(record) for record in page.items],
        pagination=Pagination(
            current_page=page.current_page,
            last_page=page.last_page,
            per_page=page.per_page,
            total=page.total,
        ),
    )


def shape_resource(resource: Resource) -> ResourceResponse:
    """Shape a resource whose department and owner are loaded."""
    return ResourceResponse(
        data=ResourceDetail(
            id=resource.id,
            title=resource.title,
            status=resource.status,
            department=resource.department.name if resource.department else None,
            owner=resource.owner.name if resource.owner else None,
        )
    )
