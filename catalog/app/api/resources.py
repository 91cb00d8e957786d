"""Gated resource endpoint."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from catalog.app.db.crud import get_resource
from catalog.app.db.dependencies import SessionDep
from catalog.app.db.models import Resource
from catalog.app.dependencies import ClockDep, ResourceGateDep
from catalog.app.exceptions import ResourceNotFound
from catalog.app.middleware.auth import OptionalSubjectDep
from catalog.app.middleware.rate_limit import throttle_authenticated
from catalog.app.services.authorization import AuthorizationContext, ResourceRef
from catalog.app.services.shaper import ResourceResponse, shape_resource

router = APIRouter(
    prefix="/resources",
    tags=["resources"],
    dependencies=[Depends(throttle_authenticated)],
)


async def load_resource(resource_id: int, session: SessionDep) -> Optional[Resource]:
    return await get_resource(session, resource_id)


@router.get("/{resource_id}", response_model=ResourceResponse)
async def show_resource(
    subject: OptionalSubjectDep,
    resource: Annotated[Optional[Resource], Depends(load_resource)],
    clock: ClockDep,
    gate: ResourceGateDep,
) -> ResourceResponse:
    """Return a resource to its owner, within business hours.

    The gate decides in order: authentication, role, department,
    ownership, business hours.
    """
    context = AuthorizationContext(
        subject=subject,
        resource=ResourceRef.from_resource(resource) if resource else None,
        now=clock.now(),
    )
    gate.authorize(context)

    if resource is None:
        # Only reachable with a gate that has no resource-dependent check
        raise ResourceNotFound()
    return shape_resource(resource)
