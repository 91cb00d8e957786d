"""Values that flow through the authorization gate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from catalog.app.db.models import Resource, User


@dataclass(frozen=True)
class Subject:
    """The authenticated caller, detached from any database session."""

    id: int
    name: str
    role: str
    department_id: Optional[int] = None
    is_premium: bool = False

    @classmethod
    def from_user(cls, user: User) -> Subject:
        return cls(
            id=user.id,
            name=user.name,
            role=user.role,
            department_id=user.department_id,
            is_premium=bool(user.is_premium),
        )


@dataclass(frozen=True)
class ResourceRef:
    """The parts of a target resource that authorization decisions read."""

    id: int
    department_id: int
    owner_id: int

    @classmethod
    def from_resource(cls, resource: Resource) -> ResourceRef:
        return cls(
            id=resource.id,
            department_id=resource.department_id,
            owner_id=resource.owner_id,
        )


@dataclass(frozen=True)
class AuthorizationContext:
    """Per-request input to the gate. Built fresh for every request.

    Attributes:
        subject:  Authenticated caller, or ``None`` when unauthenticated.
        resource: Target resource, or ``None`` when it does not exist or
                  the route has no target.
        now:      Current time in the business timezone.
    """

    subject: Optional[Subject]
    resource: Optional[ResourceRef]
    now: datetime
