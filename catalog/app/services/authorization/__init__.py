"""Sequential request authorization."""

from catalog.app.services.authorization.checks import (
    AuthenticatedCheck,
    AuthorizationCheck,
    BusinessHoursCheck,
    CheckResult,
    DepartmentCheck,
    OwnershipCheck,
    RoleCheck,
)
from catalog.app.services.authorization.context import (
    AuthorizationContext,
    ResourceRef,
    Subject,
)
from catalog.app.services.authorization.gate import (
    AuthorizationGate,
    resource_gate,
)

__all__ = [
    "AuthenticatedCheck",
    "AuthorizationCheck",
    "BusinessHoursCheck",
    "CheckResult",
    "DepartmentCheck",
    "OwnershipCheck",
    "RoleCheck",
    "AuthorizationContext",
    "ResourceRef",
    "Subject",
    "AuthorizationGate",
    "resource_gate",
]
