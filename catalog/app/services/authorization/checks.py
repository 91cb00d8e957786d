"""Authorization checks evaluated in order by the gate.

Each check inspects an ``AuthorizationContext`` and returns a
``CheckResult``. A failing result names the exception the gate raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Iterable

from catalog.app.exceptions import (
    CatalogException,
    DepartmentMismatch,
    InsufficientRole,
    NotOwner,
    OutsideBusinessHours,
    Unauthenticated,
)
from catalog.app.services.authorization.context import AuthorizationContext


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check.

    Attributes:
        passed: ``True`` if the check permits the request.
        check:  Name of the check that produced this result.
        error:  Exception type to raise on failure.
        reason: Message for the caller on failure.
    """

    passed: bool
    check: str
    error: type[CatalogException] | None = None
    reason: str = ""

    @staticmethod
    def ok(check: str) -> CheckResult:
        return CheckResult(passed=True, check=check)

    @staticmethod
    def fail(check: str, error: type[CatalogException], reason: str = "") -> CheckResult:
        return CheckResult(passed=False, check=check, error=error, reason=reason)

    def to_exception(self) -> CatalogException:
        if self.error is None:
            raise ValueError(f"Check '{self.check}' passed; nothing to raise")
        return self.error(self.reason) if self.reason else self.error()


class AuthorizationCheck(ABC):
    """Base class for every gate check.

    Subclasses set ``name`` and implement ``evaluate``. Checks that read
    the target resource set ``requires_resource``; the gate only evaluates
    them once a resource is present.
    """

    name: ClassVar[str] = "check"
    requires_resource: ClassVar[bool] = False

    @abstractmethod
    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class AuthenticatedCheck(AuthorizationCheck):
    name = "authenticated"

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        if context.subject is None:
            return CheckResult.fail(self.name, Unauthenticated)
        return CheckResult.ok(self.name)


class RoleCheck(AuthorizationCheck):
    name = "role"

    def __init__(self, allowed_roles: Iterable[str] = ("admin", "manager", "staff")):
        self.allowed_roles = frozenset(allowed_roles)

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        if context.subject is None or context.subject.role not in self.allowed_roles:
            return CheckResult.fail(self.name, InsufficientRole)
        return CheckResult.ok(self.name)


class DepartmentCheck(AuthorizationCheck):
    name = "department"
    requires_resource = True

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        subject, resource = context.subject, context.resource
        if (
            subject is None
            or resource is None
            or subject.department_id is None
            or subject.department_id != resource.department_id
        ):
            return CheckResult.fail(self.name, DepartmentMismatch)
        return CheckResult.ok(self.name)


class OwnershipCheck(AuthorizationCheck):
    name = "ownership"
    requires_resource = True

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        subject, resource = context.subject, context.resource
        if subject is None or resource is None or subject.id != resource.owner_id:
            return CheckResult.fail(self.name, NotOwner)
        return CheckResult.ok(self.name)


class BusinessHoursCheck(AuthorizationCheck):
    """Allow only when the current hour lies in ``[start, end]``.

    With ``end_inclusive=False`` the interval is ``[start, end)``.
    """

    name = "business_hours"

    def __init__(self, start: int = 9, end: int = 18, end_inclusive: bool = True):
        self.start = start
        self.end = end
        self.end_inclusive = end_inclusive

    def contains(self, hour: int) -> bool:
        if hour < self.start:
            return False
        return hour <= self.end if self.end_inclusive else hour < self.end

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        if not self.contains(context.now.hour):
            return CheckResult.fail(self.name, OutsideBusinessHours)
        return CheckResult.ok(self.name)
