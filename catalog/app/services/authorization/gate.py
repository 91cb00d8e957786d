"""Sequential authorization gate.

Runs an ordered list of checks and stops at the first failure. Identity
checks come first so a caller who fails them learns nothing about the
target resource, not even whether it exists.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from catalog.app.core.config import Settings
from catalog.app.core.logging import get_logger
from catalog.app.exceptions import ResourceNotFound, Unauthenticated
from catalog.app.services.authorization.checks import (
    AuthenticatedCheck,
    AuthorizationCheck,
    BusinessHoursCheck,
    CheckResult,
    DepartmentCheck,
    OwnershipCheck,
    RoleCheck,
)
from catalog.app.services.authorization.context import AuthorizationContext, Subject

logger = get_logger(__name__)


class AuthorizationGate:
    """Pipeline runner over an ordered sequence of checks."""

    def __init__(self, checks: Iterable[AuthorizationCheck]):
        self._checks: tuple[AuthorizationCheck, ...] = tuple(checks)

    @property
    def checks(self) -> Sequence[AuthorizationCheck]:
        return self._checks

    def evaluate(self, context: AuthorizationContext) -> CheckResult:
        """Run the checks in order and return the first failure.

        Raises:
            ResourceNotFound: A resource-dependent check was reached but the
                context carries no resource.

        Returns:
            The first failing ``CheckResult``, or a passing result named
            ``"gate"`` when every check passed.
        """
        for check in self._checks:
            if check.requires_resource and context.resource is None:
                raise ResourceNotFound()
            result = check.evaluate(context)
            if not result.passed:
                return result
        return CheckResult.ok("gate")

    def authorize(self, context: AuthorizationContext) -> Subject:
        """Evaluate the gate and return the subject or raise its denial."""
        result = self.evaluate(context)
        if not result.passed:
            subject_id = context.subject.id if context.subject else None
            logger.info(
                f"Authorization denied by '{result.check}' check",
                extra={"subject_id": subject_id, "check": result.check},
            )
            raise result.to_exception()
        if context.subject is None:
            # Gate assembled without an AuthenticatedCheck
            raise Unauthenticated()
        return context.subject


def resource_gate(config: Settings) -> AuthorizationGate:
    """Full gate for department-owned resources."""
    return AuthorizationGate(
        [
            AuthenticatedCheck(),
            RoleCheck(config.allowed_roles),
            DepartmentCheck(),
            OwnershipCheck(),
            BusinessHoursCheck(
                start=config.business_hours_start,
                end=config.business_hours_end,
                end_inclusive=config.business_hours_end_inclusive,
            ),
        ]
    )
