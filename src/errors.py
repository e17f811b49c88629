"""Governance error taxonomy.

Expected outcomes (denials, violations, the daily gate) are raised as typed
exceptions so callers can explain them to the user.  ``UnknownFeature`` is a
programmer error and is never meant to be caught by UI code.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ambassador.compliance.models import Violation
    from ambassador.governance.models import DenialReason


class GovernanceError(Exception):
    """Base error for the governance engine."""


class PermissionDenied(GovernanceError):
    """The caller's plan tier or trust step does not unlock a capability."""

    def __init__(self, feature: str, reason: DenialReason) -> None:
        self.feature = feature
        self.reason = reason
        super().__init__(f"{feature} denied: {reason.value} requirement not met")


class ComplianceViolation(GovernanceError):
    """Content failed the compliance rule set under REJECT_ON_VIOLATION."""

    def __init__(self, violations: list[Violation], suggestions: list[str]) -> None:
        self.violations = list(violations)
        self.suggestions = list(suggestions)
        super().__init__(f"{len(self.violations)} compliance violation(s)")


class DailyGateBlocked(GovernanceError):
    """The slot already completed its action for today."""

    def __init__(self, slot_id: str, last_action_date: date | None) -> None:
        self.slot_id = slot_id
        self.last_action_date = last_action_date
        super().__init__(f"Slot {slot_id} already acted on {last_action_date}")


class SlotExhausted(GovernanceError):
    """Every topic in the slot's plan has been published."""

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} has no unpublished topics; regenerate the plan")


class SlotNotFound(GovernanceError, KeyError):
    """No slot is registered under the given id."""

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(slot_id)

    def __str__(self) -> str:
        return f"Unknown slot: {self.slot_id}"


class SlotLimitReached(GovernanceError):
    """The tenant's plan tier does not allow another slot."""

    def __init__(self, tier: str, limit: int) -> None:
        self.tier = tier
        self.limit = limit
        super().__init__(f"{tier} plan allows at most {limit} slot(s)")


class UnknownFeature(GovernanceError, KeyError):
    """A feature key has no registered capability requirement."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Unregistered capability: {self.key!r}"


class ConcurrentMutationConflict(GovernanceError):
    """A tenant record was written by someone else since it was read."""

    def __init__(self, tenant_id: str, expected: int, actual: int) -> None:
        self.tenant_id = tenant_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Tenant {tenant_id} revision conflict: expected {expected}, found {actual}"
        )
