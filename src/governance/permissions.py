"""Two-axis permission matrix: plan tier AND trust step.

Every ``Capability`` has exactly one requirement row.  A missing row is caught
when this module is imported, not at request time.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from ambassador.errors import PermissionDenied, UnknownFeature
from ambassador.governance.models import (
    Capability,
    DenialReason,
    PermissionVerdict,
    PlanTier,
    TrustStep,
    plan_rank,
)

logger = logging.getLogger(__name__)


class Requirement(NamedTuple):
    min_plan: PlanTier
    min_step: TrustStep


REQUIREMENTS: dict[Capability, Requirement] = {
    Capability.EDIT_TITLE_PARTIAL: Requirement(PlanTier.PRO, TrustStep.TWO),
    Capability.EDIT_BODY_PARTIAL: Requirement(PlanTier.PRO, TrustStep.TWO),
    Capability.EDIT_TITLE_FULL: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.EDIT_BODY_FULL: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.EDIT_STRUCTURE: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.INSERT_CTA: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.EDIT_SLUG: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.MANUAL_SCHEDULE: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.INTERNAL_DIRECT_KEYWORD: Requirement(PlanTier.ULTRA, TrustStep.THREE),
    Capability.ACCESS_VIDEO: Requirement(PlanTier.ULTRA, TrustStep.THREE),
}

_missing = set(Capability) - set(REQUIREMENTS)
if _missing:
    raise RuntimeError(f"Capabilities without a requirement row: {sorted(_missing)}")


def _coerce_feature(feature: Capability | str) -> Capability:
    try:
        return Capability(feature)
    except ValueError:
        raise UnknownFeature(feature) from None


class PermissionMatrix:
    """Resolves (feature, tier, step) to a grant or a reasoned denial.

    Stateless apart from the requirement table; safe to share between threads.
    """

    def __init__(self, requirements: dict[Capability, Requirement] | None = None) -> None:
        table = dict(REQUIREMENTS if requirements is None else requirements)
        missing = set(Capability) - set(table)
        if missing:
            raise UnknownFeature(sorted(missing)[0])
        self._requirements = table

    def requirement(self, feature: Capability | str) -> Requirement:
        return self._requirements[_coerce_feature(feature)]

    def resolve(
        self,
        feature: Capability | str,
        tier: PlanTier | str,
        step: TrustStep | int,
    ) -> PermissionVerdict:
        """Check the plan axis first, then the step axis.

        Raises:
            UnknownFeature: If ``feature`` is not a registered capability.
        """
        capability = _coerce_feature(feature)
        req = self._requirements[capability]

        if plan_rank(tier) < req.min_plan.rank:
            return PermissionVerdict(feature=capability, granted=False, reason=DenialReason.PLAN)
        if TrustStep(step) < req.min_step:
            return PermissionVerdict(feature=capability, granted=False, reason=DenialReason.STEP)
        return PermissionVerdict(feature=capability, granted=True)

    def require(
        self,
        feature: Capability | str,
        tier: PlanTier | str,
        step: TrustStep | int,
    ) -> PermissionVerdict:
        """Like ``resolve`` but raises ``PermissionDenied`` on denial."""
        verdict = self.resolve(feature, tier, step)
        if verdict.granted or verdict.reason is None:
            return verdict
        logger.debug("Denied %s for %s/step %s: %s", feature, tier, int(step), verdict.reason)
        raise PermissionDenied(verdict.feature.value, verdict.reason)

    def granted_features(self, tier: PlanTier | str, step: TrustStep | int) -> list[Capability]:
        """All capabilities unlocked for (tier, step)."""
        return [c for c in Capability if self.resolve(c, tier, step).granted]

    def matrix(self) -> list[tuple[Capability, Requirement]]:
        """Requirement rows in declaration order, for display."""
        return [(c, self._requirements[c]) for c in Capability]
