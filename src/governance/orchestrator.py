"""Governance orchestrator — the two entry points UI surfaces call.

``request_edit`` answers "may this user touch this control?" without side
effects.  ``commit_publish`` runs the daily gate, the compliance filter, the
progression tracker and the trust state machine, in that order, under the
slot's lock.  All mutations are computed on a deep copy of the slot and
copied back onto the registered slot only on success, so any failure leaves
the slot exactly as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from ambassador.compliance import ComplianceFilter, PublishPolicy, RuleSet, Violation, get_rule_set
from ambassador.errors import ComplianceViolation
from ambassador.governance.models import (
    EXHAUSTED,
    AccountStatus,
    ActionStatus,
    Capability,
    Exhausted,
    PermissionVerdict,
    PlanTier,
    Topic,
    TrustStep,
)
from ambassador.governance.permissions import PermissionMatrix
from ambassador.governance.progression import advance_slot, check_daily_gate, current_topic
from ambassador.governance.registry import SlotRegistry
from ambassador.governance.trust import TrustStateMachine, TrustThresholds

logger = logging.getLogger(__name__)

AUTO_CORRECT_NOTICE = "Expressions outside the compliance guidelines were redacted automatically."


def tenant_clock(timezone: str) -> Callable[[], date]:
    """Calendar-date clock in the tenant's local timezone."""
    tz = ZoneInfo(timezone)
    return lambda: datetime.now(tz=tz).date()


class PublishOutcome(BaseModel):
    """What a successful ``commit_publish`` produced."""

    slot_id: str
    content: str
    original: str
    auto_corrected: bool = False
    violations: list[Violation] = Field(default_factory=list)
    notice: str | None = None
    topic: Topic
    step_advanced: bool = False
    trust_step: TrustStep
    published_on: date


class GovernanceOrchestrator:
    """Composes the permission matrix, compliance filter, tracker and trust machine."""

    def __init__(
        self,
        registry: SlotRegistry,
        compliance: ComplianceFilter,
        *,
        matrix: PermissionMatrix | None = None,
        thresholds: TrustThresholds | None = None,
        clock: Callable[[], date] = date.today,
        default_policy: PublishPolicy = PublishPolicy.REJECT_ON_VIOLATION,
    ) -> None:
        self._registry = registry
        self._compliance = compliance
        self._matrix = matrix or PermissionMatrix()
        self._thresholds = thresholds or TrustThresholds()
        self._clock = clock
        self._default_policy = default_policy

    @property
    def registry(self) -> SlotRegistry:
        return self._registry

    @property
    def compliance(self) -> ComplianceFilter:
        return self._compliance

    @property
    def matrix(self) -> PermissionMatrix:
        return self._matrix

    def trust_machine(self, slot_id: str) -> TrustStateMachine:
        """Trust machine bound to the live slot and its lock."""
        return TrustStateMachine(
            self._registry.get(slot_id),
            thresholds=self._thresholds,
            lock=self._registry.lock_for(slot_id),
        )

    # ── Read paths ───────────────────────────────────────────────

    def request_edit(
        self,
        feature: Capability | str,
        tier: PlanTier | str,
        step: TrustStep | int,
    ) -> PermissionVerdict:
        """Grant/deny verdict with reason; performs no mutation."""
        return self._matrix.resolve(feature, tier, step)

    def request_edit_for_slot(
        self, slot_id: str, feature: Capability | str, tier: PlanTier | str
    ) -> PermissionVerdict:
        """``request_edit`` using the slot's recorded trust step."""
        return self._matrix.resolve(feature, tier, self._registry.get(slot_id).trust_step)

    # ── Write paths ──────────────────────────────────────────────

    def begin_action(self, slot_id: str, *, bypass: bool = False) -> ActionStatus:
        """Start today's action: daily gate check, then GENERATING.

        Returns the status the slot had before, for ``abort_action``.
        """
        with self._registry.locked(slot_id) as slot:
            check_daily_gate(slot, self._clock(), bypass=bypass)
            previous = slot.action_status
            slot.action_status = ActionStatus.GENERATING
        return previous

    def abort_action(self, slot_id: str, status: ActionStatus = ActionStatus.IDLE) -> None:
        """Leave GENERATING after a failed draft; other states are untouched."""
        with self._registry.locked(slot_id) as slot:
            if slot.action_status == ActionStatus.GENERATING:
                slot.action_status = status

    def commit_publish(
        self,
        slot_id: str,
        tier: PlanTier | str,
        step: TrustStep | int,
        content: str,
        *,
        policy: PublishPolicy | None = None,
        feature: Capability | str | None = None,
        bypass: bool = False,
    ) -> PublishOutcome:
        """Gate, check, advance and update trust for one publish.

        Raises:
            DailyGateBlocked: The slot already published today (no bypass).
            PermissionDenied: ``feature`` is not unlocked for the caller.
            ComplianceViolation: Content failed under REJECT_ON_VIOLATION.
            SlotExhausted: The plan has no unpublished topic left.
        """
        policy = PublishPolicy(policy or self._default_policy)
        tier = PlanTier(tier)

        with self._registry.locked(slot_id) as live:
            today = self._clock()
            check_daily_gate(live, today, bypass=bypass)

            # A caller's cached step may be stale; never let it exceed the record.
            effective_step = min(TrustStep(step), live.trust_step)
            if feature is not None:
                self._matrix.require(feature, tier, effective_step)

            result = self._compliance.evaluate(content)
            working = live.model_copy(deep=True)
            trust = TrustStateMachine(
                working, thresholds=self._thresholds, lock=self._registry.lock_for(slot_id)
            )

            final = content
            notice: str | None = None
            if not result.passed:
                if policy == PublishPolicy.REJECT_ON_VIOLATION:
                    logger.info(
                        "Slot %s publish rejected: %d violation(s)", slot_id, len(result.violations)
                    )
                    raise ComplianceViolation(result.violations, result.suggestions)
                final = self._compliance.apply_auto_correction(content, result.violations)
                trust.increment_risk_correction()
                notice = AUTO_CORRECT_NOTICE
                logger.info(
                    "Slot %s publish auto-corrected %d violation(s)", slot_id, len(result.violations)
                )

            topic = advance_slot(working, today)
            trust.increment_published()
            advanced = trust.check_and_upgrade(tier)
            working.action_status = ActionStatus.COMPLETED

            self._registry.commit(working)

        return PublishOutcome(
            slot_id=slot_id,
            content=final,
            original=content,
            auto_corrected=notice is not None,
            violations=result.violations,
            notice=notice,
            topic=topic.model_copy(),
            step_advanced=advanced,
            trust_step=working.trust_step,
            published_on=today,
        )

    def record_edit_success(self, slot_id: str, tier: PlanTier | str) -> bool:
        """Count a verified restricted-surface edit and re-check trust.

        Returns:
            True if the trust step advanced.
        """
        with self._registry.lock_for(slot_id):
            trust = self.trust_machine(slot_id)
            trust.increment_edit_success()
            return trust.check_and_upgrade(tier)

    def record_risk_correction(self, slot_id: str) -> int:
        """Count a verified correction made on an edit surface."""
        with self._registry.lock_for(slot_id):
            return self.trust_machine(slot_id).increment_risk_correction()

    def set_account_status(self, slot_id: str, status: AccountStatus | str) -> None:
        with self._registry.lock_for(slot_id):
            self.trust_machine(slot_id).set_account_status(status)

    def sync_session(self, slot_id: str) -> bool:
        """Session-load hook: STEP 1 → 2 sync and daily status refresh."""
        with self._registry.locked(slot_id) as slot:
            upgraded = self.trust_machine(slot_id).sync_upgrade(slot.counters.published_count)
            if slot.last_action_date is not None and slot.last_action_date != self._clock():
                slot.action_status = ActionStatus.IDLE
            return upgraded

    def next_topic(self, slot_id: str) -> Topic | Exhausted:
        with self._registry.locked(slot_id) as slot:
            topic = current_topic(slot)
            return topic if topic is EXHAUSTED else topic.model_copy()

    def set_rule_set(self, rule_set: RuleSet | str) -> int:
        """Swap the process-wide compliance pack; returns the filter version."""
        if isinstance(rule_set, str):
            rule_set = get_rule_set(rule_set)
        return self._compliance.set_rule_set(rule_set)
