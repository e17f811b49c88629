"""Trust-progression state machine: STEP 1 → STEP 2 → STEP 3 (terminal).

The machine wraps one slot's ``trust_step`` and ``counters``.  Every
check-and-apply runs under the slot's lock, so two evaluations on the same
slot can never both apply the same upgrade or skip past each other.  No
transition ever lowers the step.
"""

from __future__ import annotations

import logging
import threading

from pydantic import BaseModel

from ambassador.governance.models import (
    AccountStatus,
    PlanTier,
    Slot,
    TrustCounters,
    TrustStep,
)

logger = logging.getLogger(__name__)

_ELIGIBLE_STATUSES = frozenset({AccountStatus.TRUSTED, AccountStatus.NORMAL})


class TrustThresholds(BaseModel):
    """[trust] section — counter thresholds for each upgrade."""

    step_two_published: int = 3
    step_three_published: int = 5
    high_volume_published: int = 7
    min_edit_success: int = 1
    max_risk_corrections: int = 5


class TrustStateMachine:
    """Upgrade checks and monotonic counters for a single slot."""

    def __init__(
        self,
        slot: Slot,
        *,
        thresholds: TrustThresholds | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self._slot = slot
        self._thresholds = thresholds or TrustThresholds()
        self._lock = lock or threading.RLock()

    @property
    def step(self) -> TrustStep:
        return self._slot.trust_step

    @property
    def counters(self) -> TrustCounters:
        with self._lock:
            return self._slot.counters.model_copy()

    def snapshot(self) -> tuple[TrustStep, TrustCounters]:
        """Consistent (step, counters) pair read under the lock."""
        with self._lock:
            return self._slot.trust_step, self._slot.counters.model_copy()

    # ── Transition rules ─────────────────────────────────────────

    def next_step(self, tier: PlanTier | str) -> TrustStep | None:
        """The step the slot would move to now, or None if no upgrade applies."""
        with self._lock:
            return self._eligible_step(PlanTier(tier), self._slot.trust_step, self._slot.counters)

    def _eligible_step(
        self, tier: PlanTier, step: TrustStep, counters: TrustCounters
    ) -> TrustStep | None:
        t = self._thresholds
        published = counters.published_count

        if step == TrustStep.ONE:
            if tier.rank > PlanTier.BASIC.rank and published >= t.step_two_published:
                return TrustStep.TWO
            return None

        if step == TrustStep.TWO:
            high_volume = published >= t.high_volume_published
            plan_ok = tier == PlanTier.ULTRA or (tier == PlanTier.PRO and high_volume)
            if (
                plan_ok
                and published >= t.step_three_published
                and (counters.edit_success_count >= t.min_edit_success or high_volume)
                and counters.risk_correction_count < t.max_risk_corrections
                and counters.account_status in _ELIGIBLE_STATUSES
            ):
                return TrustStep.THREE
            return None

        return None

    def check_and_upgrade(self, tier: PlanTier | str) -> bool:
        """Apply at most one upgrade if the current counters allow it.

        Returns:
            True if the step advanced.
        """
        with self._lock:
            target = self._eligible_step(PlanTier(tier), self._slot.trust_step, self._slot.counters)
            if target is None:
                return False
            return self._promote(target)

    def sync_upgrade(self, published_count: int) -> bool:
        """Idempotent STEP 1 → 2 re-check driven only by the published count.

        Intended for every session load; touches nothing but the step.
        """
        with self._lock:
            if (
                self._slot.trust_step == TrustStep.ONE
                and published_count >= self._thresholds.step_two_published
            ):
                return self._promote(TrustStep.TWO)
            return False

    def _promote(self, target: TrustStep) -> bool:
        current = self._slot.trust_step
        if target <= current:
            return False
        self._slot.trust_step = target
        logger.info("Slot %s trust step %d -> %d", self._slot.slot_id, current, target)
        return True

    # ── Counters ─────────────────────────────────────────────────

    def increment_published(self) -> int:
        with self._lock:
            self._slot.counters.published_count += 1
            return self._slot.counters.published_count

    def increment_edit_success(self) -> int:
        with self._lock:
            self._slot.counters.edit_success_count += 1
            return self._slot.counters.edit_success_count

    def increment_risk_correction(self) -> int:
        with self._lock:
            self._slot.counters.risk_correction_count += 1
            return self._slot.counters.risk_correction_count

    def set_account_status(self, status: AccountStatus | str) -> None:
        """Operator action; never changes the trust step."""
        with self._lock:
            previous = self._slot.counters.account_status
            self._slot.counters.account_status = AccountStatus(status)
        if previous != status:
            logger.info("Slot %s account status %s -> %s", self._slot.slot_id, previous, status)
