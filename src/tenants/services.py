"""Tenant service — wires persisted state into the governance engine.

Loads a tenant's record, builds a slot registry, compliance filter and
orchestrator from it, and writes the record back after every verified
outcome.  Slot lifecycle (creation limits, cascading deletion) lives here
because it spans the governance record and the content store.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import UTC, date, datetime

from ambassador.compliance import ComplianceFilter, PublishPolicy, get_rule_set
from ambassador.config import AmbassadorConfig
from ambassador.content import ContentRecord, ContentStatus, ContentStore, EditLogEntry
from ambassador.errors import ComplianceViolation, SlotExhausted, SlotLimitReached
from ambassador.governance import (
    EXHAUSTED,
    Capability,
    ExhaustionPolicy,
    GovernanceOrchestrator,
    PlanTier,
    PublishOutcome,
    Slot,
    SlotProgress,
    SlotProgressionTracker,
    SlotRegistry,
    Topic,
    TopicCluster,
    tenant_clock,
)
from ambassador.tenants.interfaces import Generator, Session, TenantStore
from ambassador.tenants.models import TenantRecord
from ambassador.tenants.store import JsonTenantStore

logger = logging.getLogger(__name__)


class TenantService:
    """One tenant's governance engine plus its persistence."""

    def __init__(
        self,
        tenant_id: str,
        store: TenantStore,
        content: ContentStore,
        config: AmbassadorConfig | None = None,
        *,
        clock: Callable[[], date] | None = None,
        compliance: ComplianceFilter | None = None,
    ) -> None:
        self._config = config or AmbassadorConfig()
        self._store = store
        self._content = content
        self._lock = threading.RLock()

        record = store.get(tenant_id)
        if record is None:
            record = TenantRecord(
                tenant_id=tenant_id,
                plan_tier=self._config.tenant.default_tier,
                rule_set=self._config.compliance.rule_set,
            )
        self._record = record

        self._clock = clock or tenant_clock(self._config.tenant.timezone)
        self._registry = SlotRegistry(record.slots)
        self._compliance = compliance or ComplianceFilter(get_rule_set(record.rule_set))
        self._orchestrator = GovernanceOrchestrator(
            self._registry,
            self._compliance,
            thresholds=self._config.trust,
            clock=self._clock,
            default_policy=self._config.compliance.default_policy,
        )
        self._tracker = SlotProgressionTracker(self._registry, clock=self._clock)

    @classmethod
    def open(
        cls,
        tenant_id: str,
        config: AmbassadorConfig,
        *,
        clock: Callable[[], date] | None = None,
    ) -> TenantService:
        """Open a tenant backed by the JSON stores under ``config.store``."""
        store = JsonTenantStore(config.store_path)
        content = ContentStore(store.tenant_dir(tenant_id))
        return cls(tenant_id, store, content, config, clock=clock)

    # ── Accessors ────────────────────────────────────────────────

    @property
    def record(self) -> TenantRecord:
        return self._record

    @property
    def orchestrator(self) -> GovernanceOrchestrator:
        return self._orchestrator

    @property
    def tracker(self) -> SlotProgressionTracker:
        return self._tracker

    @property
    def content(self) -> ContentStore:
        return self._content

    def slot(self, slot_id: str) -> Slot:
        return self._registry.get(slot_id)

    def slots(self) -> list[Slot]:
        return self._registry.slots()

    def save(self) -> TenantRecord:
        with self._lock:
            self._record.slots = self._registry.slots()
            self._record = self._store.put(self._record)
            return self._record

    # ── Slot lifecycle ───────────────────────────────────────────

    def set_plan_tier(self, tier: PlanTier | str) -> None:
        """Billing change; a downgrade never touches any slot's trust step."""
        with self._lock:
            self._record.plan_tier = PlanTier(tier)
            self.save()

    def create_slot(
        self,
        name: str,
        *,
        persona: str = "",
        exhaustion_policy: ExhaustionPolicy = ExhaustionPolicy.WRAP,
    ) -> Slot:
        """Onboard a new channel with an empty plan.

        Raises:
            SlotLimitReached: The tenant's plan tier has no free slot.
        """
        with self._lock:
            tier = self._record.plan_tier
            limit = self._config.slots.limit_for(tier)
            if len(self._registry) >= limit:
                raise SlotLimitReached(tier.value, limit)

            slot = Slot(
                slot_id=f"slot-{uuid.uuid4().hex[:12]}",
                name=name,
                persona=persona,
                exhaustion_policy=exhaustion_policy,
            )
            self._registry.add(slot)
            if self._record.active_slot_id is None:
                self._record.active_slot_id = slot.slot_id
            self.save()
        logger.info("Tenant %s created slot %s (%s)", self._record.tenant_id, slot.slot_id, name)
        return slot

    def delete_slot(self, slot_id: str, *, confirm: bool = False) -> int:
        """Destroy a slot and purge its content records.

        Returns:
            Number of content records purged.
        """
        if not confirm:
            raise ValueError(f"Deleting slot {slot_id} requires confirm=True")
        with self._lock:
            self._registry.remove(slot_id)
            purged = self._content.purge_slot(slot_id)
            if self._record.active_slot_id == slot_id:
                remaining = self._registry.slots()
                self._record.active_slot_id = remaining[0].slot_id if remaining else None
            self.save()
        return purged

    def load_plan(self, slot_id: str, clusters: list[TopicCluster]) -> None:
        self._tracker.load_plan(slot_id, clusters)
        self.save()

    def reset(self, slot_id: str, *, confirm: bool = False) -> None:
        self._tracker.reset(slot_id, confirm=confirm)
        self.save()

    def progress(self, slot_id: str) -> SlotProgress:
        return self._tracker.progress(slot_id)

    # ── Daily flow ───────────────────────────────────────────────

    def sync_session(self, slot_id: str) -> bool:
        upgraded = self._orchestrator.sync_session(slot_id)
        self.save()
        return upgraded

    def draft_next(self, slot_id: str, generator: Generator, session: Session) -> tuple[Topic, str]:
        """Start today's action and generate text for the next topic."""
        topic = self._tracker.get_next_topic(slot_id)
        if topic is EXHAUSTED:
            raise SlotExhausted(slot_id)
        previous = self._orchestrator.begin_action(slot_id, bypass=session.has_bypass)
        try:
            text = generator.generate(topic, self.slot(slot_id).persona)
        except Exception:
            logger.warning("Draft for slot %s failed; restoring %s", slot_id, previous)
            self._orchestrator.abort_action(slot_id, previous)
            raise
        self.save()
        return topic, text

    def publish(
        self,
        slot_id: str,
        session: Session,
        content: str,
        *,
        title: str | None = None,
        policy: PublishPolicy | None = None,
        feature: Capability | None = None,
    ) -> PublishOutcome:
        """Commit a publish and record the resulting article."""
        with self._lock:
            outcome = self._orchestrator.commit_publish(
                slot_id,
                session.plan_tier,
                self.slot(slot_id).trust_step,
                content,
                policy=policy,
                feature=feature,
                bypass=session.has_bypass,
            )
            now = datetime.now(tz=UTC)
            self._content.upsert(
                ContentRecord(
                    content_id=f"content-{uuid.uuid4().hex[:12]}",
                    slot_id=slot_id,
                    title=title or outcome.topic.title,
                    body=outcome.content,
                    status=ContentStatus.PUBLISHED,
                    created_at=now,
                    updated_at=now,
                    day=outcome.topic.day,
                    risk_check_passed=not outcome.violations,
                    violations=outcome.violations,
                    logs=[
                        EditLogEntry(
                            original=outcome.original,
                            modified=outcome.content,
                            auto_corrected=outcome.auto_corrected,
                            timestamp=now,
                        )
                    ],
                )
            )
            self.save()
        return outcome

    def edit_content(
        self,
        slot_id: str,
        session: Session,
        content_id: str,
        new_body: str,
        *,
        feature: Capability = Capability.EDIT_BODY_PARTIAL,
    ) -> bool:
        """Restricted-editor save: permission, compliance, then trust credit.

        A failing edit is reverted (nothing is written), counted as a risk
        correction, and reported as ``ComplianceViolation``.

        Returns:
            True if the trust step advanced.
        """
        with self._lock:
            self._orchestrator.matrix.require(
                feature, session.plan_tier, self.slot(slot_id).trust_step
            )
            record = self._content.get(content_id)
            if record is None or record.slot_id != slot_id:
                raise KeyError(content_id)

            result = self._orchestrator.compliance.evaluate(new_body)
            if not result.passed:
                self._orchestrator.record_risk_correction(slot_id)
                self.save()
                raise ComplianceViolation(result.violations, result.suggestions)

            self._content.append_edit(content_id, new_body, auto_corrected=False)
            advanced = self._orchestrator.record_edit_success(slot_id, session.plan_tier)
            self.save()
            return advanced

    def set_rule_set(self, name: str) -> int:
        """Swap the compliance pack and persist the new version."""
        with self._lock:
            self._orchestrator.set_rule_set(name)
            self._record.rule_set = name
            self._record.rule_set_version += 1
            self.save()
            return self._record.rule_set_version
