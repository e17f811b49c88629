"""Tests for GovernanceOrchestrator — the publish pipeline end to end."""

import threading
from datetime import date, timedelta

import pytest
from ambassador.compliance import MEDICAL_RULE_SET, ComplianceFilter, PublishPolicy
from ambassador.errors import (
    ComplianceViolation,
    DailyGateBlocked,
    PermissionDenied,
    SlotExhausted,
)
from ambassador.governance import (
    EXHAUSTED,
    AccountStatus,
    ActionStatus,
    Capability,
    Cursor,
    DenialReason,
    GovernanceOrchestrator,
    PlanTier,
    Slot,
    SlotRegistry,
    Topic,
    TopicCluster,
    TopicKind,
    TrustCounters,
    TrustStep,
    tenant_clock,
)

CLEAN = "증상 개선에 도움이 될 수 있습니다."
DIRTY = "이 치료는 100% 완치를 약속합니다."


class FakeClock:
    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def tick(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


def _plan(topics: int = 5) -> list[TopicCluster]:
    items = [Topic(day=1, kind=TopicKind.PILLAR, title="pillar")]
    items += [Topic(day=i + 1, kind=TopicKind.SATELLITE, title=f"sat {i}") for i in range(1, topics)]
    return [TopicCluster(id="c1", topics=items)]


def _slot(slot_id: str = "s1", **kwargs) -> Slot:
    return Slot(slot_id=slot_id, clusters=_plan(), cursor=Cursor(), **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(date(2026, 5, 4))


@pytest.fixture
def registry() -> SlotRegistry:
    return SlotRegistry([_slot()])


@pytest.fixture
def orchestrator(registry: SlotRegistry, clock: FakeClock) -> GovernanceOrchestrator:
    return GovernanceOrchestrator(registry, ComplianceFilter(MEDICAL_RULE_SET), clock=clock)


class TestRequestEdit:
    def test_delegates_to_matrix(self, orchestrator: GovernanceOrchestrator):
        verdict = orchestrator.request_edit(Capability.EDIT_TITLE_PARTIAL, PlanTier.BASIC, 1)

        assert verdict.granted is False
        assert verdict.reason == DenialReason.PLAN

    def test_for_slot_uses_recorded_step(self, orchestrator: GovernanceOrchestrator, registry):
        registry.get("s1").trust_step = TrustStep.TWO

        verdict = orchestrator.request_edit_for_slot("s1", Capability.EDIT_TITLE_PARTIAL, "PRO")

        assert verdict.granted is True


class TestCommitPublish:
    def test_clean_publish(self, orchestrator: GovernanceOrchestrator, registry, clock):
        outcome = orchestrator.commit_publish("s1", PlanTier.PRO, TrustStep.ONE, CLEAN)

        assert outcome.content == CLEAN
        assert outcome.auto_corrected is False
        assert outcome.notice is None
        assert outcome.topic.title == "pillar"
        assert outcome.published_on == clock.today
        slot = registry.get("s1")
        assert slot.counters.published_count == 1
        assert slot.last_action_date == clock.today
        assert slot.action_status == ActionStatus.COMPLETED
        assert slot.cursor.as_tuple() == (0, 1)

    def test_second_publish_same_day_is_blocked(self, orchestrator: GovernanceOrchestrator, registry):
        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)

        with pytest.raises(DailyGateBlocked):
            orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
        assert registry.get("s1").counters.published_count == 1

    def test_bypass_allows_second_publish(self, orchestrator: GovernanceOrchestrator, registry):
        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN, bypass=True)

        assert registry.get("s1").counters.published_count == 2

    def test_next_day_publish(self, orchestrator: GovernanceOrchestrator, clock):
        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
        clock.tick()

        outcome = orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)

        assert outcome.topic.title == "sat 1"

    def test_reject_leaves_slot_untouched(self, orchestrator: GovernanceOrchestrator, registry):
        before = registry.get("s1").model_dump()

        with pytest.raises(ComplianceViolation) as exc_info:
            orchestrator.commit_publish(
                "s1", PlanTier.PRO, 1, DIRTY, policy=PublishPolicy.REJECT_ON_VIOLATION
            )

        assert exc_info.value.violations[0].matched_text == "100% 완치"
        assert exc_info.value.suggestions
        assert registry.get("s1").model_dump() == before

    def test_reject_then_resubmit_same_day(self, orchestrator: GovernanceOrchestrator):
        with pytest.raises(ComplianceViolation):
            orchestrator.commit_publish("s1", PlanTier.PRO, 1, DIRTY)

        outcome = orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)

        assert outcome.topic.title == "pillar"

    def test_auto_correct_redacts_and_counts(self, orchestrator: GovernanceOrchestrator, registry):
        outcome = orchestrator.commit_publish(
            "s1", PlanTier.PRO, 1, DIRTY, policy=PublishPolicy.AUTO_CORRECT
        )

        assert outcome.auto_corrected is True
        assert outcome.notice
        assert "100% 완치" not in outcome.content
        assert orchestrator.compliance.marker in outcome.content
        assert orchestrator.compliance.evaluate(outcome.content).passed is True
        assert outcome.original == DIRTY
        counters = registry.get("s1").counters
        assert counters.risk_correction_count == 1
        assert counters.published_count == 1

    def test_auto_correct_redacts_repeated_phrase(self, orchestrator: GovernanceOrchestrator):
        content = "저희 시술은 절대 안전합니다. 다시 말씀드려 절대 안전합니다."

        outcome = orchestrator.commit_publish(
            "s1", PlanTier.PRO, 1, content, policy=PublishPolicy.AUTO_CORRECT
        )

        assert len(outcome.violations) == 2
        assert "절대 안전" not in outcome.content
        assert outcome.content.count(orchestrator.compliance.marker) == 2
        assert orchestrator.compliance.evaluate(outcome.content).passed is True

    def test_default_policy_is_configurable(self, registry, clock):
        orchestrator = GovernanceOrchestrator(
            registry,
            ComplianceFilter(MEDICAL_RULE_SET),
            clock=clock,
            default_policy=PublishPolicy.AUTO_CORRECT,
        )

        assert orchestrator.commit_publish("s1", "PRO", 1, DIRTY).auto_corrected is True

    def test_step_advanced_flag(self, orchestrator: GovernanceOrchestrator, registry):
        registry.get("s1").counters.published_count = 2

        outcome = orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)

        assert outcome.step_advanced is True
        assert outcome.trust_step == TrustStep.TWO
        assert registry.get("s1").trust_step == TrustStep.TWO

    def test_basic_tier_does_not_advance(self, orchestrator: GovernanceOrchestrator, registry):
        registry.get("s1").counters.published_count = 2

        outcome = orchestrator.commit_publish("s1", PlanTier.BASIC, 1, CLEAN)

        assert outcome.step_advanced is False

    def test_feature_permission_checked(self, orchestrator: GovernanceOrchestrator, registry):
        with pytest.raises(PermissionDenied) as exc_info:
            orchestrator.commit_publish(
                "s1", PlanTier.PRO, 1, CLEAN, feature=Capability.EDIT_BODY_PARTIAL
            )

        assert exc_info.value.reason == DenialReason.STEP
        assert registry.get("s1").counters.published_count == 0

    def test_stale_caller_step_cannot_exceed_record(self, orchestrator: GovernanceOrchestrator):
        with pytest.raises(PermissionDenied) as exc_info:
            orchestrator.commit_publish(
                "s1", PlanTier.ULTRA, TrustStep.THREE, CLEAN, feature=Capability.EDIT_SLUG
            )
        assert exc_info.value.reason == DenialReason.STEP

    def test_feature_granted(self, orchestrator: GovernanceOrchestrator, registry):
        registry.get("s1").trust_step = TrustStep.TWO

        outcome = orchestrator.commit_publish(
            "s1", PlanTier.PRO, TrustStep.TWO, CLEAN, feature="edit_title_partial"
        )

        assert outcome.topic.title == "pillar"

    def test_exhausted_slot(self, clock):
        registry = SlotRegistry([Slot(slot_id="empty")])
        orchestrator = GovernanceOrchestrator(registry, ComplianceFilter(MEDICAL_RULE_SET), clock=clock)

        with pytest.raises(SlotExhausted):
            orchestrator.commit_publish("empty", PlanTier.PRO, 1, CLEAN)
        assert registry.get("empty").last_action_date is None

    def test_publishes_through_whole_plan(self, orchestrator: GovernanceOrchestrator, clock):
        titles = []
        for _ in range(5):
            titles.append(orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN).topic.title)
            clock.tick()

        assert titles == ["pillar", "sat 1", "sat 2", "sat 3", "sat 4"]
        assert orchestrator.next_topic("s1") is EXHAUSTED


class TestHooks:
    def test_begin_action(self, orchestrator: GovernanceOrchestrator, registry):
        orchestrator.begin_action("s1")
        assert registry.get("s1").action_status == ActionStatus.GENERATING

        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
        with pytest.raises(DailyGateBlocked):
            orchestrator.begin_action("s1")

    def test_abort_action_restores_status(self, orchestrator: GovernanceOrchestrator, registry):
        previous = orchestrator.begin_action("s1")
        orchestrator.abort_action("s1", previous)

        assert previous == ActionStatus.IDLE
        assert registry.get("s1").action_status == ActionStatus.IDLE

    def test_trust_machine_sees_committed_publish(
        self, orchestrator: GovernanceOrchestrator, registry
    ):
        live = registry.get("s1")
        machine = orchestrator.trust_machine("s1")

        orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
        machine.increment_edit_success()

        assert registry.get("s1") is live
        counters = registry.get("s1").counters
        assert counters.published_count == 1
        assert counters.edit_success_count == 1
        assert machine.counters == counters

    def test_record_edit_success_upgrades(self, clock):
        slot = _slot(trust_step=TrustStep.TWO, counters=TrustCounters(published_count=5))
        orchestrator = GovernanceOrchestrator(
            SlotRegistry([slot]), ComplianceFilter(MEDICAL_RULE_SET), clock=clock
        )

        assert orchestrator.record_edit_success("s1", PlanTier.ULTRA) is True
        assert orchestrator.registry.get("s1").trust_step == TrustStep.THREE

    def test_record_risk_correction(self, orchestrator: GovernanceOrchestrator):
        assert orchestrator.record_risk_correction("s1") == 1
        assert orchestrator.record_risk_correction("s1") == 2

    def test_set_account_status(self, orchestrator: GovernanceOrchestrator, registry):
        orchestrator.set_account_status("s1", AccountStatus.WARNING)
        assert registry.get("s1").counters.account_status == AccountStatus.WARNING

    def test_sync_session(self, orchestrator: GovernanceOrchestrator, registry, clock):
        slot = registry.get("s1")
        slot.counters.published_count = 3
        slot.action_status = ActionStatus.COMPLETED
        slot.last_action_date = clock.today - timedelta(days=1)

        assert orchestrator.sync_session("s1") is True
        assert slot.trust_step == TrustStep.TWO
        assert slot.action_status == ActionStatus.IDLE
        assert orchestrator.sync_session("s1") is False

    def test_next_topic_is_a_copy(self, orchestrator: GovernanceOrchestrator, registry):
        orchestrator.next_topic("s1").title = "changed"
        assert registry.get("s1").clusters[0].topics[0].title == "pillar"

    def test_set_rule_set_by_name(self, orchestrator: GovernanceOrchestrator):
        assert orchestrator.set_rule_set("finance") == 2
        assert orchestrator.compliance.rule_set_name == "finance"


class TestConcurrency:
    def test_same_slot_publishes_once_per_day(self, orchestrator: GovernanceOrchestrator, registry):
        barrier = threading.Barrier(6)
        outcomes: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN)
                result = "ok"
            except DailyGateBlocked:
                result = "blocked"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("blocked") == 5
        slot = registry.get("s1")
        assert slot.counters.published_count == 1
        assert sum(t.published for t in slot.clusters[0].topics) == 1

    def test_bypass_publishes_serialize(self, orchestrator: GovernanceOrchestrator, registry):
        barrier = threading.Barrier(5)

        def worker() -> None:
            barrier.wait()
            orchestrator.commit_publish("s1", PlanTier.PRO, 1, CLEAN, bypass=True)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        slot = registry.get("s1")
        assert slot.counters.published_count == 5
        assert all(t.published for t in slot.clusters[0].topics)

    def test_slots_are_independent(self, clock):
        registry = SlotRegistry([_slot(f"s{i}") for i in range(4)])
        orchestrator = GovernanceOrchestrator(registry, ComplianceFilter(MEDICAL_RULE_SET), clock=clock)

        threads = [
            threading.Thread(
                target=orchestrator.commit_publish, args=(f"s{i}", PlanTier.PRO, 1, CLEAN)
            )
            for i in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(s.counters.published_count == 1 for s in registry.slots())


def test_tenant_clock_returns_a_date():
    assert isinstance(tenant_clock("Asia/Seoul")(), date)
