"""Governance engine — permission matrix, trust ladder, plan progression.

Every publish passes the daily gate, the compliance filter and the
progression tracker, then feeds the trust state machine.  The orchestrator is
the only component that mutates trust counters.
"""

from ambassador.governance.models import (
    EXHAUSTED,
    AccountStatus,
    ActionStatus,
    Capability,
    Cursor,
    DenialReason,
    Exhausted,
    ExhaustionPolicy,
    PermissionVerdict,
    PlanTier,
    Slot,
    SlotProgress,
    Topic,
    TopicCluster,
    TopicKind,
    TrustCounters,
    TrustStep,
    plan_rank,
)
from ambassador.governance.orchestrator import (
    GovernanceOrchestrator,
    PublishOutcome,
    tenant_clock,
)
from ambassador.governance.permissions import REQUIREMENTS, PermissionMatrix, Requirement
from ambassador.governance.progression import SlotProgressionTracker
from ambassador.governance.registry import SlotRegistry
from ambassador.governance.trust import TrustStateMachine, TrustThresholds

__all__ = [
    "EXHAUSTED",
    "REQUIREMENTS",
    "AccountStatus",
    "ActionStatus",
    "Capability",
    "Cursor",
    "DenialReason",
    "Exhausted",
    "ExhaustionPolicy",
    "GovernanceOrchestrator",
    "PermissionMatrix",
    "PermissionVerdict",
    "PlanTier",
    "PublishOutcome",
    "Requirement",
    "Slot",
    "SlotProgress",
    "SlotProgressionTracker",
    "SlotRegistry",
    "Topic",
    "TopicCluster",
    "TopicKind",
    "TrustCounters",
    "TrustStateMachine",
    "TrustStep",
    "TrustThresholds",
    "plan_rank",
    "tenant_clock",
]
