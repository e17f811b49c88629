"""Governance domain models — pure Pydantic v2 data types.

A Slot is a tenant's independent content channel: it owns an ordered plan of
topic clusters, a cursor into that plan, and the trust state that unlocks
editing capabilities.  Nothing in this module performs I/O or locking.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum, IntEnum, StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator


class PlanTier(StrEnum):
    """Commercial subscription level, assigned by billing."""

    BASIC = "BASIC"
    PRO = "PRO"
    ULTRA = "ULTRA"

    @property
    def rank(self) -> int:
        return _PLAN_RANK[self]


_PLAN_RANK: dict[PlanTier, int] = {
    PlanTier.BASIC: 1,
    PlanTier.PRO: 2,
    PlanTier.ULTRA: 3,
}


def plan_rank(tier: PlanTier | str) -> int:
    """Ordinal of a plan tier (BASIC=1 < PRO=2 < ULTRA=3)."""
    return PlanTier(tier).rank


class TrustStep(IntEnum):
    """Progressive trust ladder; STEP 3 is terminal."""

    ONE = 1
    TWO = 2
    THREE = 3


class AccountStatus(StrEnum):
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    RESTRICTED = "RESTRICTED"
    TRUSTED = "TRUSTED"


class DenialReason(StrEnum):
    """Which axis of the permission matrix blocked a capability."""

    PLAN = "PLAN"
    STEP = "STEP"


class Capability(StrEnum):
    """Closed set of edit/action rights gated by the permission matrix."""

    EDIT_TITLE_PARTIAL = "edit_title_partial"
    EDIT_BODY_PARTIAL = "edit_body_partial"
    EDIT_TITLE_FULL = "edit_title_full"
    EDIT_BODY_FULL = "edit_body_full"
    EDIT_STRUCTURE = "edit_structure"
    INSERT_CTA = "insert_cta"
    EDIT_SLUG = "edit_slug"
    MANUAL_SCHEDULE = "manual_schedule"
    INTERNAL_DIRECT_KEYWORD = "internal_direct_keyword"
    ACCESS_VIDEO = "access_video"


class ActionStatus(StrEnum):
    """Where a slot is within today's generate → check → schedule flow."""

    IDLE = "IDLE"
    GENERATING = "GENERATING"
    RISK_CHECK = "RISK_CHECK"
    SCHEDULING = "SCHEDULING"
    COMPLETED = "COMPLETED"


class TopicKind(StrEnum):
    PILLAR = "pillar"
    SATELLITE = "satellite"


class ExhaustionPolicy(StrEnum):
    """What the cursor does after the last topic of the plan is published."""

    WRAP = "wrap"
    HALT = "halt"


class Exhausted(Enum):
    """Sentinel type returned when a slot has no publishable topic."""

    EXHAUSTED = "EXHAUSTED"

    def __bool__(self) -> bool:
        return False


EXHAUSTED = Exhausted.EXHAUSTED


class PermissionVerdict(BaseModel):
    """Result of resolving a capability against (tier, step)."""

    model_config = ConfigDict(frozen=True)

    feature: Capability
    granted: bool
    reason: DenialReason | None = None


class TrustCounters(BaseModel):
    """Behavioral counters that drive trust progression.

    Counters only ever increase; ``account_status`` is set by operators.
    """

    published_count: NonNegativeInt = 0
    edit_success_count: NonNegativeInt = 0
    risk_correction_count: NonNegativeInt = 0
    account_status: AccountStatus = AccountStatus.NORMAL


class Topic(BaseModel):
    """A single day's topic within a cluster."""

    day: int = 0
    kind: TopicKind
    title: str
    description: str = ""
    published: bool = False
    published_at: datetime | None = None


class TopicCluster(BaseModel):
    """One pillar topic followed by its satellites, under a category label."""

    id: str
    category: str = ""
    topics: list[Topic]

    @model_validator(mode="after")
    def _pillar_first(self) -> TopicCluster:
        if not self.topics or self.topics[0].kind != TopicKind.PILLAR:
            raise ValueError(f"Cluster {self.id!r} must start with a pillar topic")
        pillars = sum(1 for t in self.topics if t.kind == TopicKind.PILLAR)
        if pillars != 1:
            raise ValueError(f"Cluster {self.id!r} has {pillars} pillar topics; expected 1")
        return self

    @property
    def pillar(self) -> Topic:
        return self.topics[0]

    @property
    def satellites(self) -> list[Topic]:
        return self.topics[1:]


class Cursor(BaseModel):
    """Position of the next topic to publish."""

    model_config = ConfigDict(frozen=True)

    cluster_index: NonNegativeInt = 0
    topic_index: NonNegativeInt = 0

    def as_tuple(self) -> tuple[int, int]:
        return (self.cluster_index, self.topic_index)


class Slot(BaseModel):
    """Persisted state of one content channel.

    ``cursor`` is ``None`` when the plan is empty or halted after the last
    topic; otherwise it always references an existing topic.
    """

    slot_id: str
    name: str = ""
    persona: str = ""
    clusters: list[TopicCluster] = Field(default_factory=list)
    cursor: Cursor | None = None
    trust_step: TrustStep = TrustStep.ONE
    counters: TrustCounters = Field(default_factory=TrustCounters)
    action_status: ActionStatus = ActionStatus.IDLE
    last_action_date: date | None = None
    exhaustion_policy: ExhaustionPolicy = ExhaustionPolicy.WRAP
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    @model_validator(mode="after")
    def _cursor_in_range(self) -> Slot:
        if self.cursor is not None and self.topic_at(self.cursor) is None:
            raise ValueError(f"Cursor {self.cursor.as_tuple()} is outside the plan")
        return self

    def topic_at(self, cursor: Cursor) -> Topic | None:
        if cursor.cluster_index >= len(self.clusters):
            return None
        topics = self.clusters[cursor.cluster_index].topics
        if cursor.topic_index >= len(topics):
            return None
        return topics[cursor.topic_index]

    def iter_positions(self) -> list[Cursor]:
        """All topic positions in plan order."""
        return [
            Cursor(cluster_index=ci, topic_index=ti)
            for ci, cluster in enumerate(self.clusters)
            for ti in range(len(cluster.topics))
        ]


class SlotProgress(BaseModel):
    """Plan completion statistics for a slot."""

    total: int
    completed: int
    remaining: int
    current_day: int | None
    state: Literal["empty", "in_progress", "exhausted"]
