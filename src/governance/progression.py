"""Per-slot topic-plan cursor: pillar/satellite clusters published in order.

Each successful publish advances the cursor exactly one topic.  What happens
after the final topic is governed by the slot's ``ExhaustionPolicy``:

- ``WRAP``: the cursor returns to the first unpublished topic from the start
  of the plan, or to ``(0, 0)`` when every topic is published, in which case
  ``get_next_topic`` reports ``EXHAUSTED``.
- ``HALT``: the cursor is cleared.

Under both policies, advancing a slot with nothing left to publish raises
``SlotExhausted``; a new plan (``load_plan``) or an explicit ``reset`` is
required.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime

from ambassador.errors import DailyGateBlocked, SlotExhausted
from ambassador.governance.models import (
    EXHAUSTED,
    ActionStatus,
    Cursor,
    Exhausted,
    ExhaustionPolicy,
    Slot,
    SlotProgress,
    Topic,
    TopicCluster,
)
from ambassador.governance.registry import SlotRegistry

logger = logging.getLogger(__name__)


# ── Slot-level operations (caller holds the slot lock) ───────────


def current_topic(slot: Slot) -> Topic | Exhausted:
    """Topic under the cursor if it is still unpublished."""
    if slot.cursor is None:
        return EXHAUSTED
    topic = slot.topic_at(slot.cursor)
    if topic is None or topic.published:
        return EXHAUSTED
    return topic


def _first_unpublished(slot: Slot, positions: list[Cursor]) -> Cursor | None:
    for pos in positions:
        topic = slot.topic_at(pos)
        if topic is not None and not topic.published:
            return pos
    return None


def check_daily_gate(slot: Slot, today: date, *, bypass: bool = False) -> None:
    """Raise ``DailyGateBlocked`` if the slot already acted today."""
    if bypass:
        if slot.last_action_date == today:
            logger.info("Slot %s daily gate bypassed", slot.slot_id)
        return
    if slot.last_action_date == today:
        logger.warning("Slot %s blocked by daily gate (%s)", slot.slot_id, today)
        raise DailyGateBlocked(slot.slot_id, slot.last_action_date)


def advance_slot(slot: Slot, today: date, *, now: datetime | None = None) -> Topic:
    """Publish the cursor topic and move the cursor forward.

    Returns:
        The topic that was marked published.

    Raises:
        SlotExhausted: If there is no unpublished topic under the cursor.
    """
    published_at = slot.cursor
    topic = current_topic(slot)
    if topic is EXHAUSTED or published_at is None:
        raise SlotExhausted(slot.slot_id)

    topic.published = True
    topic.published_at = now or datetime.now(tz=UTC)

    positions = slot.iter_positions()
    index = positions.index(published_at)
    nxt = _first_unpublished(slot, positions[index + 1:])

    if nxt is None:
        if slot.exhaustion_policy == ExhaustionPolicy.WRAP:
            nxt = _first_unpublished(slot, positions) or Cursor(cluster_index=0, topic_index=0)
            logger.info("Slot %s reached end of plan; cursor wraps to %s", slot.slot_id, nxt.as_tuple())
        else:
            logger.info("Slot %s reached end of plan; halting", slot.slot_id)

    slot.cursor = nxt
    slot.last_action_date = today
    logger.debug(
        "Slot %s published day %d; cursor %s -> %s",
        slot.slot_id, topic.day, published_at.as_tuple(), nxt.as_tuple() if nxt else None,
    )
    return topic


def progress_of(slot: Slot) -> SlotProgress:
    topics = [t for cluster in slot.clusters for t in cluster.topics]
    total = len(topics)
    completed = sum(1 for t in topics if t.published)
    nxt = current_topic(slot)
    if total == 0:
        state = "empty"
    elif nxt is EXHAUSTED:
        state = "exhausted"
    else:
        state = "in_progress"
    return SlotProgress(
        total=total,
        completed=completed,
        remaining=total - completed,
        current_day=None if nxt is EXHAUSTED else nxt.day,
        state=state,
    )


# ── Registry-facing tracker ──────────────────────────────────────


class SlotProgressionTracker:
    """Publish/advance/reset operations addressed by slot id.

    Every mutating call holds the slot's lock for its whole duration.
    """

    def __init__(
        self,
        registry: SlotRegistry,
        *,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._registry = registry
        self._clock = clock

    def get_next_topic(self, slot_id: str) -> Topic | Exhausted:
        with self._registry.locked(slot_id) as slot:
            topic = current_topic(slot)
            return topic if topic is EXHAUSTED else topic.model_copy()

    def advance(self, slot_id: str, *, today: date | None = None) -> Topic:
        with self._registry.locked(slot_id) as slot:
            topic = advance_slot(slot, today or self._clock())
            return topic.model_copy()

    def check_daily_gate(self, slot_id: str, *, bypass: bool = False) -> None:
        with self._registry.locked(slot_id) as slot:
            check_daily_gate(slot, self._clock(), bypass=bypass)

    def reset(self, slot_id: str, *, confirm: bool = False) -> None:
        """Unpublish every topic and move the cursor back to the start.

        Irreversible; the caller must pass ``confirm=True``.
        """
        if not confirm:
            raise ValueError(f"Resetting slot {slot_id} requires confirm=True")
        with self._registry.locked(slot_id) as slot:
            for cluster in slot.clusters:
                for topic in cluster.topics:
                    topic.published = False
                    topic.published_at = None
            slot.cursor = Cursor() if slot.clusters else None
            slot.action_status = ActionStatus.IDLE
        logger.info("Slot %s progress reset", slot_id)

    def load_plan(self, slot_id: str, clusters: list[TopicCluster]) -> None:
        """Install the output of the planning step and number days 1..N."""
        with self._registry.locked(slot_id) as slot:
            day = 1
            installed: list[TopicCluster] = []
            for cluster in clusters:
                copy = cluster.model_copy(deep=True)
                for topic in copy.topics:
                    topic.day = day
                    day += 1
                installed.append(copy)
            slot.clusters = installed
            slot.cursor = _first_unpublished(slot, slot.iter_positions())
            if slot.cursor is None and installed and slot.exhaustion_policy == ExhaustionPolicy.WRAP:
                slot.cursor = Cursor()
        logger.info("Slot %s loaded plan: %d cluster(s), %d topic(s)", slot_id, len(clusters), day - 1)

    def progress(self, slot_id: str) -> SlotProgress:
        with self._registry.locked(slot_id) as slot:
            return progress_of(slot)

    def rename_topic(self, slot_id: str, cluster_index: int, topic_index: int, title: str) -> None:
        with self._registry.locked(slot_id) as slot:
            topic = slot.topic_at(Cursor(cluster_index=cluster_index, topic_index=topic_index))
            if topic is None:
                raise IndexError(f"No topic at ({cluster_index}, {topic_index}) in slot {slot_id}")
            topic.title = title

    def refresh_daily_status(self, slot_id: str) -> ActionStatus:
        """Return a completed slot to IDLE once the calendar day has changed."""
        with self._registry.locked(slot_id) as slot:
            if slot.last_action_date is not None and slot.last_action_date != self._clock():
                slot.action_status = ActionStatus.IDLE
            return slot.action_status
