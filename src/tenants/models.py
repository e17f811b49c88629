"""Tenant persistence models — pure data, no I/O."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from ambassador.governance.models import PlanTier, Slot

TENANT_FILENAME = ".ambassador-tenant.json"


class TenantRecord(BaseModel):
    """Everything the engine persists for one tenant.

    ``revision`` increases by one on every successful write and backs the
    store's optimistic concurrency check.
    """

    tenant_id: str
    plan_tier: PlanTier = PlanTier.BASIC
    slots: list[Slot] = Field(default_factory=list)
    active_slot_id: str | None = None
    rule_set: str = "medical"
    rule_set_version: int = 1
    revision: int = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    def slot_ids(self) -> list[str]:
        return [s.slot_id for s in self.slots]
