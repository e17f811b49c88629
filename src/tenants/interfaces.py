"""Collaborator interfaces consumed by the governance engine.

Text generation, persistence and session issuance live outside this package;
these protocols describe only what the engine needs from them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from ambassador.governance.models import PlanTier, Topic
from ambassador.tenants.models import TenantRecord


class Role(StrEnum):
    MEMBER = "member"
    ADMIN = "admin"


class Session(BaseModel):
    """The caller's current plan tier and role, as issued by auth."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    plan_tier: PlanTier
    role: Role = Role.MEMBER

    @property
    def has_bypass(self) -> bool:
        """Admins may act more than once per day on a slot."""
        return self.role == Role.ADMIN


@runtime_checkable
class Generator(Protocol):
    """Produces raw article text for a topic in a persona's voice."""

    def generate(self, topic: Topic, persona: str) -> str: ...


@runtime_checkable
class TenantStore(Protocol):
    """Get/put of a tenant's governance record keyed by tenant id."""

    def get(self, tenant_id: str) -> TenantRecord | None: ...

    def put(self, record: TenantRecord, *, expected_revision: int | None = None) -> TenantRecord: ...
