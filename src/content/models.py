"""Content domain models — pure Pydantic v2 data types.

Every published article is tracked as a ContentRecord bound to the slot that
produced it, with the compliance verdict it passed and an edit log recording
each original → modified transition (including automatic redactions).
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from ambassador.compliance.models import Violation


class ContentStatus(StrEnum):
    """Lifecycle status of a content record."""

    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    LOCKED = "LOCKED"


class EditLogEntry(BaseModel):
    """One recorded change to a record's body."""

    original: str
    modified: str
    auto_corrected: bool = False
    timestamp: datetime


class ContentRecord(BaseModel):
    """A generated article and its publication history."""

    content_id: str
    slot_id: str
    title: str
    body: str
    status: ContentStatus = ContentStatus.DRAFT
    created_at: datetime
    updated_at: datetime
    day: int | None = None
    scheduled_publish_at: datetime | None = None
    risk_check_passed: bool = False
    violations: list[Violation] = Field(default_factory=list)
    logs: list[EditLogEntry] = Field(default_factory=list)
