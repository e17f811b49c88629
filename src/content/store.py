"""JSON-backed content record store.

Persists all ContentRecords of a tenant in a single JSON file, loaded on init
and saved after every write operation.  Records are archived rather than
deleted; the only hard delete is ``purge_slot``, used when an operator
destroys a slot.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from ambassador.content.models import ContentRecord, ContentStatus, EditLogEntry

logger = logging.getLogger(__name__)

STORE_FILENAME = ".ambassador-content.json"

# Alias to avoid shadowing by ContentStore.list method
_list = list


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    records: list[ContentRecord] = Field(default_factory=list)


class ContentStore:
    """JSON-backed CRUD store for content records.

    Loads the store file on init and saves after every mutation.
    """

    def __init__(self, output_dir: Path) -> None:
        self._path = output_dir / STORE_FILENAME
        self._data = self._load()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            self._data.model_dump_json(indent=2),
            encoding="utf-8",
        )

    def _find(self, content_id: str) -> ContentRecord | None:
        for record in self._data.records:
            if record.content_id == content_id:
                return record
        return None

    def _require(self, content_id: str) -> ContentRecord:
        record = self._find(content_id)
        if record is None:
            raise KeyError(content_id)
        return record

    # ── Write operations ─────────────────────────────────────────

    def upsert(self, record: ContentRecord) -> None:
        """Insert or replace a content record by id."""
        self._data.records = [
            r for r in self._data.records if r.content_id != record.content_id
        ]
        self._data.records.append(record)
        self._save()

    def update_status(self, content_id: str, status: ContentStatus) -> None:
        """Update the lifecycle status of a record.

        Raises KeyError if the id does not exist.
        """
        record = self._require(content_id)
        record.status = status
        record.updated_at = datetime.now(tz=UTC)
        self._save()

    def archive(self, content_id: str) -> None:
        """Archive instead of delete; archived records stay on disk."""
        self.update_status(content_id, ContentStatus.ARCHIVED)

    def schedule(self, content_id: str, when: datetime) -> None:
        record = self._require(content_id)
        record.status = ContentStatus.SCHEDULED
        record.scheduled_publish_at = when
        record.updated_at = datetime.now(tz=UTC)
        self._save()

    def append_edit(self, content_id: str, modified: str, *, auto_corrected: bool) -> None:
        """Replace the body and log the original → modified transition."""
        record = self._require(content_id)
        now = datetime.now(tz=UTC)
        record.logs.append(
            EditLogEntry(
                original=record.body,
                modified=modified,
                auto_corrected=auto_corrected,
                timestamp=now,
            )
        )
        record.body = modified
        record.updated_at = now
        self._save()

    def purge_slot(self, slot_id: str) -> int:
        """Hard-delete every record belonging to a slot.

        Returns:
            Number of records removed.
        """
        before = len(self._data.records)
        self._data.records = [r for r in self._data.records if r.slot_id != slot_id]
        removed = before - len(self._data.records)
        self._save()
        logger.info("Purged %d content record(s) for slot %s", removed, slot_id)
        return removed

    # ── Read operations ──────────────────────────────────────────

    def get(self, content_id: str) -> ContentRecord | None:
        """Return a record by id, or None if not found."""
        return self._find(content_id)

    def list(
        self,
        slot_id: str | None = None,
        status: ContentStatus | None = None,
    ) -> _list[ContentRecord]:
        """Return records, optionally filtered by slot and/or status."""
        results = self._data.records
        if slot_id is not None:
            results = [r for r in results if r.slot_id == slot_id]
        if status is not None:
            results = [r for r in results if r.status == status]
        return _list(results)

    def exists(self, content_id: str) -> bool:
        """Check whether a record with this id exists."""
        return self._find(content_id) is not None
