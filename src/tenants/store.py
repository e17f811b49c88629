"""JSON-backed tenant store.

One directory per tenant under the store root; the governance record lives
in ``<root>/<tenant_id>/.ambassador-tenant.json`` next to the tenant's content
store.  Writes check the caller's expected revision so a stale writer gets a
``ConcurrentMutationConflict`` instead of silently overwriting.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

from ambassador.errors import ConcurrentMutationConflict
from ambassador.tenants.models import TENANT_FILENAME, TenantRecord

logger = logging.getLogger(__name__)


class JsonTenantStore:
    """File-per-tenant store implementing the ``TenantStore`` protocol."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def tenant_dir(self, tenant_id: str) -> Path:
        return self._root / tenant_id

    def _path(self, tenant_id: str) -> Path:
        return self.tenant_dir(tenant_id) / TENANT_FILENAME

    def _read(self, tenant_id: str) -> TenantRecord | None:
        path = self._path(tenant_id)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return TenantRecord.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt tenant record at %s, starting fresh", path)
            return None

    def get(self, tenant_id: str) -> TenantRecord | None:
        """Return the tenant's record, or None if it has never been saved."""
        return self._read(tenant_id)

    def put(self, record: TenantRecord, *, expected_revision: int | None = None) -> TenantRecord:
        """Write the record and return it with its new revision.

        Args:
            record: Record to persist.
            expected_revision: Revision the caller read.  Defaults to
                ``record.revision``.

        Raises:
            ConcurrentMutationConflict: The stored revision differs.
        """
        expected = record.revision if expected_revision is None else expected_revision
        with self._lock:
            current = self._read(record.tenant_id)
            actual = current.revision if current is not None else 0
            if actual != expected:
                raise ConcurrentMutationConflict(record.tenant_id, expected, actual)

            saved = record.model_copy(
                update={"revision": actual + 1, "updated_at": datetime.now(tz=UTC)}
            )
            path = self._path(record.tenant_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(saved.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Saved tenant %s at revision %d", saved.tenant_id, saved.revision)
        return saved

    def delete(self, tenant_id: str) -> bool:
        path = self._path(tenant_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted tenant record %s", tenant_id)
        return True
