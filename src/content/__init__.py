"""Content domain — published article records and their edit history.

Each record belongs to a slot; deleting a slot purges its records, while
ordinary removal goes through archiving.
"""

from ambassador.content.models import ContentRecord, ContentStatus, EditLogEntry
from ambassador.content.store import ContentStore

__all__ = [
    "ContentRecord",
    "ContentStatus",
    "ContentStore",
    "EditLogEntry",
]
