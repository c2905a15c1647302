"""ORM models exposed for metadata discovery."""
from kairos.db.models.kv_entry import KeyValueEntry

__all__ = [
    "KeyValueEntry",
]
