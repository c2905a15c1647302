"""Key-value persistence backends for the planner store."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Protocol

from sqlalchemy.orm import Session

from kairos.db.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def set_many(self, items: Mapping[str, str]) -> None:
        """Write every item or none of them."""
        ...

    def delete(self, key: str) -> None:
        ...

    def keys(self, prefix: str = "") -> List[str]:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store used by tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def set_many(self, items: Mapping[str, str]) -> None:
        self._data.update(items)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._data if key.startswith(prefix))


class SqlKeyValueStore:
    """Store backed by the ``kv_entries`` table; one short session per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        if not items:
            return
        with self._session_factory() as db:
            try:
                for key, value in items.items():
                    entry = db.get(KeyValueEntry, key)
                    if entry is None:
                        db.add(KeyValueEntry(entry_key=key, value=value))
                    else:
                        entry.value = value
                db.commit()
            except Exception:
                db.rollback()
                raise

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                return
            db.delete(entry)
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise
        logger.debug("Deleted key %s", key)

    def keys(self, prefix: str = "") -> List[str]:
        with self._session_factory() as db:
            query = db.query(KeyValueEntry.entry_key)
            if prefix:
                query = query.filter(KeyValueEntry.entry_key.startswith(prefix))
            return [row[0] for row in query.order_by(KeyValueEntry.entry_key).all()]
