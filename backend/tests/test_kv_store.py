from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kairos.api.schemas.plan import ActiveHours, DailyRecord
from kairos.db.base import Base
from kairos.db.models.kv_entry import KeyValueEntry
from kairos.services.kv_store import SqlKeyValueStore
from kairos.services.planner_store import PlannerStore


def _session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    KeyValueEntry.__table__.create(bind=engine)
    return TestingSession


def test_metadata_contains_kv_table() -> None:
    assert "kv_entries" in Base.metadata.tables


def test_sql_store_get_set_delete() -> None:
    kv = SqlKeyValueStore(_session())

    assert kv.get("missing") is None
    kv.set("kairos:wishes", "[]")
    kv.set("kairos:wishes", '[{"id": "w"}]')
    assert kv.get("kairos:wishes") == '[{"id": "w"}]'

    kv.delete("kairos:wishes")
    kv.delete("kairos:wishes")
    assert kv.get("kairos:wishes") is None


def test_sql_store_lists_keys_by_prefix() -> None:
    kv = SqlKeyValueStore(_session())
    for key in ("kairos:day:2026-10-19", "kairos:day:2026-10-18", "kairos:wishes"):
        kv.set(key, "{}")

    assert kv.keys("kairos:day:") == ["kairos:day:2026-10-18", "kairos:day:2026-10-19"]
    assert len(kv.keys()) == 3


def test_planner_store_over_sql_backend() -> None:
    store = PlannerStore(SqlKeyValueStore(_session()), default_active_hours=ActiveHours(start="08:00", end="23:00"))
    record = DailyRecord(date=date(2026, 10, 19), energy=5, tasks=[])

    store.save_record(record)

    assert store.load_record(record.date) == record
    assert store.purge_records_before(date(2026, 10, 20)) == 1
    assert store.load_record(record.date) is None


def test_sql_set_many_commits_together_or_not_at_all() -> None:
    kv = SqlKeyValueStore(_session())
    kv.set("kairos:fixed_tasks", "[]")

    kv.set_many({"kairos:fixed_tasks": '[{"id": "f"}]', "kairos:wishes": "[]"})
    assert kv.get("kairos:fixed_tasks") == '[{"id": "f"}]'
    assert kv.get("kairos:wishes") == "[]"

    with pytest.raises(IntegrityError):
        kv.set_many({"kairos:fixed_tasks": "[]", "kairos:active_hours": None})

    assert kv.get("kairos:fixed_tasks") == '[{"id": "f"}]'
    assert kv.get("kairos:active_hours") is None
