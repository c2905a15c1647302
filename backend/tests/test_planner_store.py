from __future__ import annotations

from datetime import date, timedelta

from kairos.api.schemas.plan import ActiveHours, DailyRecord
from kairos.api.schemas.task import Task
from kairos.services.kv_store import InMemoryKeyValueStore
from kairos.services.planner_store import (
    DEFAULT_FIXED_TASKS,
    FIXED_TASKS_KEY,
    PlannerStore,
    day_key,
)

TODAY = date(2026, 10, 19)


def _store(initial=None) -> PlannerStore:
    return PlannerStore(InMemoryKeyValueStore(initial), default_active_hours=ActiveHours(start="08:00", end="23:00"))


def test_defaults_are_returned_as_fresh_copies() -> None:
    store = _store()

    fixed = store.load_fixed_tasks()
    fixed[0].title = "Changed"

    assert store.load_fixed_tasks()[0].title == DEFAULT_FIXED_TASKS[0].title
    assert store.load_active_hours().start == "08:00"
    assert [wish.id for wish in store.load_wishes()] == ["w-1", "w-2"]


def test_records_are_stored_under_day_keys_in_camel_case() -> None:
    kv = InMemoryKeyValueStore()
    store = PlannerStore(kv, default_active_hours=ActiveHours(start="08:00", end="23:00"))
    record = DailyRecord(
        date=TODAY,
        energy=4,
        tasks=[Task(id="a", title="Walk", duration=20, start_time="08:00", end_time="08:20")],
    )

    store.save_record(record)

    raw = kv.get("kairos:day:2026-10-19")
    assert '"isCompleted":false' in raw
    assert store.load_record(TODAY) == record


def test_corrupt_values_read_as_absent_or_default() -> None:
    store = _store({day_key(TODAY): "{not json", FIXED_TASKS_KEY: '[{"id": 1}]'})

    assert store.load_record(TODAY) is None
    assert [task.id for task in store.load_fixed_tasks()] == ["f-0", "f-1"]


def test_recent_records_fill_missing_days_with_none() -> None:
    store = _store()
    store.save_record(DailyRecord(date=TODAY - timedelta(days=2), energy=2, tasks=[]))

    recent = store.load_recent_records(TODAY, days=7)

    assert len(recent) == 7
    assert recent[0][0] == TODAY - timedelta(days=6)
    assert recent[-1] == (TODAY, None)
    assert recent[4][1].energy == 2


def test_purge_records_before_cutoff() -> None:
    store = _store({"kairos:day:garbage": "{}"})
    for offset in range(10):
        store.save_record(DailyRecord(date=TODAY - timedelta(days=offset), energy=3, tasks=[]))

    purged = store.purge_records_before(TODAY - timedelta(days=7))

    assert purged == 3
    assert store.load_record(TODAY - timedelta(days=7)) is not None
    assert store.load_record(TODAY - timedelta(days=8)) is None


def test_fingerprint_and_onboarding_week_bookkeeping() -> None:
    store = _store()
    assert store.load_synced_fingerprint() is None

    store.save_synced_fingerprint("abc")
    store.save_onboarding_week("2026-W43")

    assert store.load_synced_fingerprint() == "abc"
    assert store.load_onboarding_week() == "2026-W43"
