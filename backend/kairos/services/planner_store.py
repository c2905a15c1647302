"""Typed access to baseline collections and daily records over a key-value store."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from kairos.api.schemas.plan import ActiveHours, Baseline, DailyRecord
from kairos.api.schemas.task import Task
from kairos.core.errors import SerializationError
from kairos.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

ACTIVE_HOURS_KEY = "kairos:active_hours"
FIXED_TASKS_KEY = "kairos:fixed_tasks"
WISHES_KEY = "kairos:wishes"
DAY_KEY_PREFIX = "kairos:day:"
FINGERPRINT_KEY = "kairos:baseline_fingerprint"
ONBOARDING_WEEK_KEY = "kairos:onboarding_week"

_TASK_LIST = TypeAdapter(List[Task])

DEFAULT_FIXED_TASKS = [
    Task(
        id="f-0",
        title="Breakfast",
        duration=30,
        energy_cost="low",
        is_hard_block=True,
        start_time="09:00",
        end_time="09:30",
        recurring_days=[0, 1, 2, 3, 4, 5, 6],
    ),
    Task(
        id="f-1",
        title="Pilates class",
        duration=120,
        energy_cost="medium",
        is_hard_block=True,
        start_time="12:00",
        end_time="14:00",
        recurring_days=[1, 3, 5],
    ),
]

DEFAULT_WISHES = [
    Task(id="w-1", title="Personal finance study", duration=45, energy_cost="high", is_wish=True),
    Task(id="w-2", title="Creative writing", duration=60, energy_cost="high", is_wish=True),
]


def day_key(day: date) -> str:
    return f"{DAY_KEY_PREFIX}{day.isoformat()}"


class PlannerStore:
    """Single owner of persisted planner state.

    Collections are read and written whole; callers never get an alias into
    stored data because every load decodes a fresh copy.
    """

    def __init__(self, kv: KeyValueStore, *, default_active_hours: ActiveHours) -> None:
        self._kv = kv
        self._default_active_hours = default_active_hours

    # -- baseline -----------------------------------------------------------

    def load_active_hours(self) -> ActiveHours:
        raw = self._kv.get(ACTIVE_HOURS_KEY)
        if raw is None:
            return self._default_active_hours.model_copy()
        try:
            return _decode(ActiveHours.model_validate_json, raw)
        except SerializationError:
            logger.warning("Stored active hours are unreadable; using defaults")
            return self._default_active_hours.model_copy()

    def save_active_hours(self, hours: ActiveHours) -> None:
        self.save_changes(active_hours=hours)

    def load_fixed_tasks(self) -> List[Task]:
        return self._load_task_list(FIXED_TASKS_KEY, DEFAULT_FIXED_TASKS)

    def save_fixed_tasks(self, tasks: List[Task]) -> None:
        self.save_changes(fixed=tasks)

    def load_wishes(self) -> List[Task]:
        return self._load_task_list(WISHES_KEY, DEFAULT_WISHES)

    def save_wishes(self, tasks: List[Task]) -> None:
        self.save_changes(wishes=tasks)

    def load_baseline(self) -> Baseline:
        return Baseline(
            active_hours=self.load_active_hours(),
            fixed_anchors=self.load_fixed_tasks(),
            wish_pool=self.load_wishes(),
        )

    def save_baseline(self, baseline: Baseline) -> None:
        self.save_changes(active_hours=baseline.active_hours, fixed=baseline.fixed_anchors, wishes=baseline.wish_pool)

    def save_changes(
        self,
        *,
        active_hours: Optional[ActiveHours] = None,
        fixed: Optional[List[Task]] = None,
        wishes: Optional[List[Task]] = None,
        record: Optional[DailyRecord] = None,
        synced_fingerprint: Optional[str] = None,
    ) -> None:
        """Persist the given values in one atomic write; None means unchanged."""
        items: Dict[str, str] = {}
        if active_hours is not None:
            items[ACTIVE_HOURS_KEY] = active_hours.model_dump_json(by_alias=True)
        if fixed is not None:
            items[FIXED_TASKS_KEY] = _encode_tasks(fixed)
        if wishes is not None:
            items[WISHES_KEY] = _encode_tasks(wishes)
        if record is not None:
            items[day_key(record.date)] = record.model_dump_json(by_alias=True)
        if synced_fingerprint is not None:
            items[FINGERPRINT_KEY] = synced_fingerprint
        self._kv.set_many(items)

    # -- daily records --------------------------------------------------------

    def load_record(self, day: date) -> Optional[DailyRecord]:
        raw = self._kv.get(day_key(day))
        if raw is None:
            return None
        try:
            return _decode(DailyRecord.model_validate_json, raw)
        except SerializationError:
            logger.warning("Daily record for %s is unreadable; treating the day as empty", day.isoformat())
            return None

    def save_record(self, record: DailyRecord) -> None:
        self.save_changes(record=record)

    def load_recent_records(self, end: date, days: int = 7) -> List[Tuple[date, Optional[DailyRecord]]]:
        """Return ``days`` consecutive dates ending at ``end`` with their records (None when missing)."""
        start = end - timedelta(days=days - 1)
        return [(start + timedelta(days=offset), self.load_record(start + timedelta(days=offset))) for offset in range(days)]

    def purge_records_before(self, cutoff: date) -> int:
        """Delete daily records dated strictly before ``cutoff``; returns how many went."""
        purged = 0
        for key in self._kv.keys(DAY_KEY_PREFIX):
            stamp = key[len(DAY_KEY_PREFIX):]
            try:
                record_day = date.fromisoformat(stamp)
            except ValueError:
                logger.warning("Dropping daily record with unreadable key %s", key)
                self._kv.delete(key)
                purged += 1
                continue
            if record_day < cutoff:
                self._kv.delete(key)
                purged += 1
        return purged

    # -- bookkeeping ----------------------------------------------------------

    def load_synced_fingerprint(self) -> Optional[str]:
        return self._kv.get(FINGERPRINT_KEY)

    def save_synced_fingerprint(self, fingerprint: str) -> None:
        self.save_changes(synced_fingerprint=fingerprint)

    def load_onboarding_week(self) -> Optional[str]:
        return self._kv.get(ONBOARDING_WEEK_KEY)

    def save_onboarding_week(self, week: str) -> None:
        self._kv.set(ONBOARDING_WEEK_KEY, week)

    # -- helpers --------------------------------------------------------------

    def _load_task_list(self, key: str, defaults: List[Task]) -> List[Task]:
        raw = self._kv.get(key)
        if raw is None:
            return [task.model_copy(deep=True) for task in defaults]
        try:
            return _decode(_TASK_LIST.validate_json, raw)
        except SerializationError:
            logger.warning("Stored collection %s is unreadable; using defaults", key)
            return [task.model_copy(deep=True) for task in defaults]


def _encode_tasks(tasks: List[Task]) -> str:
    return _TASK_LIST.dump_json(tasks, by_alias=True).decode("utf-8")


def _decode(parser, raw: str):
    try:
        return parser(raw)
    except (ValidationError, ValueError) as exc:
        raise SerializationError(str(exc)) from exc
