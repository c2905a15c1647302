"""Daily schedule synthesis: oracle proposal first, deterministic fallback second."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from kairos.api.schemas.plan import ActiveHours
from kairos.api.schemas.task import Task
from kairos.core.errors import ConstraintViolation, OracleMalformed, OracleUnavailable
from kairos.observability.metrics import log_metric
from kairos.observability.tracing import trace
from kairos.services.plan_mutations import sort_by_start
from kairos.services.schedule_oracle import PacingRules, ScheduleOracle, ScheduleRequest
from kairos.services.schedule_validator import MalformedSchedule, assemble_schedule, parse_proposal, resolve_window
from kairos.services.time_utils import weekday_index

logger = logging.getLogger(__name__)


@dataclass
class SynthesisOutcome:
    tasks: List[Task]
    source: str
    reason: Optional[str] = None


def eligible_anchors(fixed: Sequence[Task], day: date) -> List[Task]:
    """Anchors that recur on ``day``, ordered by start time; no recurring days means never."""
    weekday = weekday_index(day)
    return sort_by_start(anchor for anchor in fixed if weekday in (anchor.recurring_days or ()))


def fallback_plan(anchors: Sequence[Task]) -> List[Task]:
    return [anchor.model_copy(update={"is_completed": False}) for anchor in sort_by_start(anchors)]


class ScheduleSynthesizer:
    """Builds one day's plan from the baseline and an energy score.

    Never fails because of the oracle: timeouts, transport errors, malformed
    answers and constraint violations all end in the anchors-only fallback.
    Only an unusable active window (``InvalidWindow``) propagates.
    """

    def __init__(
        self,
        oracle: ScheduleOracle,
        *,
        rules: PacingRules = PacingRules(),
        timeout_seconds: float = 20.0,
    ) -> None:
        self._oracle = oracle
        self._rules = rules
        self._timeout_seconds = timeout_seconds

    @property
    def rules(self) -> PacingRules:
        return self._rules

    async def synthesize(
        self,
        *,
        energy: int,
        fixed: Sequence[Task],
        wishes: Sequence[Task],
        active_hours: ActiveHours,
        day: date,
        request_id: Optional[str] = None,
    ) -> SynthesisOutcome:
        window = resolve_window(active_hours)
        anchors = eligible_anchors(fixed, day)
        started = time.perf_counter()

        outcome: Optional[SynthesisOutcome] = None
        reason: Optional[str] = None
        with trace(
            "schedule.synthesize",
            metadata={
                "energy": energy,
                "day": day.isoformat(),
                "anchors": len(anchors),
                "wishes": len(wishes),
                "window": f"{active_hours.start}-{active_hours.end}",
            },
            request_id=request_id,
        ) as synthesis_trace:
            request = ScheduleRequest(
                energy=energy,
                candidate_tasks=[*anchors, *wishes],
                window=active_hours,
                rules=self._rules,
            )
            try:
                raw = await asyncio.wait_for(self._oracle.propose_schedule(request), timeout=self._timeout_seconds)
            except asyncio.TimeoutError:
                reason = f"oracle timed out after {self._timeout_seconds:g}s"
            except (OracleUnavailable, OracleMalformed) as exc:
                reason = f"oracle unavailable: {exc}"
            except Exception as exc:  # pragma: no cover - unexpected client failure
                logger.exception("Schedule oracle raised unexpectedly")
                reason = f"oracle error: {exc}"
            else:
                parsed = parse_proposal(raw)
                if isinstance(parsed, MalformedSchedule):
                    reason = f"malformed proposal: {parsed.reason}"
                else:
                    try:
                        tasks = assemble_schedule(parsed, anchors, wishes, window, energy, self._rules)
                    except ConstraintViolation as exc:
                        reason = f"constraint violation: {exc.reason}"
                    else:
                        outcome = SynthesisOutcome(tasks=tasks, source="oracle")

            if outcome is None:
                logger.warning("Using anchors-only plan for %s: %s", day.isoformat(), reason)
                outcome = SynthesisOutcome(tasks=fallback_plan(anchors), source="fallback", reason=reason)

            if synthesis_trace:
                synthesis_trace.update(
                    metadata={"source": outcome.source, "reason": outcome.reason, "tasks": len(outcome.tasks)}
                )

        latency_ms = int((time.perf_counter() - started) * 1000)
        log_metric("schedule_synthesis_latency_ms", latency_ms, metadata={"source": outcome.source})
        logger.info(
            "Synthesized %s plan for %s (energy=%s, tasks=%s, %sms)",
            outcome.source,
            day.isoformat(),
            energy,
            len(outcome.tasks),
            latency_ms,
        )
        return outcome
