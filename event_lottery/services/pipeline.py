"""The lottery run: window -> candidates -> groups -> decisions -> writes.

Both the periodic trigger and the on-demand endpoint go through
``ProcessingPipeline.run``. A pipeline instance owns the lock that keeps two
runs from reading the same pending set, so every trigger in a process must
share one instance.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from event_lottery.domain.bus import EventBus
from event_lottery.domain.events import EventTransitioned, LotteryRunCompleted
from event_lottery.domain.exceptions import StoreUnavailableError, StoreWriteError
from event_lottery.domain.models import (
    Decision,
    Event,
    EventStatus,
    RunReport,
    RunStatus,
)
from event_lottery.services.conflicts import group_overlapping_events
from event_lottery.services.lottery import RandomSource
from event_lottery.services.resolver import resolve_groups
from event_lottery.services.window import DEFAULT_OFFSET_DAYS, compute_window

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    def fetch_pending_candidates(
        self, window_start: datetime, window_end: datetime
    ) -> list[dict[str, Any]]: ...

    def apply_transition(self, event_ids: list[int], new_status: EventStatus) -> list[int]: ...

    def transaction(self) -> AbstractContextManager[Any]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ids(ids: list[int]) -> str:
    return ", ".join(str(i) for i in ids)


class ProcessingPipeline:
    def __init__(
        self,
        store: EventStore,
        bus: EventBus | None = None,
        offset_days: int = DEFAULT_OFFSET_DAYS,
        rng: RandomSource | None = None,
        lock_timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.bus = bus or EventBus()
        self.offset_days = offset_days
        self.rng = rng
        self.lock_timeout_seconds = lock_timeout_seconds
        self.clock = clock
        self._run_lock = threading.Lock()

    def run(self, now: datetime | None = None) -> RunReport:
        """Process the window once and return the report with its ordered log.

        Raises ``StoreUnavailableError`` if candidates cannot be fetched; no
        writes happen in that case.
        """
        report = RunReport()
        if not self._run_lock.acquire(timeout=self.lock_timeout_seconds):
            report.status = RunStatus.LOCKED_OUT
            self._log(report, "Another lottery run is in progress; skipping this run", logging.WARNING)
            return report
        try:
            self._process(now or self.clock(), report)
        finally:
            self._run_lock.release()
        return report

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _process(self, now: datetime, report: RunReport) -> None:
        window = compute_window(now, self.offset_days)
        report.window = window
        self._log(report, f"Processing events between {window.describe()}")

        try:
            rows = self.store.fetch_pending_candidates(window.start, window.end)
        except StoreUnavailableError:
            logger.exception("Could not fetch pending events; aborting run")
            raise

        events = self._parse_rows(rows, report)
        report.candidate_count = len(events)
        if not events:
            report.status = RunStatus.NO_EVENTS
            self._log(report, f"No events found between {window.describe()}")
            return

        self._log(report, f"Found {len(events)} events for processing")
        groups = group_overlapping_events(events)
        report.group_count = len(groups)
        self._log(report, f"Grouped into {len(groups)} group(s)")

        for decision in resolve_groups(groups, self.rng):
            report.decisions.append(decision)
            self._log(report, decision.describe())
            self._apply(decision, report)

        self._log(report, "Event status update completed")
        self.bus.publish(
            LotteryRunCompleted(
                confirmed_ids=report.confirmed_ids,
                failed_ids=report.failed_ids,
                write_failures=report.write_failures,
            )
        )

    def _parse_rows(self, rows: list[dict[str, Any]], report: RunReport) -> list[Event]:
        events: list[Event] = []
        for row in rows:
            try:
                events.append(Event.model_validate(row))
            except ValidationError as exc:
                event_id = row.get("id") if isinstance(row, dict) else None
                report.skipped_ids.append(event_id)
                reason = exc.errors()[0]["msg"]
                self._log(report, f"Skipping event {event_id}: {reason}", logging.WARNING)
        return events

    def _apply(self, decision: Decision, report: RunReport) -> None:
        """Write one decision; the winner and losers of a group commit together."""
        try:
            with self.store.transaction():
                confirmed = self.store.apply_transition([decision.winner_id], EventStatus.CONFIRMED)
                failed: list[int] = []
                if confirmed and decision.loser_ids:
                    failed = self.store.apply_transition(decision.loser_ids, EventStatus.FAILED)
        except StoreWriteError as exc:
            logger.error("Write failed for group [%s]: %s", _ids(decision.group_ids), exc)
            report.write_failures.extend(decision.group_ids)
            self._log(
                report,
                f"Write failed for events {_ids(decision.group_ids)}; left pending for the next run",
                logging.ERROR,
            )
            return

        if not confirmed:
            self._log(
                report,
                f"Event {decision.winner_id} is no longer pending; "
                f"events {_ids(decision.group_ids)} left untouched",
                logging.WARNING,
            )
            return

        stale = [i for i in decision.loser_ids if i not in failed]
        if stale:
            self._log(report, f"Events {_ids(stale)} were no longer pending; left untouched", logging.WARNING)

        reason = "won lottery" if decision.lottery else "no overlap"
        report.confirmed_ids.extend(confirmed)
        self._publish_transition(report, decision.winner_id, EventStatus.CONFIRMED, reason)
        report.failed_ids.extend(failed)
        for event_id in failed:
            self._publish_transition(report, event_id, EventStatus.FAILED, "lost lottery")

    def _publish_transition(
        self, report: RunReport, event_id: int, new_status: EventStatus, reason: str
    ) -> None:
        """Announce one committed change; a failing handler does not stop the run."""
        try:
            self.bus.publish(
                EventTransitioned(
                    event_id=event_id,
                    old_status=EventStatus.PENDING,
                    new_status=new_status,
                    reason=reason,
                )
            )
        except Exception:
            logger.exception("Handler failed for transition of event %s", event_id)
            report.audit_failures.append(event_id)
            report.log.append(f"Could not record the {new_status} transition of event {event_id}")

    @staticmethod
    def _log(report: RunReport, message: str, level: int = logging.INFO) -> None:
        report.log.append(message)
        logger.log(level, message)
