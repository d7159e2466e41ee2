"""In-memory repositories for events and their status audit trail."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

from event_lottery.domain.models import (
    EventStatus,
    TransitionLogEntry,
    as_utc,
    parse_instant,
)

_FINAL_STATUSES = (EventStatus.CONFIRMED, EventStatus.FAILED)


def _try_instant(value: Any) -> datetime | None:
    try:
        return parse_instant(value)
    except (TypeError, ValueError):
        return None


def in_window(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    """Candidate predicate: starts in, ends in, or spans the window (bounds inclusive)."""
    return (
        (window_start <= start <= window_end)
        or (window_start <= end <= window_end)
        or (start <= window_start and end >= window_end)
    )


class EventRepository:
    """Row store for events, keyed by integer id.

    Rows are kept as plain dicts (``id``, ``start``, ``end``, ``status``) the
    way a database would hand them back, so timestamps may be datetimes or
    text. Status writes are conditional on the row still being pending.
    """

    def __init__(self) -> None:
        self._rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def add(
        self,
        start: datetime | str,
        end: datetime | str,
        status: EventStatus | str = EventStatus.PENDING,
    ) -> dict[str, Any]:
        with self._lock:
            row = {"id": self._next_id, "start": start, "end": end, "status": str(status)}
            return self.add_row(row)

    def add_row(self, row: dict[str, Any]) -> dict[str, Any]:
        """Store a raw row as-is; its ``id`` must be unique."""
        with self._lock:
            stored = dict(row)
            stored.setdefault("status", EventStatus.PENDING.value)
            event_id = stored["id"]
            if event_id in self._rows:
                raise ValueError(f"Event {event_id} already exists")
            self._rows[event_id] = stored
            self._next_id = max(self._next_id, event_id + 1)
            return dict(stored)

    def get(self, event_id: int) -> dict[str, Any] | None:
        row = self._rows.get(event_id)
        return dict(row) if row is not None else None

    def list_all(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(self._rows[i]) for i in sorted(self._rows)]

    def fetch_pending_candidates(
        self, window_start: datetime, window_end: datetime
    ) -> list[dict[str, Any]]:
        """Return pending rows whose span touches ``[window_start, window_end]``.

        Rows with unreadable timestamps are returned too; deciding what to do
        with them belongs to the caller.
        """
        window_start, window_end = as_utc(window_start), as_utc(window_end)
        with self._lock:
            candidates = []
            for event_id in sorted(self._rows):
                row = self._rows[event_id]
                if row.get("status") != EventStatus.PENDING:
                    continue
                start, end = _try_instant(row.get("start")), _try_instant(row.get("end"))
                if start is None or end is None or in_window(start, end, window_start, window_end):
                    candidates.append(dict(row))
            return candidates

    def apply_transition(self, event_ids: list[int], new_status: EventStatus) -> list[int]:
        """Move every still-pending row in *event_ids* to *new_status*.

        Returns the ids that were actually updated, in the order given.
        """
        if new_status not in _FINAL_STATUSES:
            raise ValueError(f"Cannot transition events to {new_status!r}")
        updated: list[int] = []
        with self._lock:
            for event_id in event_ids:
                row = self._rows.get(event_id)
                if row is not None and row.get("status") == EventStatus.PENDING:
                    row["status"] = new_status.value
                    updated.append(event_id)
        return updated

    @contextmanager
    def transaction(self) -> Iterator[EventRepository]:
        """Roll every status change made inside the block back if it raises."""
        with self._lock:
            snapshot = {event_id: row.get("status") for event_id, row in self._rows.items()}
            try:
                yield self
            except BaseException:
                for event_id, status in snapshot.items():
                    if event_id in self._rows:
                        self._rows[event_id]["status"] = status
                raise


class TransitionLogRepository:
    """List-backed store for TransitionLogEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TransitionLogEntry] = []

    def add(self, entry: TransitionLogEntry) -> None:
        self._entries.append(entry)

    def list_all(self) -> list[TransitionLogEntry]:
        return list(self._entries)

    def list_for_event(self, event_id: int) -> list[TransitionLogEntry]:
        return sorted(
            [e for e in self._entries if e.event_id == event_id],
            key=lambda e: e.changed_at,
        )


# ---------------------------------------------------------------------------
# Seed data – a few pending events around the default lottery window
# ---------------------------------------------------------------------------


def _seed_events(repo: EventRepository, now: datetime, offset_days: int) -> None:
    now = as_utc(now)
    day = (now + timedelta(days=offset_days)).replace(hour=0, minute=0, second=0, microsecond=0)

    # Inside the window, overlapping
    repo.add(day + timedelta(hours=9), day + timedelta(hours=11))
    repo.add(day + timedelta(hours=10), day + timedelta(hours=12))
    # Inside the window, free
    repo.add(day + timedelta(hours=14), day + timedelta(hours=16))
    # Outside the window, must stay pending
    repo.add(now + timedelta(days=2), now + timedelta(days=2, hours=2))
    repo.add(now + timedelta(days=14), now + timedelta(days=14, hours=2))


def create_event_repository(
    now: datetime | None = None, offset_days: int = 7
) -> EventRepository:
    """Return an EventRepository pre-loaded with sample data."""
    repo = EventRepository()
    _seed_events(repo, now or datetime.now(timezone.utc), offset_days)
    return repo
