"""Domain models for the event lottery system."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from dateutil.parser import isoparse
from pydantic import BaseModel, Field, field_validator, model_validator


class EventStatus(StrEnum):
    """Canonical status tokens, shared by the fetch filter and every write."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class RunStatus(StrEnum):
    COMPLETED = "completed"
    NO_EVENTS = "no_events"
    LOCKED_OUT = "locked_out"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Pin *value* to the canonical clock; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Any) -> datetime:
    """Read a stored timestamp (datetime or ISO-8601 text) as an aware UTC datetime.

    Accepts both ``2025-11-07T09:00:00`` and the SQLite ``2025-11-07 09:00:00``
    form. Raises ``ValueError`` for anything else, including instants that
    fall outside the representable range once moved to UTC.
    """
    if not isinstance(value, (datetime, str)):
        raise ValueError(f"unsupported timestamp {value!r}")
    try:
        if isinstance(value, str):
            value = isoparse(value.strip())
        return as_utc(value)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range {value!r}") from exc


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Event(BaseModel):
    id: int
    start: datetime
    end: datetime
    status: EventStatus = EventStatus.PENDING

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_instant(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> Event:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class Window(BaseModel):
    """One calendar day; both bounds are inclusive."""

    start: datetime
    end: datetime

    def describe(self) -> str:
        return f"{self.start.isoformat()} and {self.end.isoformat()}"


class Decision(BaseModel):
    """Outcome of resolving one overlap group."""

    group_ids: list[int]
    winner_id: int
    loser_ids: list[int] = Field(default_factory=list)
    lottery: bool = False

    def describe(self) -> str:
        if not self.lottery:
            return f"Event {self.winner_id} confirmed (no overlap)"
        members = ", ".join(str(i) for i in self.group_ids)
        losers = ", ".join(str(i) for i in self.loser_ids)
        return (
            f"Group of {len(self.group_ids)} overlapping events [{members}], "
            f"winner: {self.winner_id}, failed (lost lottery): {losers}"
        )


class TransitionLogEntry(BaseModel):
    """Audit row for one applied status change."""

    event_id: int
    old_status: EventStatus
    new_status: EventStatus
    change_reason: str | None = None
    changed_at: datetime = Field(default_factory=_utcnow)


class RunReport(BaseModel):
    """Everything a single pipeline run decided and wrote, plus its ordered log."""

    status: RunStatus = RunStatus.COMPLETED
    window: Window | None = None
    candidate_count: int = 0
    group_count: int = 0
    decisions: list[Decision] = Field(default_factory=list)
    confirmed_ids: list[int] = Field(default_factory=list)
    failed_ids: list[int] = Field(default_factory=list)
    skipped_ids: list[Any] = Field(default_factory=list)
    write_failures: list[int] = Field(default_factory=list)
    audit_failures: list[int] = Field(default_factory=list)
    log: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateEventRequest(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_instant(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> CreateEventRequest:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class RunResponse(BaseModel):
    status: RunStatus
    log: list[str]
    events: list[dict[str, Any]] | None = None
