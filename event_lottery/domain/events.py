"""Domain events emitted while processing the lottery window."""

from __future__ import annotations

from pydantic import BaseModel

from event_lottery.domain.models import EventStatus


class EventTransitioned(BaseModel):
    """Fired once per event whose status write was applied."""

    event_id: int
    old_status: EventStatus
    new_status: EventStatus
    reason: str


class LotteryRunCompleted(BaseModel):
    """Fired at the end of every pipeline run that reached the store."""

    confirmed_ids: list[int]
    failed_ids: list[int]
    write_failures: list[int]
