"""FastAPI application — scheduled and on-demand triggers, inspection endpoints."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException

from event_lottery.config import get_settings
from event_lottery.domain.bus import EventBus
from event_lottery.domain.exceptions import StoreUnavailableError
from event_lottery.domain.handlers import HandlerRegistry
from event_lottery.domain.models import (
    CreateEventRequest,
    RunReport,
    RunResponse,
    TransitionLogEntry,
)
from event_lottery.repos.memory import (
    EventRepository,
    TransitionLogRepository,
    create_event_repository,
)
from event_lottery.services.pipeline import ProcessingPipeline

logger = logging.getLogger(__name__)

settings = get_settings()

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
event_repo = (
    create_event_repository(offset_days=settings.offset_days)
    if settings.seed_sample_data
    else EventRepository()
)
transition_log_repo = TransitionLogRepository()

handler_registry = HandlerRegistry(bus=event_bus, transition_log_repo=transition_log_repo)

pipeline = ProcessingPipeline(
    store=event_repo,
    bus=event_bus,
    offset_days=settings.offset_days,
    lock_timeout_seconds=settings.lock_timeout_seconds,
)


def run_scheduled() -> RunReport | None:
    """The periodic trigger: same pipeline, store and lock as `/run`."""
    try:
        return pipeline.run()
    except StoreUnavailableError:
        logger.warning("Scheduled run aborted; pending events wait for the next one")
        return None


async def _run_periodically(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await asyncio.to_thread(run_scheduled)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: start the scheduled run if one is configured
    task = None
    if settings.run_interval_seconds > 0:
        task = asyncio.create_task(_run_periodically(settings.run_interval_seconds))
    yield
    # Shutdown: stop the scheduled run
    if task is not None:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


app = FastAPI(title="Event Lottery Service", lifespan=lifespan)


# ── Routes ────────────────────────────────────────────────────────────


def _run(now: datetime | None, include_events: bool | None) -> RunResponse:
    try:
        report = pipeline.run(now)
    except StoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    if include_events is None:
        include_events = settings.include_events_in_response
    return RunResponse(
        status=report.status,
        log=report.log,
        events=event_repo.list_all() if include_events else None,
    )


@app.post("/run", response_model=RunResponse, response_model_exclude_none=True)
def run_lottery(now: datetime | None = None, include_events: bool | None = None) -> RunResponse:
    """Run the lottery for the window now.

    Pass *now* to evaluate the window relative to another instant.
    """
    return _run(now, include_events)


@app.get("/test-scheduled", response_model=RunResponse, response_model_exclude_none=True)
def test_scheduled(include_events: bool | None = None) -> RunResponse:
    """Manually fire the same run the scheduler fires."""
    return _run(None, include_events)


@app.post("/events", status_code=201)
def create_event(body: CreateEventRequest) -> dict[str, Any]:
    """Register a pending event."""
    return event_repo.add(body.start, body.end)


@app.get("/events")
def list_events() -> list[dict[str, Any]]:
    """Return every stored event, ordered by id."""
    return event_repo.list_all()


@app.get("/events/{event_id}")
def get_event(event_id: int) -> dict[str, Any]:
    """Return a single event by id."""
    row = event_repo.get(event_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return row


@app.get("/events/{event_id}/transitions", response_model=list[TransitionLogEntry])
def list_transitions(event_id: int) -> list[TransitionLogEntry]:
    """Return the status changes applied to an event."""
    if event_repo.get(event_id) is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return transition_log_repo.list_for_event(event_id)


@app.get("/health")
def health() -> dict:
    return {"status": "healthy"}
