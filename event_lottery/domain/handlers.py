"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from event_lottery.domain.bus import EventBus
from event_lottery.domain.events import EventTransitioned, LotteryRunCompleted
from event_lottery.domain.models import TransitionLogEntry
from event_lottery.repos.memory import TransitionLogRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the audit log."""

    def __init__(self, bus: EventBus, transition_log_repo: TransitionLogRepository) -> None:
        self.bus = bus
        self.transition_log_repo = transition_log_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventTransitioned, self.on_event_transitioned)
        self.bus.subscribe(LotteryRunCompleted, self.on_run_completed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_event_transitioned(self, event: EventTransitioned) -> None:
        self.transition_log_repo.add(
            TransitionLogEntry(
                event_id=event.event_id,
                old_status=event.old_status,
                new_status=event.new_status,
                change_reason=event.reason,
            )
        )

    def on_run_completed(self, event: LotteryRunCompleted) -> None:
        logger.info(
            "Lottery run finished: %d confirmed, %d failed, %d write failure(s)",
            len(event.confirmed_ids),
            len(event.failed_ids),
            len(event.write_failures),
        )
