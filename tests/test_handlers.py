"""Tests for the event bus and the audit handlers."""

from __future__ import annotations

import pytest

from event_lottery.domain.bus import EventBus
from event_lottery.domain.events import EventTransitioned, LotteryRunCompleted
from event_lottery.domain.handlers import HandlerRegistry
from event_lottery.domain.models import EventStatus
from event_lottery.repos.memory import TransitionLogRepository


@pytest.fixture()
def env():
    """Fresh bus + audit repo + registry for each test."""
    bus = EventBus()
    transition_log_repo = TransitionLogRepository()
    registry = HandlerRegistry(bus=bus, transition_log_repo=transition_log_repo)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.transition_log_repo = transition_log_repo
    e.registry = registry
    return e


def test_handlers_run_in_registration_order():
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(LotteryRunCompleted, lambda e: seen.append("first"))
    bus.subscribe(LotteryRunCompleted, lambda e: seen.append("second"))

    bus.publish(LotteryRunCompleted(confirmed_ids=[], failed_ids=[], write_failures=[]))

    assert seen == ["first", "second"]


def test_unsubscribed_event_type_is_ignored():
    bus = EventBus()
    seen: list[object] = []
    bus.subscribe(LotteryRunCompleted, seen.append)

    bus.publish(object())

    assert seen == []


def test_handler_errors_reach_the_publisher():
    bus = EventBus()

    def broken(event):
        raise RuntimeError("handler failed")

    bus.subscribe(LotteryRunCompleted, broken)
    with pytest.raises(RuntimeError):
        bus.publish(LotteryRunCompleted(confirmed_ids=[], failed_ids=[], write_failures=[]))


def test_transition_is_recorded(env):
    env.bus.publish(
        EventTransitioned(
            event_id=7,
            old_status=EventStatus.PENDING,
            new_status=EventStatus.FAILED,
            reason="lost lottery",
        )
    )

    entries = env.transition_log_repo.list_for_event(7)
    assert len(entries) == 1
    assert entries[0].old_status == EventStatus.PENDING
    assert entries[0].new_status == EventStatus.FAILED
    assert entries[0].change_reason == "lost lottery"
    assert env.transition_log_repo.list_for_event(8) == []


def test_run_summary_is_logged(env, caplog):
    with caplog.at_level("INFO", logger="event_lottery.domain.handlers"):
        env.bus.publish(LotteryRunCompleted(confirmed_ids=[1, 3], failed_ids=[2], write_failures=[]))

    assert "2 confirmed, 1 failed, 0 write failure(s)" in caplog.text
