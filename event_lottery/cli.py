"""Command line entry point: run the lottery once, e.g. from cron."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from event_lottery.config import get_settings
from event_lottery.domain.bus import EventBus
from event_lottery.domain.exceptions import StoreUnavailableError
from event_lottery.domain.handlers import HandlerRegistry
from event_lottery.domain.models import parse_instant
from event_lottery.repos.memory import TransitionLogRepository, create_event_repository
from event_lottery.services.pipeline import EventStore, ProcessingPipeline


def _instant(value: str) -> datetime:
    try:
        return parse_instant(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 instant: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="event_lottery", description=__doc__)
    parser.add_argument("--offset-days", type=int, default=settings.offset_days)
    parser.add_argument("--now", type=_instant, default=None, help="evaluate the window relative to this instant")
    parser.add_argument("--json", action="store_true", help="print the full run report as JSON")
    return parser


def main(argv: list[str] | None = None, store: EventStore | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if store is None:
        store = create_event_repository(now=args.now, offset_days=args.offset_days)
    bus = EventBus()
    HandlerRegistry(bus=bus, transition_log_repo=TransitionLogRepository())
    pipeline = ProcessingPipeline(
        store=store,
        bus=bus,
        offset_days=args.offset_days,
        lock_timeout_seconds=settings.lock_timeout_seconds,
    )

    try:
        report = pipeline.run(args.now)
    except StoreUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        for line in report.log:
            print(line)
    return 0
