"""Exceptions raised by the lottery core and its event store."""


class EventLotteryError(Exception):
    """Base class for every event lottery failure."""


class StoreUnavailableError(EventLotteryError):
    """The event store could not be read; the current run must abort."""


class StoreWriteError(EventLotteryError):
    """A status write was rejected; the affected events stay pending."""

    def __init__(self, event_ids, reason: str = "write rejected"):
        self.event_ids = list(event_ids)
        super().__init__(f"Could not update events {self.event_ids}: {reason}")


class EmptyGroupError(EventLotteryError, ValueError):
    """A lottery was requested over an empty group."""
