"""Service for drawing a lottery winner from a conflict group."""

from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar

from event_lottery.domain.exceptions import EmptyGroupError

T = TypeVar("T")


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def select_winner(group: Sequence[T], rng: RandomSource | None = None) -> T:
    """Pick one member of *group*, each with probability ``1 / len(group)``.

    Pass *rng* (e.g. a seeded ``random.Random``) to control the draw.
    """
    if not group:
        raise EmptyGroupError("Cannot draw a winner from an empty group")
    source = rng if rng is not None else random
    return group[source.randrange(len(group))]
