"""Tests for lottery winner selection and group resolution."""

import random
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from event_lottery.domain.exceptions import EmptyGroupError
from event_lottery.domain.models import Event
from event_lottery.services.lottery import select_winner
from event_lottery.services.resolver import resolve_group, resolve_groups

_DAY = datetime(2026, 6, 8, tzinfo=timezone.utc)


class FixedRandom:
    """Always draws the same index and remembers every call."""

    def __init__(self, index: int) -> None:
        self.index = index
        self.calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        return self.index


def _make_event(event_id: int, start_hour: int = 9) -> Event:
    return Event(
        id=event_id,
        start=_DAY + timedelta(hours=start_hour),
        end=_DAY + timedelta(hours=start_hour + 2),
    )


# ---------------------------------------------------------------------------
# select_winner
# ---------------------------------------------------------------------------


def test_injected_source_decides_the_winner():
    group = ["a", "b", "c"]
    rng = FixedRandom(2)

    assert select_winner(group, rng) == "c"
    assert rng.calls == [3]


def test_seeded_source_is_reproducible():
    group = list(range(10))
    first = [select_winner(group, random.Random(7)) for _ in range(5)]
    second = [select_winner(group, random.Random(7)) for _ in range(5)]
    assert first == second


def test_default_source_returns_a_member():
    group = [_make_event(1), _make_event(2)]
    assert select_winner(group) in group


def test_empty_group_is_rejected():
    with pytest.raises(EmptyGroupError):
        select_winner([], FixedRandom(0))


def test_empty_group_error_is_a_value_error():
    with pytest.raises(ValueError):
        select_winner([])


def test_draws_are_uniform():
    """Each of four members wins about a quarter of 8000 draws."""
    rng = random.Random(1234)
    group = ["a", "b", "c", "d"]

    counts = Counter(select_winner(group, rng) for _ in range(8000))

    assert set(counts) == set(group)
    for member in group:
        assert 1800 <= counts[member] <= 2200


# ---------------------------------------------------------------------------
# resolve_group / resolve_groups
# ---------------------------------------------------------------------------


def test_singleton_confirms_without_lottery():
    rng = FixedRandom(0)

    decision = resolve_group([_make_event(4)], rng)

    assert decision.winner_id == 4
    assert decision.loser_ids == []
    assert decision.lottery is False
    assert rng.calls == []
    assert decision.describe() == "Event 4 confirmed (no overlap)"


def test_multi_member_group_has_one_winner_and_fails_the_rest():
    group = [_make_event(1), _make_event(2, 10), _make_event(3, 10)]

    decision = resolve_group(group, FixedRandom(1))

    assert decision.group_ids == [1, 2, 3]
    assert decision.winner_id == 2
    assert decision.loser_ids == [1, 3]
    assert decision.lottery is True


def test_decision_line_names_members_and_winner():
    decision = resolve_group([_make_event(1), _make_event(2, 10)], FixedRandom(0))

    line = decision.describe()
    assert "[1, 2]" in line
    assert "winner: 1" in line


def test_every_group_gets_a_decision_with_a_member_winner():
    rng = random.Random(99)
    groups = [
        [_make_event(1), _make_event(2, 10)],
        [_make_event(3, 14)],
        [_make_event(4, 18), _make_event(5, 18), _make_event(6, 19)],
    ]

    decisions = resolve_groups(groups, rng)

    assert len(decisions) == 3
    for group, decision in zip(groups, decisions):
        ids = [e.id for e in group]
        assert decision.winner_id in ids
        assert sorted([decision.winner_id] + decision.loser_ids) == sorted(ids)


def test_resolving_an_empty_group_is_rejected():
    with pytest.raises(EmptyGroupError):
        resolve_group([], FixedRandom(0))
