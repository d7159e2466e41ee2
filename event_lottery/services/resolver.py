"""Service for turning overlap groups into confirm/fail decisions."""

from __future__ import annotations

from event_lottery.domain.models import Decision, Event
from event_lottery.services.lottery import RandomSource, select_winner


def resolve_group(group: list[Event], rng: RandomSource | None = None) -> Decision:
    """Confirm a lone event outright; otherwise hold a lottery and fail the rest."""
    ids = [event.id for event in group]
    if len(group) == 1:
        return Decision(group_ids=ids, winner_id=ids[0])

    winner = select_winner(group, rng)
    return Decision(
        group_ids=ids,
        winner_id=winner.id,
        loser_ids=[i for i in ids if i != winner.id],
        lottery=True,
    )


def resolve_groups(
    groups: list[list[Event]], rng: RandomSource | None = None
) -> list[Decision]:
    return [resolve_group(group, rng) for group in groups]
