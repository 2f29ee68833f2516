"""
Player Registry

First pass over a match: collects the identity of every participant from
connect events so the accumulator can seed one row per player before it
sees any other event.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from demostats.core.events import EventKind, GameEvent, PlayerKey, PlayerState

logger = logging.getLogger(__name__)


@dataclass
class PlayerIdentity:
    """A registered participant and the live state observed on connect."""

    user_id: PlayerKey
    name: str
    state: PlayerState


def build_registry(events: Iterable[GameEvent]) -> dict[PlayerKey, PlayerIdentity]:
    """
    Build the player registry from one full pass of events.

    Reconnects overwrite the earlier entry for the same ``user_id``. An
    empty match yields an empty registry, not an error.

    Args:
        events: A fresh, complete pass over the match

    Returns:
        Mapping of user_id to PlayerIdentity
    """
    registry: dict[PlayerKey, PlayerIdentity] = {}

    for event in events:
        if event.kind is not EventKind.PLAYER_CONNECT:
            continue
        if event.player is None:
            logger.debug(f"Connect event without a player at tick {event.tick}")
            continue
        player = event.player
        registry[player.user_id] = PlayerIdentity(
            user_id=player.user_id, name=player.name, state=player
        )

    logger.info(f"Registered {len(registry)} players")
    return registry
