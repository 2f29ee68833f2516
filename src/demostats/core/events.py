"""
Typed Game Events and Replayable Event Sources

Defines the single tagged event type consumed by the scoreboard engine,
the live per-player state the event source keeps up to date while it
replays a match, and the in-memory event source used for tests and for
re-analysing previously extracted records.

Every event source must support repeated full passes: each call to
``events()`` starts a fresh traversal from the beginning of the match.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


UTILITY_WEAPONS = frozenset({"hegrenade", "molotov", "incgrenade", "inferno"})

# Steam IDs from demos, or any stable string key for hand-built records
PlayerKey = int | str


class EventSourceError(RuntimeError):
    """The underlying event stream failed; the current pass is aborted."""


class EventKind(Enum):
    PLAYER_CONNECT = "player_connect"
    KILL = "kill"
    ROUND_END_OFFICIAL = "round_end_official"
    PLAYER_FLASHED = "player_flashed"
    PLAYER_HURT = "player_hurt"


@dataclass
class PlayerState:
    """Live cumulative totals for one player, owned by the event source."""

    user_id: PlayerKey
    name: str
    team: str | None = None
    total_damage: int = 0
    utility_damage: int = 0
    kills: int = 0
    deaths: int = 0
    assists: int = 0


@dataclass
class GameEvent:
    """
    One gameplay event.

    ``kind`` selects which of the optional payload fields are meaningful:

    - PLAYER_CONNECT: ``player``
    - KILL: ``attacker`` (killer), ``victim``, ``assister``, ``headshot``, ``weapon``
    - ROUND_END_OFFICIAL: ``round_number``
    - PLAYER_FLASHED: ``attacker``, ``player``, ``attacker_team``, ``player_team``, ``duration``
    - PLAYER_HURT: ``attacker``, ``victim``, ``damage``, ``weapon``

    Participants may be ``None`` when the recording could not attribute them.
    """

    kind: EventKind
    tick: int = 0
    player: PlayerState | None = None
    attacker: PlayerState | None = None
    victim: PlayerState | None = None
    assister: PlayerState | None = None
    headshot: bool = False
    weapon: str = ""
    damage: int = 0
    duration: float = 0.0
    round_number: int = 0
    attacker_team: str | None = None
    player_team: str | None = None


class LiveStateTracker:
    """
    Turns raw event records into typed events while maintaining live totals.

    A raw record is a dict with an ``event`` key (one of the ``EventKind``
    values) plus the payload fields, using ``user_id`` keys (integers or
    strings, compared as given) to name participants. Stat mutations are applied before the event is returned,
    so a consumer reading a participant's totals sees them including the
    event itself.

    One tracker serves exactly one pass: create a new one per traversal.
    """

    def __init__(
        self,
        emit_hurt_events: bool = True,
        utility_weapons: Iterable[str] | None = None,
    ):
        self.players: dict[PlayerKey, PlayerState] = {}
        self.emit_hurt_events = emit_hurt_events
        self.utility_weapons = frozenset(utility_weapons) if utility_weapons is not None else UTILITY_WEAPONS
        self.rounds_ended = 0

    def _lookup(self, user_id: PlayerKey | None) -> PlayerState | None:
        if user_id is None:
            return None
        return self.players.get(user_id)

    def _connect(self, record: dict[str, Any]) -> PlayerState:
        user_id = record["user_id"]
        state = self.players.get(user_id)
        if state is None:
            state = PlayerState(user_id=user_id, name=str(record.get("name", "")))
            self.players[user_id] = state
        elif record.get("name"):
            state.name = str(record["name"])
        if record.get("team"):
            state.team = str(record["team"])
        return state

    @staticmethod
    def _sync_team(state: PlayerState | None, team: Any) -> None:
        # Sides swap at halftime; the latest event carrying a team wins
        if state is not None and team:
            state.team = str(team)

    @staticmethod
    def _teammates(a: PlayerState, b: PlayerState) -> bool:
        # An unknown side is never treated as shared
        return a.team is not None and a.team == b.team

    def apply(self, record: dict[str, Any]) -> GameEvent | None:
        """Apply one raw record and return the typed event, if any."""
        try:
            kind = EventKind(record["event"])
        except (KeyError, ValueError):
            logger.debug(f"Ignoring unrecognized record: {record.get('event')!r}")
            return None
        tick = int(record.get("tick", 0))

        if kind is EventKind.PLAYER_CONNECT:
            if record.get("user_id") is None:
                return GameEvent(kind=kind, tick=tick)
            return GameEvent(kind=kind, tick=tick, player=self._connect(record))

        if kind is EventKind.PLAYER_HURT:
            attacker = self._lookup(record.get("attacker"))
            victim = self._lookup(record.get("victim"))
            self._sync_team(attacker, record.get("attacker_team"))
            self._sync_team(victim, record.get("victim_team"))
            damage = int(record.get("damage", 0))
            weapon = str(record.get("weapon", ""))
            if (
                attacker is not None
                and victim is not None
                and attacker is not victim
                and not self._teammates(attacker, victim)
            ):
                attacker.total_damage += damage
                if weapon in self.utility_weapons:
                    attacker.utility_damage += damage
            if not self.emit_hurt_events:
                return None
            return GameEvent(
                kind=kind, tick=tick, attacker=attacker, victim=victim,
                damage=damage, weapon=weapon,
            )

        if kind is EventKind.KILL:
            killer = self._lookup(record.get("attacker"))
            victim = self._lookup(record.get("victim"))
            assister = self._lookup(record.get("assister"))
            self._sync_team(killer, record.get("attacker_team"))
            self._sync_team(victim, record.get("victim_team"))
            if victim is not None:
                victim.deaths += 1
            if killer is not None and victim is not None and killer is not victim:
                if not self._teammates(killer, victim):
                    killer.kills += 1
            if assister is not None and assister is not victim:
                assister.assists += 1
            return GameEvent(
                kind=kind,
                tick=tick,
                attacker=killer,
                victim=victim,
                assister=assister,
                headshot=bool(record.get("headshot", False)),
                weapon=str(record.get("weapon", "")),
            )

        if kind is EventKind.PLAYER_FLASHED:
            attacker = self._lookup(record.get("attacker"))
            flashed = self._lookup(record.get("player"))
            self._sync_team(attacker, record.get("attacker_team"))
            self._sync_team(flashed, record.get("player_team"))
            return GameEvent(
                kind=kind,
                tick=tick,
                attacker=attacker,
                player=flashed,
                attacker_team=record.get("attacker_team") or (attacker.team if attacker else None),
                player_team=record.get("player_team") or (flashed.team if flashed else None),
                duration=float(record.get("duration", 0.0)),
            )

        self.rounds_ended += 1
        return GameEvent(
            kind=kind,
            tick=tick,
            round_number=int(record.get("round_number", self.rounds_ended)),
        )

    def replay(self, records: Iterable[dict[str, Any]]) -> Iterator[GameEvent]:
        """Apply records in order, yielding the typed events."""
        for record in records:
            event = self.apply(record)
            if event is not None:
                yield event


@dataclass
class MemoryEventSource:
    """
    Event source over a list of raw event records.

    Each pass builds fresh ``PlayerState`` objects, so repeated passes see
    identical totals at identical points of the stream.
    """

    records: list[dict[str, Any]] = field(default_factory=list)
    emit_hurt_events: bool = True
    utility_weapons: frozenset[str] = UTILITY_WEAPONS

    def events(self) -> Iterator[GameEvent]:
        tracker = LiveStateTracker(
            emit_hurt_events=self.emit_hurt_events,
            utility_weapons=self.utility_weapons,
        )
        return tracker.replay(list(self.records))

    def __len__(self) -> int:
        return len(self.records)
