"""
Stat Accumulator

Second pass over a match: seeds one StatRow per registered player and
reduces the event stream into per-player statistics.

Derived metrics are always recomputed from the event source's cumulative
live totals rather than maintained as running deltas:

- KDR: kills / deaths, or the raw kill count when deaths == 0
- ADR: total damage / round counter (the counter starts at 1)
- Headshot %: headshot kills / kills, left unset while kills == 0

Events whose participants are missing or unregistered are skipped and
counted; only a failure of the stream itself aborts the pass.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace

from demostats.core.config import ScoreboardConfig
from demostats.core.events import EventKind, GameEvent, PlayerKey, PlayerState
from demostats.scoreboard.registry import PlayerIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatRow:
    """Raw and derived statistics for one player."""

    name: str
    total_damage: int = 0
    utility_damage: int = 0
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    headshots: int = 0
    flash_assists: int = 0
    kdr: float = 0.0
    adr: float | None = None
    headshot_pct: float | None = None

    def to_metrics(self) -> dict[str, float]:
        """Named metrics for export; unset and zero-only counters are omitted."""
        metrics = {
            "Total Damage": float(self.total_damage),
            "Utility Damage": float(self.utility_damage),
            "Kills": float(self.kills),
            "Deaths": float(self.deaths),
            "Assists": float(self.assists),
            "KDR": float(self.kdr),
        }
        if self.adr is not None:
            metrics["ADR"] = float(self.adr)
        if self.headshots:
            metrics["Headshots"] = float(self.headshots)
        if self.headshot_pct is not None:
            metrics["Headshot %"] = float(self.headshot_pct)
        if self.flash_assists:
            metrics["Flash Assists"] = float(self.flash_assists)
        return metrics


def compute_kdr(kills: int, deaths: int) -> float:
    """Kill/death ratio, falling back to the kill count with no deaths."""
    if deaths == 0:
        return float(kills)
    return kills / deaths


def compute_adr(total_damage: int, rounds: int, integer: bool = False) -> float:
    """Average damage per round over ``rounds`` rounds elapsed."""
    if integer:
        return float(int(total_damage) // int(rounds))
    return total_damage / rounds


def compute_headshot_pct(headshots: int, kills: int) -> float | None:
    """Share of kills that were headshots, or None when there are no kills."""
    if kills == 0:
        return None
    return headshots / kills


def read_totals(row: StatRow, state: PlayerState) -> StatRow:
    """Copy the cumulative counters from live state and recompute KDR."""
    return replace(
        row,
        total_damage=state.total_damage,
        utility_damage=state.utility_damage,
        kills=state.kills,
        deaths=state.deaths,
        assists=state.assists,
        kdr=compute_kdr(state.kills, state.deaths),
    )


class StatAccumulator:
    """
    Reduces one pass of events into a table of StatRows keyed by player name.

    The accumulator is the only writer of its rows. Each transition replaces
    the affected frozen row, so a row handed out earlier never changes.
    """

    def __init__(
        self,
        registry: dict[PlayerKey, PlayerIdentity],
        config: ScoreboardConfig | None = None,
    ):
        self.config = config or ScoreboardConfig()
        if self.config.initial_round < 1:
            raise ValueError(f"initial_round must be >= 1, got {self.config.initial_round}")

        self.registry = registry
        self.round_number = self.config.initial_round
        self.incomplete_events = 0
        self.events_processed = 0
        self.rows: dict[str, StatRow] = {}
        self._live: dict[PlayerKey, PlayerState] = {}
        self._members: dict[str, list[PlayerKey]] = {}
        self._seed()

    def _seed(self) -> None:
        for user_id, identity in self.registry.items():
            members = self._members.setdefault(identity.name, [])
            if members:
                logger.warning(
                    f"Players share the name {identity.name!r}; their totals are summed into one row"
                )
            members.append(user_id)
            self._live[user_id] = identity.state
            logger.debug(
                f"[Player info] {identity.name}: kills={identity.state.kills}, "
                f"deaths={identity.state.deaths}, assists={identity.state.assists}"
            )
        for name in self._members:
            self.rows[name] = read_totals(StatRow(name=name), self._totals(name))

    def _totals(self, name: str) -> PlayerState:
        """Live totals behind one row, summed when several players share its name."""
        states = [self._live[user_id] for user_id in self._members[name]]
        if len(states) == 1:
            return states[0]
        return PlayerState(
            user_id=states[0].user_id,
            name=name,
            total_damage=sum(s.total_damage for s in states),
            utility_damage=sum(s.utility_damage for s in states),
            kills=sum(s.kills for s in states),
            deaths=sum(s.deaths for s in states),
            assists=sum(s.assists for s in states),
        )

    def _identity(self, state: PlayerState | None) -> PlayerIdentity | None:
        if state is None:
            return None
        return self.registry.get(state.user_id)

    def _bind(self, state: PlayerState) -> None:
        # Re-reads must observe the totals of the pass in progress
        self._live[state.user_id] = state

    def _skip(self, event: GameEvent, reason: str) -> None:
        self.incomplete_events += 1
        logger.debug(f"Skipping incomplete {event.kind.value} at tick {event.tick}: {reason}")

    def apply(self, event: GameEvent) -> None:
        """Apply one event; the full transition table lives here."""
        self.events_processed += 1
        kind = event.kind

        if kind is EventKind.ROUND_END_OFFICIAL:
            self._on_round_end(event)
        elif kind is EventKind.KILL:
            self._on_kill(event)
        elif kind is EventKind.PLAYER_FLASHED:
            self._on_flash(event)
        elif kind is EventKind.PLAYER_CONNECT:
            if self._identity(event.player) is not None:
                self._bind(event.player)
        else:
            logger.debug(f"Ignoring {kind.value} event at tick {event.tick}")

    def _on_round_end(self, event: GameEvent) -> None:
        self.round_number += 1
        for name in self._members:
            state = self._totals(name)
            self.rows[name] = replace(
                self.rows[name],
                total_damage=state.total_damage,
                adr=compute_adr(state.total_damage, self.round_number, self.config.integer_adr),
            )
        logger.debug(f"Round counter now {self.round_number} (tick {event.tick})")

    def _on_kill(self, event: GameEvent) -> None:
        killer = self._identity(event.attacker)
        victim = self._identity(event.victim)
        if killer is None or victim is None:
            self._skip(event, "killer or victim missing")
            return

        self._bind(event.attacker)
        self._bind(event.victim)
        self.rows[victim.name] = read_totals(self.rows[victim.name], self._totals(victim.name))
        row = read_totals(self.rows[killer.name], self._totals(killer.name))

        if event.headshot:
            headshots = row.headshots + 1
            pct = compute_headshot_pct(headshots, row.kills)
            row = replace(row, headshots=headshots)
            if pct is not None:
                row = replace(row, headshot_pct=pct)
                if pct > 1.0:
                    logger.warning(
                        f"{killer.name} has more headshots ({headshots}) than kills ({row.kills})"
                    )
        self.rows[killer.name] = row

    def _on_flash(self, event: GameEvent) -> None:
        attacker = self._identity(event.attacker)
        flashed = self._identity(event.player)
        if attacker is None or flashed is None:
            self._skip(event, "attacker or flashed player missing")
            return
        if event.attacker_team is None or event.player_team is None:
            self._skip(event, "team unknown")
            return

        self._bind(event.attacker)
        self._bind(event.player)
        if event.attacker_team != event.player_team:
            row = self.rows[attacker.name]
            self.rows[attacker.name] = replace(row, flash_assists=row.flash_assists + 1)

    def run(self, events: Iterable[GameEvent]) -> dict[str, StatRow]:
        """Consume a full pass of events and return the rows."""
        for event in events:
            self.apply(event)
        logger.info(
            f"Accumulated {self.events_processed} events over {self.round_number} rounds "
            f"({self.incomplete_events} incomplete)"
        )
        return self.rows

    def live_states(self) -> dict[str, PlayerState]:
        """Current live state per player name."""
        return {name: self._totals(name) for name in self._members}

    def finalize(self):
        """Build the immutable scoreboard from the current rows."""
        from demostats.scoreboard.snapshot import finalize

        return finalize(
            self.rows,
            live=self.live_states(),
            round_number=self.round_number,
            integer_adr=self.config.integer_adr,
            incomplete_events=self.incomplete_events,
        )


def accumulate(
    events: Iterable[GameEvent],
    registry: dict[PlayerKey, PlayerIdentity],
    config: ScoreboardConfig | None = None,
) -> dict[str, StatRow]:
    """
    Run the accumulator over one full pass.

    Args:
        events: A fresh pass over the same match the registry was built from
        registry: Output of ``build_registry``
        config: Scoreboard settings (initial round, ADR arithmetic)

    Returns:
        Mapping of player name to StatRow
    """
    return StatAccumulator(registry, config).run(events)
