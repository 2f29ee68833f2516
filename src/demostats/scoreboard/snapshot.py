"""
Scoreboard Snapshot Builder

Finalizes accumulator rows into an immutable, exportable scoreboard.
"""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import replace
from types import MappingProxyType

from demostats.core.events import PlayerState
from demostats.scoreboard.accumulator import (
    StatRow,
    compute_adr,
    compute_headshot_pct,
    compute_kdr,
    read_totals,
)

logger = logging.getLogger(__name__)


class Scoreboard(Mapping):
    """Read-only mapping of player name to final StatRow."""

    def __init__(self, rows: dict[str, StatRow], round_number: int, incomplete_events: int = 0):
        self._rows = MappingProxyType(dict(sorted(rows.items())))
        self._round_number = round_number
        self._incomplete_events = incomplete_events

    @property
    def round_number(self) -> int:
        """Final value of the round counter."""
        return self._round_number

    @property
    def incomplete_events(self) -> int:
        """Events skipped because a participant was missing."""
        return self._incomplete_events

    def __getitem__(self, name: str) -> StatRow:
        return self._rows[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"Scoreboard(players={len(self)}, rounds={self.round_number})"

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Player name -> metric name -> value, sparse."""
        return {name: row.to_metrics() for name, row in self._rows.items()}


def finalize_row(
    row: StatRow,
    state: PlayerState | None,
    round_number: int,
    integer_adr: bool = False,
) -> StatRow:
    """Recompute a row's derived fields from its last-known cumulative totals."""
    if state is not None:
        row = read_totals(row, state)
    return replace(
        row,
        kdr=compute_kdr(row.kills, row.deaths),
        adr=compute_adr(row.total_damage, round_number, integer_adr),
        headshot_pct=compute_headshot_pct(row.headshots, row.kills),
    )


def finalize(
    rows: dict[str, StatRow],
    live: dict[str, PlayerState] | None = None,
    round_number: int = 1,
    integer_adr: bool = False,
    incomplete_events: int = 0,
) -> Scoreboard:
    """
    Build the final scoreboard.

    Cached ratios are never trusted: every row's KDR, ADR and headshot %
    are recomputed, using ``live`` totals where a player has them.

    Args:
        rows: Accumulator rows keyed by player name
        live: Live player state keyed by player name
        round_number: Final round counter (ADR denominator)
        integer_adr: Floor-divide damage by rounds
        incomplete_events: Count of skipped events, carried for reporting

    Returns:
        Immutable Scoreboard
    """
    live = live or {}
    final = {
        name: finalize_row(row, live.get(name), round_number, integer_adr)
        for name, row in rows.items()
    }
    for name, row in final.items():
        if row.headshot_pct is not None and row.headshot_pct > 1.0:
            logger.warning(f"{name}: headshot % above 1.0 ({row.headshot_pct:.2f})")

    logger.info(f"Finalized scoreboard for {len(final)} players after {round_number} rounds")
    return Scoreboard(final, round_number=round_number, incomplete_events=incomplete_events)
