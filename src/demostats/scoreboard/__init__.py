"""
demostats Scoreboard - The stat-aggregation engine.

- registry: first pass, player identities from connect events
- accumulator: second pass, per-player StatRow reduction
- snapshot: finalization into an immutable Scoreboard
"""

from demostats.scoreboard.accumulator import StatAccumulator, StatRow, accumulate
from demostats.scoreboard.registry import PlayerIdentity, build_registry
from demostats.scoreboard.snapshot import Scoreboard, finalize

__all__ = [
    "PlayerIdentity",
    "Scoreboard",
    "StatAccumulator",
    "StatRow",
    "accumulate",
    "build_registry",
    "finalize",
]
