"""
Scoreboard Pipeline - Runs the two passes over one match.

Pass 1 builds the player registry, pass 2 accumulates stats seeded with
it, then the scoreboard is finalized. The passes are strictly sequential:
the accumulator is only created once the first pass has been exhausted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from demostats.core.config import DemoStatsConfig
from demostats.scoreboard.accumulator import StatAccumulator
from demostats.scoreboard.registry import build_registry
from demostats.scoreboard.snapshot import Scoreboard

logger = logging.getLogger(__name__)


@dataclass
class ScoreboardResult:
    """A finalized scoreboard plus bookkeeping about the run."""

    scoreboard: Scoreboard
    player_count: int
    rounds: int
    incomplete_events: int
    events_processed: int
    started_at: datetime
    finished_at: datetime
    output_path: Path | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class ScoreboardPipeline:
    """
    Orchestrates registry, accumulation and finalization over one source.

    ``source`` is any object whose ``events()`` method starts a fresh,
    complete pass over the match each time it is called. Errors raised by
    the source propagate unchanged and no scoreboard is produced.
    """

    def __init__(self, source: Any, config: DemoStatsConfig | None = None):
        self.source = source
        self.config = config or DemoStatsConfig()

    def run(self) -> ScoreboardResult:
        started_at = datetime.now()

        logger.info("Pass 1: building player registry")
        registry = build_registry(self.source.events())
        if not registry:
            logger.warning("No players connected; scoreboard will be empty")

        logger.info("Pass 2: accumulating stats")
        accumulator = StatAccumulator(registry, self.config.scoreboard)
        accumulator.run(self.source.events())

        scoreboard = accumulator.finalize()
        return ScoreboardResult(
            scoreboard=scoreboard,
            player_count=len(registry),
            rounds=scoreboard.round_number,
            incomplete_events=scoreboard.incomplete_events,
            events_processed=accumulator.events_processed,
            started_at=started_at,
            finished_at=datetime.now(),
        )


def analyze_demo(
    demo_path: str | Path,
    output: Path | None = None,
    config: DemoStatsConfig | None = None,
) -> ScoreboardResult:
    """
    Compute the scoreboard for a demo file, optionally exporting it.

    Args:
        demo_path: Path to the .dem file
        output: Where to write the export (format from suffix)
        config: Configuration (defaults to built-in values)

    Returns:
        ScoreboardResult for the match
    """
    from demostats.core.parser import DemoEventSource
    from demostats.export import export_scoreboard

    config = config or DemoStatsConfig()
    source = DemoEventSource(demo_path, config.parser)
    result = ScoreboardPipeline(source, config).run()

    if output is not None:
        result.output_path = export_scoreboard(result.scoreboard, output, config.export)
    return result
