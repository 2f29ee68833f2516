"""
demostats - CS2 Demo Scoreboard Builder

Replays a CS2 demo twice through an ordered event stream: the first pass
registers every player, the second reduces the events into per-player
statistics (damage, KDR, ADR, headshot %, flash assists).

Usage:
    from demostats import analyze_demo

    result = analyze_demo("match.dem", output=Path("match.json"))

    for name, row in result.scoreboard.items():
        print(f"{name}: {row.kdr:.2f} KDR, {row.adr:.1f} ADR")
"""

__version__ = "0.1.0"
__author__ = "demostats Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "DemoEventSource":
        from demostats.core.parser import DemoEventSource
        return DemoEventSource
    elif name == "MemoryEventSource":
        from demostats.core.events import MemoryEventSource
        return MemoryEventSource
    elif name == "build_registry":
        from demostats.scoreboard.registry import build_registry
        return build_registry
    elif name == "accumulate":
        from demostats.scoreboard.accumulator import accumulate
        return accumulate
    elif name == "finalize":
        from demostats.scoreboard.snapshot import finalize
        return finalize
    elif name == "Scoreboard":
        from demostats.scoreboard.snapshot import Scoreboard
        return Scoreboard
    elif name == "ScoreboardPipeline":
        from demostats.pipeline.orchestrator import ScoreboardPipeline
        return ScoreboardPipeline
    elif name == "analyze_demo":
        from demostats.pipeline.orchestrator import analyze_demo
        return analyze_demo
    raise AttributeError(f"module 'demostats' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Event sources
    "DemoEventSource",
    "MemoryEventSource",
    # Engine
    "build_registry",
    "accumulate",
    "finalize",
    "Scoreboard",
    # Pipeline
    "ScoreboardPipeline",
    "analyze_demo",
]
