"""
demostats Pipeline - Scoreboard orchestration.

This module handles the complete processing pipeline:
- Registry pass over the event source
- Accumulation pass seeded with the registry
- Finalization and optional export
"""

from demostats.pipeline.orchestrator import ScoreboardPipeline, ScoreboardResult, analyze_demo

__all__ = ["ScoreboardPipeline", "ScoreboardResult", "analyze_demo"]
