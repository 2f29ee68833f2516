"""
demostats Core - Foundation modules for event replay.

This module contains the fundamental components:
- config: Application configuration management
- events: Typed game events, live player state and in-memory sources
- parser: Demo file event source using demoparser2
"""

from demostats.core.events import (
    EventKind,
    EventSourceError,
    GameEvent,
    LiveStateTracker,
    MemoryEventSource,
    PlayerState,
)

__all__ = [
    "EventKind",
    "EventSourceError",
    "GameEvent",
    "LiveStateTracker",
    "MemoryEventSource",
    "PlayerState",
]
