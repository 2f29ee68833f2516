"""
Demo Event Source for CS2 Replay Files

Wraps demoparser2 to turn a .dem file into the ordered stream of typed
events the scoreboard engine consumes. Each call to ``events()`` opens a
fresh parser over the file, so the source supports any number of full
passes over the same recording.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from demostats.core.config import ParserConfig
from demostats.core.events import EventKind, EventSourceError, GameEvent, LiveStateTracker

if TYPE_CHECKING:
    from demoparser2 import DemoParser as Demoparser2

try:
    from demoparser2 import DemoParser as Demoparser2

    DEMOPARSER2_AVAILABLE = True
except ImportError:
    DEMOPARSER2_AVAILABLE = False

logger = logging.getLogger(__name__)


# Safe type conversion helpers
def safe_int(value: Any, default: int = 0) -> int:
    """Safely convert a value to int."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
        return int(value)
    except (ValueError, TypeError):
        return default


def safe_str(value: Any, default: str = "") -> str:
    """Safely convert a value to string."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    return str(value)


def safe_bool(value: Any, default: bool = False) -> bool:
    """Safely convert a value to bool."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
        return bool(value)
    except (ValueError, TypeError):
        return default


def safe_float(value: Any, default: float = 0.0) -> float:
    """Safely convert a value to float."""
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
        return float(value)
    except (ValueError, TypeError):
        return default


def team_name(team_num: Any) -> str | None:
    """Map a CS2 team number to a side label."""
    num = safe_int(team_num, default=-1)
    if num == 3:
        return "CT"
    if num == 2:
        return "T"
    return None


def optional_id(value: Any) -> int | None:
    """Steam IDs of 0 or missing mean the participant is unknown."""
    sid = safe_int(value)
    return sid if sid else None


STEAM_ID64_BASE = 76561197960265728
_STEAM_ID3 = re.compile(r"\[U:1:(\d+)\]")


def connect_id(row: dict[str, Any]) -> int | None:
    """
    Steam ID of a player_connect row.

    ``xuid`` and ``steamid`` carry the 64-bit ID directly. ``networkid`` is a
    Steam ID3 string such as ``[U:1:12345]``, or ``BOT`` for bots.
    """
    for column in ("xuid", "steamid"):
        sid = optional_id(row.get(column))
        if sid is not None:
            return sid
    match = _STEAM_ID3.fullmatch(safe_str(row.get("networkid")))
    if match:
        return STEAM_ID64_BASE + int(match.group(1))
    return None


# Order of record kinds sharing a tick: connects first, round end last
_KIND_PRIORITY = {
    EventKind.PLAYER_CONNECT.value: 0,
    EventKind.PLAYER_HURT.value: 1,
    EventKind.KILL.value: 2,
    EventKind.PLAYER_FLASHED.value: 3,
    EventKind.ROUND_END_OFFICIAL.value: 4,
}


class DemoEventSource:
    """
    Replayable event source over a CS2 demo file.

    Extracts connect, death, hurt, blind and official round-end events
    with demoparser2, normalises them into raw records and replays them
    in tick order through a ``LiveStateTracker``.
    """

    EVENTS_TO_PARSE = {
        "player_connect": EventKind.PLAYER_CONNECT,
        "player_hurt": EventKind.PLAYER_HURT,
        "player_death": EventKind.KILL,
        "player_blind": EventKind.PLAYER_FLASHED,
        "round_officially_ended": EventKind.ROUND_END_OFFICIAL,
    }

    PLAYER_PROPS = ["team_num"]

    def __init__(self, demo_path: str | Path, config: ParserConfig | None = None):
        self.config = config or ParserConfig()
        self.demo_path = Path(demo_path)
        if not self.demo_path.exists():
            raise FileNotFoundError(f"Demo file not found: {demo_path}")
        if self.demo_path.suffix.lower() != self.config.demo_suffix:
            raise ValueError(
                f"Expected {self.config.demo_suffix} file, got: {self.demo_path.suffix}"
            )
        self.passes = 0

    def _open(self) -> Demoparser2:
        if not DEMOPARSER2_AVAILABLE:
            raise ImportError(
                "demoparser2 is required but not installed. "
                "Install with: pip install demoparser2"
            )
        return Demoparser2(str(self.demo_path))

    def _parse_event(self, parser: Demoparser2, event_name: str) -> pd.DataFrame:
        """Parse one event type; decoder failures abort the pass."""
        try:
            df = parser.parse_event(event_name, player=self.PLAYER_PROPS)
        except Exception as e:
            raise EventSourceError(f"Failed to read {event_name} from {self.demo_path}: {e}") from e
        if df is None:
            return pd.DataFrame()
        return df

    def _player_info_records(self, parser: Demoparser2) -> list[dict[str, Any]]:
        """Synthetic tick-0 connects for players present in the header."""
        try:
            info = parser.parse_player_info()
        except Exception as e:
            logger.warning(f"Could not parse player info: {e}")
            return []
        if info is None or not isinstance(info, pd.DataFrame) or info.empty:
            return []

        records = []
        for _, row in info.iterrows():
            sid = optional_id(row.get("steamid"))
            if sid is None:
                continue
            records.append({
                "event": EventKind.PLAYER_CONNECT.value,
                "tick": 0,
                "user_id": sid,
                "name": safe_str(row.get("name"), default=f"Player_{str(sid)[-4:]}"),
                "team": team_name(row.get("team_number")),
            })
        return records

    def _to_record(self, kind: EventKind, row: dict[str, Any]) -> dict[str, Any]:
        tick = safe_int(row.get("tick"))
        if kind is EventKind.PLAYER_CONNECT:
            sid = connect_id(row)
            return {
                "event": kind.value,
                "tick": tick,
                "user_id": sid,
                "name": safe_str(row.get("name")),
            }
        if kind is EventKind.PLAYER_HURT:
            return {
                "event": kind.value,
                "tick": tick,
                "attacker": optional_id(row.get("attacker_steamid")),
                "victim": optional_id(row.get("user_steamid")),
                "attacker_team": team_name(row.get("attacker_team_num")),
                "victim_team": team_name(row.get("user_team_num")),
                "damage": safe_int(row.get("dmg_health")),
                "weapon": safe_str(row.get("weapon")),
            }
        if kind is EventKind.KILL:
            return {
                "event": kind.value,
                "tick": tick,
                "attacker": optional_id(row.get("attacker_steamid")),
                "victim": optional_id(row.get("user_steamid")),
                "assister": optional_id(row.get("assister_steamid")),
                "attacker_team": team_name(row.get("attacker_team_num")),
                "victim_team": team_name(row.get("user_team_num")),
                "headshot": safe_bool(row.get("headshot")),
                "weapon": safe_str(row.get("weapon")),
            }
        if kind is EventKind.PLAYER_FLASHED:
            return {
                "event": kind.value,
                "tick": tick,
                "attacker": optional_id(row.get("attacker_steamid")),
                "player": optional_id(row.get("user_steamid")),
                "attacker_team": team_name(row.get("attacker_team_num")),
                "player_team": team_name(row.get("user_team_num")),
                "duration": safe_float(row.get("blind_duration")),
            }
        return {"event": kind.value, "tick": tick}

    def load_records(self) -> list[dict[str, Any]]:
        """Read the demo once and return all raw records in replay order."""
        parser = self._open()
        records = self._player_info_records(parser)

        for event_name, kind in self.EVENTS_TO_PARSE.items():
            df = self._parse_event(parser, event_name)
            if df.empty:
                logger.debug(f"No {event_name} events in {self.demo_path.name}")
                continue
            for row in df.to_dict("records"):
                records.append(self._to_record(kind, row))
            logger.debug(f"Parsed {len(df)} {event_name} events")

        # Stable sort keeps the decoder's order within a tick and kind
        records.sort(key=lambda r: (r["tick"], _KIND_PRIORITY[r["event"]]))
        return records

    def events(self) -> Iterator[GameEvent]:
        """Start a fresh full pass over the demo."""
        self.passes += 1
        logger.info(f"Reading {self.demo_path.name} (pass {self.passes})")
        records = self.load_records()
        tracker = LiveStateTracker(
            emit_hurt_events=self.config.emit_hurt_events,
            utility_weapons=self.config.utility_weapons,
        )
        return tracker.replay(records)
