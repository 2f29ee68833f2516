"""
Export Functionality for demostats

Serializes a finalized scoreboard to:
- JSON (default): player name -> {metric name: value}
- CSV: one row per player, one column per metric

Metrics a player does not have are left out of JSON and blank in CSV.
"""

import csv
import json
import logging
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import Any

from demostats.core.config import ExportConfig
from demostats.scoreboard.snapshot import Scoreboard

logger = logging.getLogger(__name__)


METRIC_COLUMNS = [
    "Total Damage",
    "Utility Damage",
    "Kills",
    "Deaths",
    "Assists",
    "KDR",
    "ADR",
    "Headshots",
    "Headshot %",
    "Flash Assists",
]


def scoreboard_to_dict(scoreboard: Scoreboard) -> dict[str, dict[str, float]]:
    """Convert a scoreboard to plain nested dictionaries."""
    return scoreboard.to_dict()


# ============================================================================
# JSON Export
# ============================================================================


def export_to_json(
    scoreboard: Scoreboard,
    output_path: Path | None = None,
    indent: int | None = 2,
    sort_keys: bool = True,
    include_metadata: bool = False,
) -> str:
    """
    Export a scoreboard to JSON format.

    Args:
        scoreboard: Finalized scoreboard
        output_path: Optional path to write the file
        indent: JSON indentation level
        sort_keys: Sort keys so identical scoreboards serialize identically
        include_metadata: Add an ``_metadata`` block with export time

    Returns:
        JSON string
    """
    export_data: dict[str, Any] = scoreboard_to_dict(scoreboard)

    if include_metadata:
        export_data = {
            "_metadata": {
                "exported_at": datetime.now().isoformat(),
                "format": "demostats_json",
                "version": "1.0",
                "rounds": scoreboard.round_number,
                "incomplete_events": scoreboard.incomplete_events,
            },
            **export_data,
        }

    json_str = json.dumps(export_data, indent=indent, sort_keys=sort_keys)

    if output_path:
        output_path.write_text(json_str)
        logger.info(f"Exported JSON to: {output_path}")

    return json_str


# ============================================================================
# CSV Export
# ============================================================================


def export_to_csv(
    scoreboard: Scoreboard,
    output_path: Path | None = None,
    delimiter: str = ",",
    include_header: bool = True,
) -> str:
    """
    Export a scoreboard to CSV format.

    Args:
        scoreboard: Finalized scoreboard
        output_path: Optional path to write the file
        delimiter: CSV delimiter character
        include_header: Whether to include column headers

    Returns:
        CSV string
    """
    output = StringIO()
    writer = csv.DictWriter(
        output, fieldnames=["Player", *METRIC_COLUMNS], delimiter=delimiter, restval=""
    )

    if include_header:
        writer.writeheader()

    for name, metrics in scoreboard_to_dict(scoreboard).items():
        writer.writerow({"Player": name, **metrics})

    csv_str = output.getvalue()

    if output_path:
        output_path.write_text(csv_str, newline="")
        logger.info(f"Exported CSV to: {output_path}")

    return csv_str


# ============================================================================
# Dispatch and Loading
# ============================================================================


def export_scoreboard(
    scoreboard: Scoreboard,
    output_path: Path,
    config: ExportConfig | None = None,
) -> Path:
    """
    Write a scoreboard to ``output_path``, choosing the format from its suffix.

    Paths without a suffix get the configured default format appended.
    """
    config = config or ExportConfig()
    output_path = Path(output_path)
    if not output_path.suffix:
        output_path = output_path.with_suffix(f".{config.default_format}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = output_path.suffix.lower()
    if suffix == ".json":
        export_to_json(
            scoreboard,
            output_path,
            indent=config.json_indent,
            sort_keys=config.sort_keys,
            include_metadata=config.include_metadata,
        )
    elif suffix == ".csv":
        export_to_csv(scoreboard, output_path, delimiter=config.csv_delimiter)
    else:
        raise ValueError(f"Unsupported export format: {suffix}")

    return output_path


def load_scoreboard_json(path: Path) -> dict[str, dict[str, float]]:
    """Read a JSON export back into player name -> metrics."""
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return {
        name: {metric: float(value) for metric, value in metrics.items()}
        for name, metrics in data.items()
        if name != "_metadata"
    }
