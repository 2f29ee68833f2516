"""
Configuration for demostats

Settings come from three layers, later ones winning:

1. Dataclass defaults
2. One config file (YAML, TOML or JSON), either given explicitly or found
   as ``demostats.<ext>`` in the working directory or the user config dir
3. ``DEMOSTATS_*`` environment variables

Command line flags are applied on top by the CLI itself.
"""

import json
import logging
import logging.handlers
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class ParserConfig:
    """Configuration for the demo event source."""

    demo_suffix: str = ".dem"
    # Damage dealt with these weapons also counts as utility damage
    utility_weapons: list[str] = field(
        default_factory=lambda: ["hegrenade", "molotov", "incgrenade", "inferno"]
    )
    # Emit PLAYER_HURT events into the stream (totals are tracked either way)
    emit_hurt_events: bool = True


@dataclass
class ScoreboardConfig:
    """Configuration for stat accumulation."""

    # Round counter starts here and is the ADR denominator
    initial_round: int = 1
    # Floor-divide damage by rounds instead of true division
    integer_adr: bool = False


@dataclass
class ExportConfig:
    """Configuration for scoreboard export."""

    default_format: str = "json"
    json_indent: int = 2
    sort_keys: bool = True
    csv_delimiter: str = ","
    include_metadata: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024
    file_backup_count: int = 5


@dataclass
class DemoStatsConfig:
    """All settings, one attribute per section."""

    parser: ParserConfig = field(default_factory=ParserConfig)
    scoreboard: ScoreboardConfig = field(default_factory=ScoreboardConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def sections(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ============================================================================
# Config Files
# ============================================================================

CONFIG_SUFFIXES = (".yaml", ".yml", ".toml", ".json")


def config_search_dirs() -> list[Path]:
    """Directories searched for a config file when none is given."""
    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return [Path.cwd(), Path(xdg) / "demostats"]


def find_config_file(search_dirs: list[Path] | None = None) -> Path | None:
    """First ``demostats.<ext>`` found in the search directories."""
    if search_dirs is None:
        search_dirs = config_search_dirs()
    for directory in search_dirs:
        for suffix in CONFIG_SUFFIXES:
            candidate = directory / f"demostats{suffix}"
            if candidate.is_file():
                return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a config file into section -> key -> value."""
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)
    elif suffix == ".toml":
        import tomllib

        with open(path, "rb") as f:
            data = tomllib.load(f)
    elif suffix == ".json":
        with open(path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping of sections")
    return data


# ============================================================================
# Environment Overrides
# ============================================================================

ENV_OVERRIDES = {
    "DEMOSTATS_LOG_LEVEL": ("logging", "level"),
    "DEMOSTATS_LOG_FILE": ("logging", "file"),
    "DEMOSTATS_EXPORT_FORMAT": ("export", "default_format"),
    "DEMOSTATS_EXPORT_METADATA": ("export", "include_metadata"),
    "DEMOSTATS_INITIAL_ROUND": ("scoreboard", "initial_round"),
    "DEMOSTATS_INTEGER_ADR": ("scoreboard", "integer_adr"),
    "DEMOSTATS_EMIT_HURT_EVENTS": ("parser", "emit_hurt_events"),
}


def _coerce(raw: str, current: Any) -> Any:
    # The field's current value decides how the string is read
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, dict[str, str]]:
    """Collect ``DEMOSTATS_*`` variables as raw strings grouped by section."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, dict[str, str]] = {}
    for name, (section, key) in ENV_OVERRIDES.items():
        if name in environ:
            overrides.setdefault(section, {})[key] = environ[name]
    return overrides


# ============================================================================
# Loading
# ============================================================================


def apply_settings(
    config: DemoStatsConfig,
    data: dict[str, Any],
    origin: str,
    from_strings: bool = False,
) -> DemoStatsConfig:
    """
    Copy section values from ``data`` onto ``config``.

    Unknown sections and keys are logged and skipped. With ``from_strings``
    each value is converted to the type of the field it replaces.
    """
    sections = config.sections()
    for section_name, values in data.items():
        section = sections.get(section_name)
        if section is None or not isinstance(values, dict):
            logger.warning(f"Ignoring unknown config section {section_name!r} from {origin}")
            continue
        for key, value in values.items():
            if not hasattr(section, key):
                logger.warning(f"Ignoring unknown config key {section_name}.{key} from {origin}")
                continue
            if from_strings:
                try:
                    value = _coerce(value, getattr(section, key))
                except ValueError as e:
                    raise ValueError(f"Invalid value for {section_name}.{key} from {origin}: {e}") from e
            setattr(section, key, value)
    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> DemoStatsConfig:
    """
    Build the effective configuration.

    Args:
        config_file: Explicit config file; must exist when given
        include_env: Apply ``DEMOSTATS_*`` environment variables

    Returns:
        DemoStatsConfig with defaults, file and environment applied

    Raises:
        FileNotFoundError: ``config_file`` does not exist
        ValueError: Unreadable format or an invalid environment value
    """
    config = DemoStatsConfig()

    if config_file is not None and not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    path = config_file or find_config_file()
    if path is not None:
        apply_settings(config, read_config_file(path), origin=str(path))
        logger.info(f"Loaded config from: {path}")

    if include_env:
        apply_settings(config, env_overrides(), origin="environment", from_strings=True)

    return config


# ============================================================================
# Logging Setup
# ============================================================================


def configure_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Apply logging settings to the root logger."""
    root = logging.getLogger()
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)
    root.setLevel(level)

    formatter = logging.Formatter(config.format)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if config.file:
        file_handler = logging.handlers.RotatingFileHandler(
            config.file,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


# ============================================================================
# Default Config File
# ============================================================================

DEFAULT_CONFIG_YAML = """# demostats configuration

# Event source settings
parser:
  demo_suffix: .dem
  emit_hurt_events: true

# Stat accumulation settings
scoreboard:
  initial_round: 1
  integer_adr: false  # floor-divide damage by rounds

# Export settings
export:
  default_format: json
  json_indent: 2
  sort_keys: true
  csv_delimiter: ","
  include_metadata: false

# Logging settings
logging:
  level: INFO
  # file: /path/to/demostats.log
"""


def write_default_config(path: Path) -> None:
    """Write the default settings as a commented YAML or a JSON file."""
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        path.write_text(DEFAULT_CONFIG_YAML)
    elif suffix == ".json":
        path.write_text(json.dumps(asdict(DemoStatsConfig()), indent=2) + "\n")
    else:
        raise ValueError(f"Default config can be written as .yaml or .json, not {suffix}")
    logger.info(f"Generated default config at: {path}")
