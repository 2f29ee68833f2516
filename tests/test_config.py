"""Tests for configuration loading."""

import json
import logging
import logging.handlers

import pytest

from demostats.core.config import (
    DemoStatsConfig,
    apply_settings,
    configure_logging,
    env_overrides,
    find_config_file,
    load_config,
    read_config_file,
    write_default_config,
)


class TestDefaults:
    def test_scoreboard_defaults(self):
        config = DemoStatsConfig()
        assert config.scoreboard.initial_round == 1
        assert config.scoreboard.integer_adr is False
        assert config.export.default_format == "json"
        assert "hegrenade" in config.parser.utility_weapons


class TestLoading:
    """Tests for file and environment sources."""

    def test_json_file(self, tmp_path):
        path = tmp_path / "demostats.json"
        path.write_text(json.dumps({"scoreboard": {"integer_adr": True, "initial_round": 2}}))
        config = load_config(path, include_env=False)
        assert config.scoreboard.integer_adr is True
        assert config.scoreboard.initial_round == 2

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "demostats.yaml"
        path.write_text("export:\n  default_format: csv\nlogging:\n  level: DEBUG\n")
        config = load_config(path, include_env=False)
        assert config.export.default_format == "csv"
        assert config.logging.level == "DEBUG"

    def test_toml_file(self, tmp_path):
        path = tmp_path / "demostats.toml"
        path.write_text("[parser]\nemit_hurt_events = false\n")
        config = load_config(path, include_env=False)
        assert config.parser.emit_hurt_events is False

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "demostats.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "demostats.ini"
        path.write_text("[scoreboard]\n")
        with pytest.raises(ValueError, match="Unsupported config format"):
            read_config_file(path)

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_discovers_file_in_search_dirs(self, tmp_path):
        (tmp_path / "demostats.toml").write_text("[scoreboard]\ninitial_round = 4\n")
        assert find_config_file([tmp_path]) == tmp_path / "demostats.toml"
        assert find_config_file([tmp_path / "nowhere"]) is None

    def test_discovered_from_working_directory(self, tmp_path, monkeypatch):
        (tmp_path / "demostats.json").write_text(json.dumps({"export": {"default_format": "csv"}}))
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert load_config(include_env=False).export.default_format == "csv"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "demostats.json"
        path.write_text(json.dumps({"scoreboard": {"integer_adr": False}}))
        monkeypatch.setenv("DEMOSTATS_INTEGER_ADR", "true")
        monkeypatch.setenv("DEMOSTATS_INITIAL_ROUND", "3")
        config = load_config(path)
        assert config.scoreboard.integer_adr is True
        assert config.scoreboard.initial_round == 3

    def test_env_values_follow_field_types(self):
        overrides = env_overrides({
            "DEMOSTATS_LOG_LEVEL": "WARNING",
            "DEMOSTATS_EXPORT_METADATA": "no",
            "DEMOSTATS_EMIT_HURT_EVENTS": "1",
            "UNRELATED": "x",
        })
        assert overrides == {
            "logging": {"level": "WARNING"},
            "export": {"include_metadata": "no"},
            "parser": {"emit_hurt_events": "1"},
        }
        config = apply_settings(DemoStatsConfig(), overrides, origin="environment", from_strings=True)
        assert config.logging.level == "WARNING"
        assert config.export.include_metadata is False
        assert config.parser.emit_hurt_events is True

    def test_invalid_env_integer(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        monkeypatch.setenv("DEMOSTATS_INITIAL_ROUND", "two")
        with pytest.raises(ValueError, match="scoreboard.initial_round"):
            load_config()

    def test_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = apply_settings(
                DemoStatsConfig(), {"scoreboard": {"nonsense": 1}, "other": {}}, origin="test"
            )
        assert not hasattr(config.scoreboard, "nonsense")
        assert "scoreboard.nonsense" in caplog.text
        assert "'other'" in caplog.text


class TestDefaultConfigFile:
    def test_yaml_template_loads(self, tmp_path):
        path = tmp_path / "demostats.yaml"
        write_default_config(path)
        config = load_config(path, include_env=False)
        assert config.scoreboard == DemoStatsConfig().scoreboard
        assert config.export == DemoStatsConfig().export

    def test_json_template_loads(self, tmp_path):
        path = tmp_path / "demostats.json"
        write_default_config(path)
        assert load_config(path, include_env=False) == DemoStatsConfig()

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            write_default_config(tmp_path / "out.ini")


class TestConfigureLogging:
    def test_verbose_sets_debug(self, tmp_path):
        root = logging.getLogger()
        previous_level = root.level
        previous_handlers = list(root.handlers)
        try:
            config = DemoStatsConfig().logging
            config.file = str(tmp_path / "demostats.log")
            configure_logging(config, verbose=True)
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
        finally:
            for handler in root.handlers[:]:
                if handler not in previous_handlers:
                    handler.close()
                    root.removeHandler(handler)
            root.setLevel(previous_level)
