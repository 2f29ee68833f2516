"""Tests for the command line interface."""

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from demostats import __version__
from demostats.cli import app
from demostats.core.events import EventSourceError

runner = CliRunner()


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_analyze(self, tmp_path):
        demo = tmp_path / "match.dem"
        demo.write_bytes(b"")
        output = tmp_path / "match.json"
        fake = MagicMock(player_count=10, rounds=25, incomplete_events=3, output_path=output)

        with patch("demostats.pipeline.orchestrator.analyze_demo", return_value=fake) as analyze:
            result = runner.invoke(app, ["analyze", str(demo), "-o", str(output), "--integer-adr"])

        assert result.exit_code == 0, result.output
        assert "10 players" in result.output
        config = analyze.call_args.kwargs["config"]
        assert config.scoreboard.integer_adr is True
        assert analyze.call_args.kwargs["output"] == output

    def test_analyze_source_error(self, tmp_path):
        demo = tmp_path / "match.dem"
        demo.write_bytes(b"")
        with patch(
            "demostats.pipeline.orchestrator.analyze_demo",
            side_effect=EventSourceError("truncated"),
        ):
            result = runner.invoke(app, ["analyze", str(demo)])
        assert result.exit_code == 1
        assert "truncated" in result.output

    def test_analyze_missing_file(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.dem")])
        assert result.exit_code != 0

    def test_init_config(self, tmp_path):
        path = tmp_path / "demostats.yaml"
        result = runner.invoke(app, ["init-config", str(path)])
        assert result.exit_code == 0
        assert "scoreboard:" in path.read_text()

        again = runner.invoke(app, ["init-config", str(path)])
        assert again.exit_code == 1
