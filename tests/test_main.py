"""Tests for the command-line entry point."""

from unittest.mock import patch

import pytest

from mitre_board import main as cli
from mitre_board.config import DEFAULT_PORT, MITRE_ATTACK_URL
from mitre_board.errors import ConfigurationError


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep the test session's logging configuration untouched."""
    with patch.object(cli, "setup_logging"):
        yield


class TestArgumentParser:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        args = cli.setup_argument_parser().parse_args(["-d", "rules"])

        settings = cli.build_settings(args)

        assert settings.active_directory == "rules"
        assert settings.inactive_directory is None
        assert settings.taxonomy_url == MITRE_ATTACK_URL
        assert settings.port == DEFAULT_PORT

    def test_directory_is_required(self):
        with pytest.raises(SystemExit) as excinfo:
            cli.setup_argument_parser().parse_args([])
        assert excinfo.value.code == 2

    def test_taxonomy_sources_are_exclusive(self):
        with pytest.raises(SystemExit):
            cli.setup_argument_parser().parse_args(
                ["-d", "rules", "--taxonomy-url", "http://x", "--taxonomy-file", "bundle.json"]
            )


class TestResolvePort:

    def test_cli_wins(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert cli.resolve_port(9000) == 9000

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert cli.resolve_port(None) == 8080

    @pytest.mark.parametrize("value", ["abc", "70000", "0"])
    def test_invalid_environment(self, monkeypatch, value):
        monkeypatch.setenv("PORT", value)
        with pytest.raises(ConfigurationError):
            cli.resolve_port(None)


class TestMain:

    def test_missing_directory_exits_with_error(self, tmp_path):
        with patch.object(cli.uvicorn, "run") as run:
            assert cli.main(["-d", str(tmp_path / "missing")]) == 1
        run.assert_not_called()

    def test_missing_taxonomy_file_exits_with_error(self, active_dir, tmp_path):
        with patch.object(cli.uvicorn, "run") as run:
            code = cli.main(["-d", str(active_dir), "--taxonomy-file", str(tmp_path / "none.json")])

        assert code == 1
        run.assert_not_called()

    def test_invalid_static_dir_exits_with_error(self, active_dir, tmp_path):
        assert cli.main(["-d", str(active_dir), "--static-dir", str(tmp_path / "nope")]) == 1

    def test_serves_built_context(self, active_dir, board_context):
        with patch.object(cli, "build_context", return_value=board_context) as build, \
                patch.object(cli.uvicorn, "run") as run:
            code = cli.main(["-d", str(active_dir), "--host", "0.0.0.0", "--port", "8123"])

        assert code == 0
        build.assert_called_once()
        assert build.call_args[0][0].port == 8123
        _, kwargs = run.call_args
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 8123
