"""Tests for CLI configuration management."""

import pytest

from activity_proxy.config.cli_config import CLIConfigManager


class TestCLIConfigManager:
    """Test the CLIConfigManager class."""

    def test_parse_run_command(self):
        """Test parsing the run command with upstream options."""
        args = CLIConfigManager().parse_args([
            "run", "--api-url", "https://backup.example.com/api",
            "--username", "operator", "--password", "s3cret",
            "--snapshot-file", "snap.json"
        ])

        assert args.command == "run"
        assert args.api_url == "https://backup.example.com/api"
        assert args.username == "operator"
        assert args.password == "s3cret"
        assert args.snapshot_file == "snap.json"
        assert args.mock is False

    def test_parse_global_options(self):
        """Global options go before the subcommand."""
        args = CLIConfigManager().parse_args([
            "--config", "proxy.yaml", "--log-level", "DEBUG", "--log-format", "json", "snapshot"
        ])

        assert args.command == "snapshot"
        assert args.config == "proxy.yaml"
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"

    def test_log_options_default_to_none(self):
        """Unset log options leave room for env and YAML values."""
        args = CLIConfigManager().parse_args(["run"])

        assert args.log_level is None
        assert args.log_format is None

    def test_parse_run_mock(self):
        args = CLIConfigManager().parse_args(["run", "--mock", "--mock-file", "fixture.json"])

        assert args.mock is True
        assert args.mock_file == "fixture.json"

    def test_no_command_exits(self):
        """Test that a missing command is an error."""
        with pytest.raises(SystemExit):
            CLIConfigManager().parse_args([])

    def test_invalid_log_level_exits(self):
        with pytest.raises(SystemExit):
            CLIConfigManager().parse_args(["--log-level", "TRACE", "run"])

    def test_stats_has_no_upstream_options(self):
        with pytest.raises(SystemExit):
            CLIConfigManager().parse_args(["stats", "--api-url", "https://x"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLIConfigManager().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "activity-proxy" in capsys.readouterr().out


class TestArgsToConfigDict:
    """Test args_to_config_dict."""

    def test_run_args(self):
        manager = CLIConfigManager()
        args = manager.parse_args([
            "--log-level", "WARNING", "run", "--api-url", "https://x", "--username", "u"
        ])

        assert manager.args_to_config_dict(args) == {
            'api_url': "https://x",
            'username': "u",
            'log_level': "WARNING",
        }

    def test_mock_flag(self):
        manager = CLIConfigManager()
        args = manager.parse_args(["run", "--mock"])

        assert manager.args_to_config_dict(args) == {'mock': True}

    def test_stats_forces_mock(self):
        """stats only reads the snapshot, so credentials are not required."""
        manager = CLIConfigManager()
        args = manager.parse_args(["stats", "--snapshot-file", "snap.json"])

        assert manager.args_to_config_dict(args) == {'snapshot_file': "snap.json", 'mock': True}
