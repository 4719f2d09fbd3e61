"""CLI-specific configuration management."""

import argparse
from typing import Optional, Dict, Any
from .. import __version__


class CLIConfigManager:
    """Manages CLI argument parsing and conversion to configuration."""

    COMMANDS = ("run", "snapshot", "stats")

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the CLI argument parser."""
        parser = argparse.ArgumentParser(
            description="activity-proxy - keeps a merged, always-available cache of upstream activities",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  %(prog)s run --api-url https://backup.example.com/api/v2
  %(prog)s run --mock --mock-file saida.json
  %(prog)s --config config.yaml --log-level DEBUG snapshot
  %(prog)s stats --snapshot-file data/activities-snapshot.json
            """
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"activity-proxy {__version__}"
        )

        # Global options
        parser.add_argument(
            "--config",
            type=str,
            help="Path to YAML configuration file"
        )
        parser.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            default=None,
            help="Set logging level (default: INFO)"
        )
        parser.add_argument(
            "--log-format",
            choices=["standard", "json"],
            default=None,
            help="Set log format (default: standard)"
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")
        self._add_run_command(subparsers)
        self._add_snapshot_command(subparsers)
        self._add_stats_command(subparsers)

        return parser

    def _add_upstream_arguments(self, command_parser) -> None:
        """Add upstream connection options shared by run and snapshot."""
        upstream_group = command_parser.add_argument_group("Upstream Configuration")
        upstream_group.add_argument(
            "--api-url",
            type=str,
            help="Base URL of the upstream API (overrides UPSTREAM_API_URL env var)"
        )
        upstream_group.add_argument(
            "--username",
            type=str,
            help="Upstream username (overrides UPSTREAM_USERNAME env var)"
        )
        upstream_group.add_argument(
            "--password",
            type=str,
            help="Upstream password (overrides UPSTREAM_PASSWORD env var)"
        )

    def _add_storage_arguments(self, command_parser) -> None:
        storage_group = command_parser.add_argument_group("Storage Configuration")
        storage_group.add_argument(
            "--snapshot-file",
            type=str,
            help="Path to the persisted historical snapshot (JSON)"
        )

    def _add_run_command(self, subparsers):
        """Add the run subcommand."""
        run_parser = subparsers.add_parser(
            "run",
            help="Start the refresh scheduler and keep the view current"
        )
        self._add_upstream_arguments(run_parser)
        self._add_storage_arguments(run_parser)

        mock_group = run_parser.add_argument_group("Mock Mode")
        mock_group.add_argument(
            "--mock",
            action="store_true",
            help="Serve data from a static file instead of the upstream API"
        )
        mock_group.add_argument(
            "--mock-file",
            type=str,
            help="Path to the static mock document (default: saida.json)"
        )

    def _add_snapshot_command(self, subparsers):
        """Add the snapshot subcommand."""
        snapshot_parser = subparsers.add_parser(
            "snapshot",
            help="Capture a full snapshot from the upstream API once and exit"
        )
        self._add_upstream_arguments(snapshot_parser)
        self._add_storage_arguments(snapshot_parser)

    def _add_stats_command(self, subparsers):
        """Add the stats subcommand."""
        stats_parser = subparsers.add_parser(
            "stats",
            help="Print status counts from the persisted snapshot (no network access)"
        )
        self._add_storage_arguments(stats_parser)

    def parse_args(self, args: Optional[list] = None) -> argparse.Namespace:
        """Parse command line arguments."""
        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.error("No command specified. Use 'run', 'snapshot' or 'stats'.")

        return parsed_args

    def args_to_config_dict(self, args: argparse.Namespace) -> Dict[str, Any]:
        """Convert parsed arguments to dictionary for config loading."""
        config_dict = {}

        for key in ('api_url', 'username', 'password', 'snapshot_file', 'mock_file'):
            value = getattr(args, key, None)
            if value:
                config_dict[key] = value

        if getattr(args, 'mock', False):
            config_dict['mock'] = True

        # The stats command never talks to the upstream
        if getattr(args, 'command', None) == 'stats':
            config_dict['mock'] = True

        if getattr(args, 'log_level', None):
            config_dict['log_level'] = args.log_level
        if getattr(args, 'log_format', None):
            config_dict['log_format'] = args.log_format

        return config_dict
