"""Main application logic for the activity proxy."""

import argparse
import asyncio
import json
from typing import Optional, Tuple

from ..io.snapshot_store import SnapshotStore
from ..sync.projections import summarize_status
from ..sync.scheduler import RefreshScheduler
from ..sync.view import SyncState
from ..upstream.client import ActivityApiClient
from ..upstream.fetcher import PaginatedFetcher
from ..upstream.source import ActivitySource, StaticFileSource
from ..upstream.token_manager import TokenManager
from .logging import get_logger, setup_logging_from_config

logger = get_logger(__name__)


def build_source(config) -> Tuple[ActivitySource, Optional[TokenManager]]:
    """Create the activity source (and token manager, for the live API) from config."""
    if config.use_mock_data:
        return StaticFileSource(config.mock_data_file), None

    client = ActivityApiClient(
        base_url=config.api_url,
        username=config.api_username,
        password=config.api_password,
        verify_ssl=config.verify_ssl,
        timeout_seconds=config.request_timeout_seconds
    )
    token_manager = TokenManager(client, ttl_seconds=config.token_ttl_seconds)
    fetcher = PaginatedFetcher(client, token_manager, page_size=config.page_size)
    return fetcher, token_manager


def build_scheduler(config, state: Optional[SyncState] = None) -> RefreshScheduler:
    """Wire source, token manager, snapshot store and state into a scheduler."""
    source, token_manager = build_source(config)
    return RefreshScheduler(
        source=source,
        store=SnapshotStore(config.snapshot_file),
        token_manager=token_manager,
        state=state,
        recent_interval_seconds=config.recent_interval_seconds,
        recent_window_hours=config.recent_window_hours,
        token_renewal_interval_seconds=config.token_renewal_interval_seconds,
        daily_snapshot_time=config.daily_snapshot_hour_minute
    )


class Application:
    """Main application class that wires the components and runs a command."""

    def __init__(self):
        self.scheduler: Optional[RefreshScheduler] = None

    def _load_config(self, args: argparse.Namespace):
        from ..config import ConfigLoader
        from ..config.cli_config import CLIConfigManager

        cli_config = CLIConfigManager().args_to_config_dict(args)
        config = ConfigLoader().load_config(
            config_file=getattr(args, 'config', None),
            cli_args=cli_config
        )
        setup_logging_from_config(config)
        return config

    def run(self, args: argparse.Namespace) -> int:
        """Run the application with parsed arguments.

        Args:
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        commands = {
            'run': self.run_sync_command,
            'snapshot': self.run_snapshot_command,
            'stats': self.run_stats_command,
        }
        handler = commands.get(getattr(args, 'command', None))
        if handler is None:
            logger.error(f"Unknown command: {getattr(args, 'command', None)}")
            return 1

        try:
            config = self._load_config(args)
        except ValueError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        try:
            return handler(config)
        except Exception as e:
            logger.error(f"Application error: {e}")
            return 1

    def run_sync_command(self, config) -> int:
        """Start the scheduler and keep refreshing until interrupted."""
        logger.info("Starting activity proxy")
        config.log_config()

        self.scheduler = build_scheduler(config)
        asyncio.run(self.scheduler.run_forever())
        return 0

    def run_snapshot_command(self, config) -> int:
        """Capture and persist one full snapshot."""
        config.log_config()
        self.scheduler = build_scheduler(config)
        if not self.scheduler.daily_snapshot_enabled:
            logger.error("Snapshot capture needs the live upstream API (mock mode is enabled)")
            return 1

        async def capture() -> bool:
            try:
                return await self.scheduler.capture_snapshot()
            finally:
                await self.scheduler.source.close()

        saved = asyncio.run(capture())
        logger.info(self.scheduler.state.metrics.get_summary())
        return 0 if saved else 1

    def run_stats_command(self, config) -> int:
        """Print status counts computed from the persisted snapshot."""
        snapshot = SnapshotStore(config.snapshot_file).load()
        if snapshot is None:
            logger.error(f"No snapshot available at {config.snapshot_file}")
            return 1

        state = SyncState(historical=list(snapshot.content))
        view = state.rebuild_view("snapshot load")
        print(json.dumps(summarize_status(view), indent=2))
        return 0
