"""Refresh scheduler: recent refresh, proactive token renewal and daily snapshot jobs."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Set, Tuple

from ..core.errors import PersistenceError, ProxyError
from ..core.logging import get_logger
from ..core.snapshot import Snapshot
from ..io.snapshot_store import SnapshotStore
from ..upstream.source import ActivitySource
from ..upstream.token_manager import TokenManager
from .view import SyncState

RECENT_REFRESH_JOB = "recent_refresh"
TOKEN_RENEWAL_JOB = "token_renewal"
DAILY_SNAPSHOT_JOB = "daily_snapshot"


def next_daily_run(now: datetime, hour: int, minute: int) -> datetime:
    """Next occurrence of HH:MM after ``now``: today if still ahead, else tomorrow."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class RefreshScheduler:
    """Drives the three independent refresh jobs on one asyncio event loop.

    All jobs share a single SyncState. Each job finishes its network I/O
    before it touches the state, and the view swap is the last step, so
    readers on the same loop always see a complete view.
    """

    def __init__(self, source: ActivitySource, store: SnapshotStore,
                 token_manager: Optional[TokenManager] = None,
                 state: Optional[SyncState] = None,
                 recent_interval_seconds: float = 60,
                 recent_window_hours: float = 72,
                 token_renewal_interval_seconds: float = 3300,
                 daily_snapshot_time: Tuple[int, int] = (2, 0),
                 clock: Optional[Callable[[], datetime]] = None,
                 wall_clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the scheduler.

        Args:
            source: Where recent and full record sets come from
            store: Persisted historical snapshot
            token_manager: Token owner for proactive renewal; None disables renewal
            state: Shared sync state; a fresh one is created if omitted
            recent_interval_seconds: Period of the recent refresh job
            recent_window_hours: Trailing window fetched by the recent refresh
            token_renewal_interval_seconds: Period of the proactive renewal job
            daily_snapshot_time: Local (hour, minute) of the daily snapshot
            clock: Aware UTC "now", used for the recent window
            wall_clock: Local "now", used to schedule the daily snapshot
        """
        self.source = source
        self.store = store
        self.token_manager = token_manager
        self.state = state or SyncState()
        self.recent_interval_seconds = recent_interval_seconds
        self.recent_window = timedelta(hours=recent_window_hours)
        self.token_renewal_interval_seconds = token_renewal_interval_seconds
        self.daily_snapshot_time = daily_snapshot_time
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.wall_clock = wall_clock or datetime.now

        self._recent_in_progress = False
        self._snapshot_in_progress = False
        self._tasks: List[asyncio.Task] = []
        self._tick_tasks: Set[asyncio.Task] = set()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def renewal_enabled(self) -> bool:
        return self.token_manager is not None and self.source.requires_auth

    @property
    def daily_snapshot_enabled(self) -> bool:
        return self.source.requires_auth

    def load_baseline(self) -> int:
        """Load the persisted snapshot as the historical baseline.

        If it holds records the first view is built from it right away.

        Returns:
            Number of historical records loaded
        """
        snapshot = self.store.load()
        self.state.historical = list(snapshot.content) if snapshot else []
        if self.state.historical:
            self.state.rebuild_view("snapshot load")
        else:
            self.logger.info("Starting without a historical baseline")
        return len(self.state.historical)

    async def refresh_recent(self) -> bool:
        """Fetch the trailing window, replace the recent cache and rebuild the view.

        On failure the current view is kept as it is.

        Returns:
            True if the view was rebuilt
        """
        if self._recent_in_progress:
            self.logger.warning("Recent refresh still running from previous tick - skipping")
            self.state.metrics.record_skip(RECENT_REFRESH_JOB)
            return False

        self._recent_in_progress = True
        metrics = self.state.metrics
        metrics.refresh_started()
        success = False
        error = None
        try:
            since = self.clock() - self.recent_window
            self.logger.info(f"Refreshing activities since {since.isoformat()}")
            records = await self.source.fetch_recent(since)
            self.state.recent = list(records)
            self.state.rebuild_view("recent refresh")
            success = True
        except ProxyError as e:
            error = str(e)
            self.logger.error(f"Recent refresh failed - keeping previous view: {e}")
        except Exception as e:
            error = str(e)
            self.logger.exception(f"Unexpected error during recent refresh - keeping previous view: {e}")
        finally:
            self._recent_in_progress = False
            metrics.refresh_finished(success)
            metrics.record_run(RECENT_REFRESH_JOB, success, error)
        return success

    async def renew_token(self) -> bool:
        """Re-authenticate unconditionally, regardless of current token validity."""
        if not self.renewal_enabled:
            return False

        self.logger.info("Renewing token proactively")
        success = False
        error = None
        try:
            token = await self.token_manager.authenticate("proactive renewal timer")
            success = token is not None
            if not success:
                error = "authentication failed"
        except ProxyError as e:
            error = str(e)
            self.logger.error(f"Proactive token renewal failed - keeping current token: {e}")
        except Exception as e:
            error = str(e)
            self.logger.exception(f"Unexpected error during token renewal - keeping current token: {e}")
        finally:
            self.state.metrics.record_run(TOKEN_RENEWAL_JOB, success, error)
        return success

    async def capture_snapshot(self) -> bool:
        """Fetch the full dataset, persist it and make it the new historical baseline.

        A failed write is logged; the in-memory baseline and view still move
        to the freshly fetched data.

        Returns:
            True if the full dataset was fetched and persisted
        """
        if self._snapshot_in_progress:
            self.logger.warning("Snapshot capture already running - skipping")
            self.state.metrics.record_skip(DAILY_SNAPSHOT_JOB)
            return False

        self._snapshot_in_progress = True
        error = None
        saved = False
        try:
            self.logger.info("Capturing full snapshot from upstream")
            records = await self.source.fetch_full()
            snapshot = Snapshot.from_records(records)
            try:
                self.store.save(snapshot)
                saved = True
            except PersistenceError as e:
                error = str(e)
                self.logger.error(f"Snapshot fetched but not persisted: {e}")

            self.state.historical = list(records)
            self.state.rebuild_view("daily snapshot")
        except ProxyError as e:
            error = str(e)
            self.logger.error(f"Snapshot capture failed - keeping previous baseline: {e}")
        except Exception as e:
            error = str(e)
            self.logger.exception(f"Unexpected error during snapshot capture: {e}")
        finally:
            self._snapshot_in_progress = False
            self.state.metrics.record_run(DAILY_SNAPSHOT_JOB, saved, error)
        return saved

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)
        return task

    async def _recent_loop(self) -> None:
        # Ticks do not wait for the previous refresh; the in-progress guard skips overlaps
        while True:
            self._spawn(self.refresh_recent())
            await asyncio.sleep(self.recent_interval_seconds)

    async def _renewal_loop(self) -> None:
        while True:
            await asyncio.sleep(self.token_renewal_interval_seconds)
            await self.renew_token()

    async def _daily_loop(self) -> None:
        hour, minute = self.daily_snapshot_time
        while True:
            now = self.wall_clock()
            next_run = next_daily_run(now, hour, minute)
            delay = (next_run - now).total_seconds()
            self.logger.info(f"Next daily snapshot at {next_run.isoformat()} (in {delay / 3600:.1f}h)")
            await asyncio.sleep(delay)
            # Re-armed only after the run completes, so runs never overlap
            await self.capture_snapshot()

    async def start(self) -> None:
        """Load the baseline and start the job loops on the running event loop."""
        if self._tasks:
            self.logger.info("Scheduler already running")
            return

        self.load_baseline()

        self._tasks.append(asyncio.ensure_future(self._recent_loop()))
        self.logger.info(f"Recent refresh scheduled every {self.recent_interval_seconds}s "
                         f"(window: {self.recent_window.total_seconds() / 3600:.0f}h)")

        if self.renewal_enabled:
            self._tasks.append(asyncio.ensure_future(self._renewal_loop()))
            self.logger.info(f"Proactive token renewal every {self.token_renewal_interval_seconds}s")
        else:
            self.logger.info("Proactive token renewal disabled (static data source)")

        if self.daily_snapshot_enabled:
            self._tasks.append(asyncio.ensure_future(self._daily_loop()))
        else:
            self.logger.info("Daily snapshot disabled (static data source)")

    async def stop(self) -> None:
        """Cancel all job loops and in-flight ticks, then release the source."""
        tasks = self._tasks + list(self._tick_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self._tick_tasks.clear()
        await self.source.close()
        self.logger.info("Scheduler stopped")

    async def run_forever(self) -> None:
        """Start the jobs and block until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()
