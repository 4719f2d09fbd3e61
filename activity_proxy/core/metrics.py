"""Metrics collection for refresh cycles, token renewals and snapshot captures."""

import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass
class JobStats:
    """Run counters for a single scheduled job."""

    job: str
    runs: int = 0
    successes: int = 0
    failures: int = 0
    skipped: int = 0
    last_success_at: Optional[str] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        if data['last_error'] is None:
            del data['last_error']
        return data

    def get_summary(self) -> str:
        """Generate a human-readable summary."""
        if self.runs == 0 and self.skipped == 0:
            return f"{self.job}: not run yet"

        parts = [f"{self.job}: {self.runs} runs", f"{self.successes} ok", f"{self.failures} failed"]
        if self.skipped:
            parts.append(f"{self.skipped} skipped (previous run still in progress)")
        if self.last_error:
            parts.append(f"last error: {self.last_error}")
        return " - ".join(parts)


@dataclass
class RefreshMetrics:
    """Observability hooks for the refresh subsystem.

    ``last_refresh_*`` and ``cached_record_count`` describe the most recent
    recent-window refresh and are updated at the start and end of each attempt.
    """

    last_refresh_started_at: Optional[str] = None
    last_refresh_finished_at: Optional[str] = None
    last_refresh_duration_seconds: float = 0.0
    last_refresh_success: Optional[bool] = None
    refresh_in_progress: bool = False
    cached_record_count: int = 0
    historical_record_count: int = 0
    recent_record_count: int = 0
    jobs: Dict[str, JobStats] = field(default_factory=dict)

    _started_monotonic: Optional[float] = field(default=None, repr=False)

    def job(self, name: str) -> JobStats:
        """Get (or create) the counters for a job."""
        if name not in self.jobs:
            self.jobs[name] = JobStats(job=name)
        return self.jobs[name]

    def refresh_started(self) -> None:
        """Mark the start of a recent-window refresh attempt."""
        self.refresh_in_progress = True
        self.last_refresh_started_at = _utc_now_iso()
        self._started_monotonic = time.monotonic()

    def refresh_finished(self, success: bool) -> None:
        """Mark the end of a recent-window refresh attempt."""
        if self._started_monotonic is not None:
            self.last_refresh_duration_seconds = round(time.monotonic() - self._started_monotonic, 3)
        self._started_monotonic = None
        self.refresh_in_progress = False
        self.last_refresh_finished_at = _utc_now_iso()
        self.last_refresh_success = success

    def record_run(self, name: str, success: bool, error: Optional[str] = None) -> None:
        """Count a finished run of a job."""
        stats = self.job(name)
        stats.runs += 1
        if success:
            stats.successes += 1
            stats.last_success_at = _utc_now_iso()
            stats.last_error = None
        else:
            stats.failures += 1
            stats.last_error = error

    def record_skip(self, name: str) -> None:
        """Count a tick that was skipped because the previous run was still going."""
        self.job(name).skipped += 1

    def update_counts(self, cached: int, historical: int, recent: int) -> None:
        """Record the sizes of the current view and its two inputs."""
        self.cached_record_count = cached
        self.historical_record_count = historical
        self.recent_record_count = recent

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'last_refresh_started_at': self.last_refresh_started_at,
            'last_refresh_finished_at': self.last_refresh_finished_at,
            'last_refresh_duration_seconds': self.last_refresh_duration_seconds,
            'last_refresh_success': self.last_refresh_success,
            'refresh_in_progress': self.refresh_in_progress,
            'cached_record_count': self.cached_record_count,
            'historical_record_count': self.historical_record_count,
            'recent_record_count': self.recent_record_count,
            'jobs': {k: v.to_dict() for k, v in self.jobs.items()}
        }

    def get_summary(self) -> str:
        """Generate a human-readable summary."""
        if self.last_refresh_success is None:
            status = "no refresh completed yet"
        elif self.last_refresh_success:
            status = f"last refresh OK in {self.last_refresh_duration_seconds:.2f}s"
        else:
            status = f"last refresh FAILED after {self.last_refresh_duration_seconds:.2f}s"

        lines = [
            f"{status} - {self.cached_record_count} records cached "
            f"({self.historical_record_count} historical, {self.recent_record_count} recent)"
        ]
        for name in sorted(self.jobs):
            lines.append(f"  {self.jobs[name].get_summary()}")
        return "\n".join(lines)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
