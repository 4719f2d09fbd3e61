"""Materialized view of merged activities and the sync state that feeds it."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from ..core.logging import get_logger
from ..core.metrics import RefreshMetrics
from ..core.models import DataStatus, Record
from .merge import merge_activities

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActivityView:
    """One complete, immutable build of the merged activity list."""

    records: Tuple[Record, ...]
    built_at: datetime
    source: str
    historical_count: int = 0
    recent_count: int = 0

    def __len__(self) -> int:
        return len(self.records)


class MaterializedView:
    """Read-only accessor every downstream consumer goes through.

    ``current()`` returning None means no view has been built yet, which is
    different from a built view that holds zero records. Rebuilds construct a
    new ActivityView and swap it in with a single assignment.
    """

    def __init__(self):
        self._view: Optional[ActivityView] = None

    def current(self) -> Optional[ActivityView]:
        return self._view

    def records(self) -> Optional[Tuple[Record, ...]]:
        """The ordered records, or None when the view is not available yet."""
        view = self._view
        return view.records if view is not None else None

    def status(self) -> DataStatus:
        return DataStatus.AVAILABLE if self._view is not None else DataStatus.UNINITIALIZED

    def is_available(self) -> bool:
        return self._view is not None

    def replace(self, records: Sequence[Record], source: str,
                historical_count: int = 0, recent_count: int = 0) -> ActivityView:
        """Swap in a new view built from ``records``."""
        view = ActivityView(
            records=tuple(records),
            built_at=datetime.now(timezone.utc),
            source=source,
            historical_count=historical_count,
            recent_count=recent_count
        )
        self._view = view
        return view


@dataclass
class SyncState:
    """Everything the refresh jobs read and write, owned by the scheduler."""

    historical: List[Record] = field(default_factory=list)
    recent: List[Record] = field(default_factory=list)
    view: MaterializedView = field(default_factory=MaterializedView)
    metrics: RefreshMetrics = field(default_factory=RefreshMetrics)

    def rebuild_view(self, source: str) -> ActivityView:
        """Merge historical and recent records and replace the view.

        The merge runs into a fresh list before the swap, so readers never see
        a partially merged state.
        """
        merged = merge_activities(self.historical, self.recent)
        view = self.view.replace(
            merged, source,
            historical_count=len(self.historical),
            recent_count=len(self.recent)
        )
        self.metrics.update_counts(len(view), len(self.historical), len(self.recent))
        logger.info(
            f"View rebuilt after {source}: {len(view)} activities "
            f"({len(self.historical)} historical + {len(self.recent)} recent before dedup)"
        )
        return view
