"""Refresh, merge and cache of upstream activities."""

from .merge import merge_activities
from .scheduler import RefreshScheduler, next_daily_run
from .view import ActivityView, MaterializedView, SyncState

__all__ = [
    'ActivityView',
    'MaterializedView',
    'RefreshScheduler',
    'SyncState',
    'merge_activities',
    'next_daily_run'
]
