"""Read-side projections over the materialized view.

Every function takes the current ActivityView (or None) and returns None when
no view is available yet, so an HTTP layer can answer "not ready" (503)
instead of serving an empty result. None of these touch the network.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.models import ActivityStatus, bytes_transferred, is_top_level, parse_timestamp, record_status
from .view import ActivityView

STATUS_BUCKETS = {
    'ok': (ActivityStatus.OK,),
    'failed': (ActivityStatus.FAILED, ActivityStatus.ERROR),
    'warning': (ActivityStatus.WARNING,),
    'running': (ActivityStatus.RUNNING,),
}

_PROCESS_STARTED = time.monotonic()


def count_status(view: Optional[ActivityView], bucket: str) -> Optional[int]:
    """Number of records in a status bucket (ok, failed, warning, running).

    Raises:
        KeyError: For an unknown bucket name
    """
    statuses = STATUS_BUCKETS[bucket]
    if view is None:
        return None
    return sum(1 for record in view.records if record_status(record) in statuses)


def summarize_status(view: Optional[ActivityView]) -> Optional[Dict[str, int]]:
    """Totals per status bucket; ``failed`` counts both FAILED and ERROR."""
    if view is None:
        return None
    summary = {'total': len(view.records)}
    for bucket in STATUS_BUCKETS:
        summary[bucket] = count_status(view, bucket)
    return summary


def _sort_time(value: str) -> float:
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed else 0.0


def duration_series(view: Optional[ActivityView]) -> Optional[List[Dict[str, Any]]]:
    """Durations in minutes (2 decimals) of top-level activities, oldest first."""
    if view is None:
        return None
    points = [
        {'time': record['startTime'], 'duration': round(record['duration'] / 60000, 2)}
        for record in view.records
        if record.get('startTime') and record.get('duration') and is_top_level(record)
    ]
    return sorted(points, key=lambda point: _sort_time(point['time']))


def bytes_series(view: Optional[ActivityView]) -> Optional[List[Dict[str, Any]]]:
    """Bytes transferred by top-level activities, oldest first."""
    if view is None:
        return None
    points = [
        {'time': record['startTime'], 'bytes': bytes_transferred(record)}
        for record in view.records
        if record.get('startTime') and bytes_transferred(record) and is_top_level(record)
    ]
    return sorted(points, key=lambda point: _sort_time(point['time']))


def activity_table(view: Optional[ActivityView]) -> Optional[List[Dict[str, Any]]]:
    """Table rows for top-level activities, most recent start first."""
    if view is None:
        return None
    rows = []
    for record in view.records:
        if not is_top_level(record):
            continue
        result = record.get('result') if isinstance(record.get('result'), dict) else {}
        rows.append({
            'name': record.get('name') or '',
            'category': record.get('category') or '',
            'status': result.get('status') or '',
            'state': record.get('state') or '',
            'start': record.get('startTime') or '',
            'end': record.get('endTime') or '',
            'duration': record.get('duration') or 0,
            'bytes': bytes_transferred(record) or 0
        })
    return sorted(rows, key=lambda row: _sort_time(row['start']), reverse=True)


def build_health_report(state, token_manager=None, use_mock_data: bool = False,
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    """Process and data health, mirroring what a /health endpoint reports.

    Args:
        state: The scheduler's SyncState
        token_manager: TokenManager, or None in mock mode
        use_mock_data: Whether the proxy serves a static file
        now: Override for the report timestamp

    Returns:
        A JSON-serializable dictionary
    """
    now = now or datetime.now(timezone.utc)
    return {
        'status': 'OK',
        'uptime': round(time.monotonic() - _PROCESS_STARTED, 3),
        'timestamp': now.isoformat(),
        'hasActivitiesData': state.view.is_available(),
        'dataStatus': state.view.status().value,
        'hasAuthToken': bool(token_manager and token_manager.has_token),
        'tokenInfo': token_manager.token_info() if token_manager else None,
        'useMockData': use_mock_data,
        'metrics': state.metrics.to_dict()
    }
