"""Merge of the historical snapshot with the latest recent-window fetch."""

from typing import Dict, Iterable, List

from ..core.logging import get_logger
from ..core.models import Record, effective_time, record_id

logger = get_logger(__name__)


def merge_activities(historical: Iterable[Record], recent: Iterable[Record]) -> List[Record]:
    """Combine both record sets into one deduplicated list, newest first.

    Historical records seed a mapping keyed by ``id``; recent records are
    overlaid on top, so the recent version of a record wins. Records without
    an ``id`` are dropped. The result is ordered by effective time (``endTime``,
    else ``startTime``) descending, with undated records last in their
    original relative order.

    Args:
        historical: Records from the daily snapshot
        recent: Records from the latest recent-window fetch

    Returns:
        A new list; the inputs are not modified
    """
    by_id: Dict[str, Record] = {}
    dropped = 0

    for records in (historical, recent):
        for record in records:
            key = record_id(record)
            if key is None:
                dropped += 1
                continue
            by_id[key] = record

    if dropped:
        logger.debug(f"Dropped {dropped} activities without an id during merge")

    # sorted() is stable, and stays stable with reverse=True
    return sorted(by_id.values(), key=effective_time, reverse=True)
