"""Data models and record helpers for upstream activity records.

Activity records are kept as the plain JSON objects the upstream returns so
that every field survives a snapshot round-trip untouched. The helpers here
read the handful of fields the proxy cares about.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

Record = Dict[str, Any]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

JOB_GROUP_CLASS_TYPE = "JOB_GROUP"

# fromisoformat before 3.11 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}:\d{2}$|$)")


class ActivityStatus(Enum):
    """Outcome reported in an activity's ``result.status``."""
    OK = "OK"
    FAILED = "FAILED"
    ERROR = "ERROR"
    WARNING = "WARNING"
    RUNNING = "RUNNING"
    OTHER = "OTHER"

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'ActivityStatus':
        """Map a raw status string to a known status, falling back to OTHER."""
        if not value:
            return cls.OTHER
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


class DataStatus(Enum):
    """Availability of the materialized view.

    Moves from UNINITIALIZED to AVAILABLE after the first successful merge and
    never goes back.
    """
    UNINITIALIZED = "UNINITIALIZED"
    AVAILABLE = "AVAILABLE"


@dataclass(frozen=True)
class Token:
    """Bearer token with the locally computed expiry."""

    value: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"Token(value='***', expires_at={self.expires_at.isoformat()})"


@dataclass
class ActivityPage:
    """One page of the upstream activities endpoint."""

    items: List[Record] = field(default_factory=list)
    total_pages: int = 1
    page_number: int = 1

    @classmethod
    def from_response(cls, data: Dict[str, Any], page_number: int) -> 'ActivityPage':
        """Build a page from a ``{page: {totalPages}, content: [...]}`` payload.

        Raises:
            ValueError: If the payload does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        content = data.get('content') or []
        if not isinstance(content, list):
            raise ValueError("'content' is not a list")

        page_info = data.get('page') or {}
        total_pages = page_info.get('totalPages', 1) if isinstance(page_info, dict) else 1
        try:
            total_pages = int(total_pages)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid totalPages value: {total_pages!r}")

        return cls(items=content, total_pages=total_pages, page_number=page_number)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None when absent or unparsable.

    A trailing ``Z`` is accepted and naive timestamps are treated as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        text = value.strip().replace('Z', '+00:00')
        text = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text)
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def record_id(record: Record) -> Optional[str]:
    """Identity key of a record, or None if it has none."""
    value = record.get('id') if isinstance(record, dict) else None
    if value is None or value == "":
        return None
    return str(value)


def effective_time(record: Record) -> datetime:
    """Time used to order records: endTime, else startTime, else epoch zero."""
    return (parse_timestamp(record.get('endTime'))
            or parse_timestamp(record.get('startTime'))
            or EPOCH)


def record_status(record: Record) -> ActivityStatus:
    """Status of a record from its nested ``result.status`` field."""
    result = record.get('result')
    if not isinstance(result, dict):
        return ActivityStatus.OTHER
    return ActivityStatus.from_value(result.get('status'))


def bytes_transferred(record: Record) -> Optional[float]:
    """Bytes transferred from ``stats.bytesTransferred`` if present."""
    stats = record.get('stats')
    if not isinstance(stats, dict):
        return None
    return stats.get('bytesTransferred')


def is_top_level(record: Record) -> bool:
    """True for job groups and for jobs without a parent.

    Child jobs are already accounted for by their group, so projections that
    sum or chart values skip them.
    """
    return record.get('classType') == JOB_GROUP_CLASS_TYPE or not record.get('parentId')
