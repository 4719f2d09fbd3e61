"""Shared Snapshot model for the persisted historical dataset."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .models import Record


@dataclass
class Snapshot:
    """Full historical dataset, stored as ``{page, content, _links}``."""

    content: List[Record] = field(default_factory=list)
    page: Dict[str, Any] = field(default_factory=dict)
    links: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.content)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted document shape."""
        return {
            'page': self.page,
            'content': self.content,
            '_links': self.links
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        """Create from a persisted document.

        Raises:
            ValueError: If the document is not an object with a list ``content``
        """
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot document must be an object, got {type(data).__name__}")
        content = data.get('content', [])
        if not isinstance(content, list):
            raise ValueError("Snapshot 'content' must be a list")
        return cls(
            content=content,
            page=data.get('page') or {},
            links=data.get('_links') or {}
        )

    @classmethod
    def from_records(cls, records: List[Record]) -> 'Snapshot':
        """Wrap a full fetch result in a single-page document."""
        count = len(records)
        return cls(
            content=list(records),
            page={
                'size': count,
                'number': 1,
                'totalElements': count,
                'totalPages': 1
            },
            links={}
        )
