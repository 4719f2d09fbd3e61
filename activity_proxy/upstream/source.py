"""Activity sources: where the scheduler gets recent and full record sets from."""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..core.errors import UpstreamError
from ..core.logging import get_logger
from ..core.models import Record


class ActivitySource(ABC):
    """Abstract base class for activity sources."""

    #: Whether the source needs a bearer token (drives proactive renewal)
    requires_auth: bool = True

    def __init__(self):
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def fetch_recent(self, since: datetime) -> List[Record]:
        """Fetch records from the trailing window starting at ``since``."""
        pass

    @abstractmethod
    async def fetch_full(self) -> List[Record]:
        """Fetch the complete dataset."""
        pass

    async def close(self) -> None:
        """Release any resources held by the source."""
        return None


class StaticFileSource(ActivitySource):
    """Serves a static ``{page, content, _links}`` document instead of the live API.

    The file is read from disk once and kept in memory; every fetch returns its
    ``content`` regardless of the requested window.
    """

    requires_auth = False

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self._content: Optional[List[Record]] = None

    def _load(self) -> List[Record]:
        if self._content is None:
            self.logger.info(f"Reading mock data from disk (first time): {self.path}")
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise UpstreamError(f"Could not read mock data file {self.path}: {e}") from e

            content = data.get('content') if isinstance(data, dict) else None
            if not isinstance(content, list):
                raise UpstreamError(f"Mock data file {self.path} has no 'content' list")
            self._content = content
            self.logger.info(f"{len(content)} activities loaded from mock data")
        return self._content

    async def fetch_recent(self, since: datetime) -> List[Record]:
        return list(self._load())

    async def fetch_full(self) -> List[Record]:
        return list(self._load())
