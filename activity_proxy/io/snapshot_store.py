"""Persisted historical snapshot: a single JSON document overwritten once a day."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..core.errors import PersistenceError
from ..core.logging import get_logger
from ..core.snapshot import Snapshot

logger = get_logger(__name__)


class SnapshotStore:
    """Reads and writes the full historical dataset, memoizing it in memory.

    This is the only durable state of the proxy: after a restart the last
    successfully saved snapshot becomes the historical baseline again.
    """

    def __init__(self, snapshot_file: str):
        """Initialize the snapshot store.

        Args:
            snapshot_file: Path of the JSON document holding the snapshot
        """
        self.snapshot_file_path = Path(snapshot_file)
        self._cached: Optional[Snapshot] = None
        self._loaded = False
        self.logger = get_logger(__name__)

    @property
    def cached(self) -> Optional[Snapshot]:
        """The memoized snapshot, without touching the disk."""
        return self._cached

    def load(self, force_reload: bool = False) -> Optional[Snapshot]:
        """Load the persisted snapshot, reading the file only once.

        A missing or unparsable file is logged and reported as None so the
        proxy can run with an empty historical baseline.

        Args:
            force_reload: Re-read the file even if a copy is memoized

        Returns:
            The snapshot, or None if there is nothing usable on disk
        """
        if self._loaded and not force_reload:
            return self._cached

        self._loaded = True
        try:
            self._cached = self._read()
        except PersistenceError as e:
            self.logger.error(f"Could not load historical snapshot - continuing without it: {e}")
            self._cached = None
        return self._cached

    def _read(self) -> Optional[Snapshot]:
        if not self.snapshot_file_path.exists():
            self.logger.warning(f"No historical snapshot found at {self.snapshot_file_path}")
            return None

        try:
            with open(self.snapshot_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            snapshot = Snapshot.from_dict(data)
        except (OSError, json.JSONDecodeError, ValueError) as e:
            raise PersistenceError(f"Error reading {self.snapshot_file_path}: {e}") from e

        self.logger.info(f"Loaded historical snapshot with {len(snapshot)} activities "
                         f"from {self.snapshot_file_path}")
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        """Overwrite the persisted snapshot and update the memoized copy.

        The document is written to a temporary file in the same directory and
        moved over the target, so the file is always either the old or the new
        complete snapshot.

        Raises:
            PersistenceError: If the snapshot could not be written
        """
        tmp_path = None
        try:
            self.snapshot_file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.snapshot_file_path.name}.",
                suffix=".tmp",
                dir=str(self.snapshot_file_path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot.to_dict(), f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.snapshot_file_path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Error writing {self.snapshot_file_path}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    self.logger.debug(f"Could not remove temporary file {tmp_path}")

        self._cached = snapshot
        self._loaded = True
        self.logger.info(f"Saved historical snapshot with {len(snapshot)} activities "
                         f"to {self.snapshot_file_path}")
