"""
Snapshot store for pre-change file backups.

A snapshot is a directory under the store root named by a second-resolution
timestamp (YYYYmmdd-HHMMSS). Because the names are fixed width, sorting them
lexicographically also sorts them chronologically.
"""

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from ..core.exceptions import SnapshotNotFoundError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
SNAPSHOT_NAME = re.compile(r'^\d{8}-\d{6}$')

PathLike = Union[str, Path]


class SnapshotStore:
    """
    Creates, lists and restores timestamped backup directories.

    Snapshots are never pruned by the store. With ``per_run`` set, the
    first snapshot directory created is reused for the store's lifetime so
    every module of one run backs up into the same snapshot.
    """

    def __init__(self, root: PathLike, per_run: bool = False):
        """
        Initialize the snapshot store.

        Args:
            root: Directory holding one subdirectory per snapshot
            per_run: Reuse one snapshot directory for all backups
        """
        self.root = Path(root)
        self.per_run = per_run
        self._run_dir: Optional[Path] = None

    def new_snapshot_dir(self) -> Path:
        """
        Create the directory for a new snapshot.

        Two calls within the same second return the same directory; a
        per-run store returns its first directory on every call.

        Returns:
            Path: The snapshot directory
        """
        if self._run_dir is not None:
            return self._run_dir

        path = self.root / datetime.now().strftime(TIMESTAMP_FORMAT)
        path.mkdir(mode=0o755, parents=True, exist_ok=True)
        logger.info("Using snapshot directory %s", path)
        if self.per_run:
            self._run_dir = path
        return path

    def backup_path(self, snapshot_dir: PathLike, original: PathLike) -> Path:
        """Location of ``original``'s backup inside ``snapshot_dir``."""
        return Path(snapshot_dir) / Path(original).name

    def backup_file(self, snapshot_dir: PathLike, src: PathLike) -> Path:
        """
        Copy the current bytes of ``src`` into the snapshot.

        The copy is stored under the base filename of ``src``; a second file
        with the same base name in the same snapshot replaces the first.

        Raises:
            FileNotFoundError: If ``src`` does not exist
        """
        backup = self.backup_path(snapshot_dir, src)
        data = Path(src).read_bytes()
        backup.write_bytes(data)
        backup.chmod(0o600)
        logger.debug("Backed up %s to %s", src, backup)
        return backup

    def restore_file(self, src: PathLike, dst: PathLike) -> None:
        """Overwrite ``dst`` with the bytes captured in backup ``src``."""
        shutil.copyfile(src, dst)
        logger.info("Restored %s from %s", dst, src)

    def list_snapshots(self) -> List[Path]:
        """
        List snapshot directories, oldest first.

        Only directories named like a snapshot timestamp count; anything else
        under the root is ignored.

        Returns:
            List[Path]: Snapshot directories; empty when the root is missing
        """
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir()
                      if p.is_dir() and SNAPSHOT_NAME.match(p.name))

    def latest_snapshot(self) -> Path:
        """
        Most recent snapshot directory.

        Raises:
            SnapshotNotFoundError: If no snapshot exists
        """
        snapshots = self.list_snapshots()
        if not snapshots:
            raise SnapshotNotFoundError(f"No snapshots found in {self.root}")
        return snapshots[-1]
