"""Local inventory scanning."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .utils import PathMap, utc_from_timestamp

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Path relative to the local root, forward slashes, no leading/trailing slash"""

    modified: datetime
    """Later of creation and last write time (UTC)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Local root for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        relative_path = file_path.relative_to(base_path).as_posix().strip("/")

        timestamp = stat.st_mtime
        # st_birthtime exists on macOS, BSD and recent Windows builds only
        stat_any: Any = stat
        if hasattr(stat_any, "st_birthtime"):
            timestamp = max(timestamp, stat_any.st_birthtime)

        return cls(
            path=file_path,
            relative_path=relative_path,
            modified=utc_from_timestamp(timestamp),
        )

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class ExclusionFilter:
    """Case-insensitive regular expression matched against relative paths.

    An empty pattern excludes nothing.

    Examples:
        >>> ExclusionFilter(r"\\.tmp$").matches("cache/A.TMP")
        True
    """

    def __init__(self, pattern: Optional[str] = None):
        self.pattern = pattern or ""
        self._regex = re.compile(self.pattern, re.IGNORECASE) if self.pattern else None

    def matches(self, relative_path: str) -> bool:
        return self._regex is not None and self._regex.search(relative_path) is not None


class InventoryScanner:
    """Builds the inventory of local files to mirror.

    Examples:
        >>> scanner = InventoryScanner(recursive=True, exclude=r"^\\.git/")
        >>> files = scanner.scan(Path("/var/www"))
        >>> files["index.html"].modified
    """

    def __init__(self, recursive: bool = False, exclude: Optional[str] = None):
        """Initialize inventory scanner.

        Args:
            recursive: Whether to descend into subdirectories
            exclude: Regular expression of relative paths to leave out
        """
        self.recursive = recursive
        self.exclusion = ExclusionFilter(exclude)

    def scan(self, root: Path) -> PathMap[LocalFile]:
        """Scan the local root.

        Args:
            root: Local root directory

        Returns:
            Case-insensitive mapping of relative path to LocalFile. When two
            files differ only by case, the one scanned last wins.
        """
        inventory: PathMap[LocalFile] = PathMap()
        for local_file in self._scan_directory(root, root):
            if self.exclusion.matches(local_file.relative_path):
                logger.debug(f"Excluding: {local_file.relative_path}")
                continue
            inventory[local_file.relative_path] = local_file
        return inventory

    def _scan_directory(self, directory: Path, base_path: Path) -> list[LocalFile]:
        files: list[LocalFile] = []

        try:
            for item in directory.iterdir():
                if item.is_file():
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        logger.debug(f"Skipping unreadable file {item}: {e}")
                elif self.recursive and item.is_dir() and not item.is_symlink():
                    files.extend(self._scan_directory(item, base_path))
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")

        return files
