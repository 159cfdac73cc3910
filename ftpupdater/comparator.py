"""Diffing of the local inventory against the remote state."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .scanner import LocalFile
from .state import RemoteStateTracker


class SyncAction(str, Enum):
    """Actions that can be taken during a reconciliation pass."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DELETE_REMOTE = "delete_remote"
    """Delete remote file"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    local_file: Optional[LocalFile]
    """Local file (if exists)"""

    relative_path: str
    """Relative path of the file"""


class FileComparator:
    """Compares the local inventory with the remote state map."""

    def __init__(self, tracker: RemoteStateTracker):
        """Initialize file comparator.

        Args:
            tracker: Remote state to compare against
        """
        self.tracker = tracker

    def compare_files(self, local_files: Mapping[str, LocalFile]) -> list[SyncDecision]:
        """Determine sync actions for an inventory.

        Uploads and skips come first in inventory order, followed by remote
        deletions for tracked paths missing from the inventory.

        Args:
            local_files: Mapping of relative path to LocalFile

        Returns:
            List of SyncDecision objects
        """
        decisions = [
            self._compare_local_file(path, local_file)
            for path, local_file in local_files.items()
        ]
        decisions.extend(
            SyncDecision(
                action=SyncAction.DELETE_REMOTE,
                reason="File deleted locally",
                local_file=None,
                relative_path=path,
            )
            for path in self.tracker.orphans(local_files)
        )
        return decisions

    def _compare_local_file(self, path: str, local_file: LocalFile) -> SyncDecision:
        synced_at = self.tracker.get(path)

        if synced_at is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="New local file",
                local_file=local_file,
                relative_path=path,
            )

        if local_file.modified > synced_at:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="Local file changed since last upload",
                local_file=local_file,
                relative_path=path,
            )

        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Remote copy is current",
            local_file=local_file,
            relative_path=path,
        )
