"""Reconciliation engine: applies local changes to the FTP server."""

import logging
from collections.abc import Mapping

from .comparator import FileComparator, SyncAction, SyncDecision
from .scanner import LocalFile
from .state import RemoteStateTracker
from .transport import FtpCommand, FtpResult, FtpTransport
from .utils import ancestor_paths, utc_now

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Uploads new and changed files and deletes orphaned remote files.

    A pass never raises because of a failed FTP command: the affected path
    keeps its previous state and is retried on the next pass.
    """

    def __init__(self, transport: FtpTransport, tracker: RemoteStateTracker):
        """Initialize reconciliation engine.

        Args:
            transport: FTP transport used for every command
            tracker: Remote state, updated after each successful action
        """
        self.transport = transport
        self.tracker = tracker

    def plan(self, inventory: Mapping[str, LocalFile]) -> list[SyncDecision]:
        """Compute the actions a pass would take, without side effects.

        An unset tracker is compared as if seeded from ``inventory``.
        """
        tracker = self.tracker
        if not tracker.is_initialized:
            tracker = RemoteStateTracker()
            tracker.seed(inventory)
        return FileComparator(tracker).compare_files(inventory)

    def run_pass(self, inventory: Mapping[str, LocalFile]) -> dict:
        """Run one reconciliation pass.

        Args:
            inventory: Current local inventory

        Returns:
            Dictionary with pass statistics
        """
        self.tracker.seed(inventory)
        decisions = FileComparator(self.tracker).compare_files(inventory)
        stats = self._create_empty_stats()

        for decision in decisions:
            if decision.action == SyncAction.UPLOAD and decision.local_file:
                self._upload(decision.local_file, stats)
            elif decision.action == SyncAction.DELETE_REMOTE:
                self._delete_remote(decision.relative_path, stats)
            else:
                stats["skips"] += 1

        logger.debug(
            f"Pass complete: {stats['uploads']} uploaded, "
            f"{stats['upload_failures']} failed, "
            f"{stats['deletes_remote']} deleted"
        )
        return stats

    def _create_empty_stats(self) -> dict:
        return {
            "uploads": 0,
            "upload_failures": 0,
            "directories_created": 0,
            "deletes_remote": 0,
            "skips": 0,
        }

    def _upload(self, local_file: LocalFile, stats: dict) -> None:
        path = local_file.relative_path
        started_at = utc_now()
        result = self._store(local_file)

        if result.path_not_allowed:
            logger.debug(f"Parent directory missing for {path}, creating ancestors")
            stats["directories_created"] += self.make_directories(path)
            result = self._store(local_file)

        if result.succeeded:
            self.tracker.mark_synced(path, started_at)
            stats["uploads"] += 1
        else:
            stats["upload_failures"] += 1

    def _store(self, local_file: LocalFile) -> FtpResult:
        return self.transport.execute(
            FtpCommand.UPLOAD, local_file.relative_path, local_file.read_bytes
        )

    def make_directories(self, relative_path: str) -> int:
        """Create every ancestor directory of a path, root first.

        Individual failures (usually "already exists") are ignored.

        Returns:
            Number of directories the server reported as created
        """
        created = 0
        for directory in ancestor_paths(relative_path):
            result = self.transport.execute(FtpCommand.MAKE_DIRECTORY, directory)
            if result.succeeded:
                created += 1
        return created

    def _delete_remote(self, relative_path: str, stats: dict) -> None:
        self.transport.execute(FtpCommand.DELETE, relative_path)
        # Removed regardless of outcome: either deleted or already gone
        self.tracker.forget(relative_path)
        stats["deletes_remote"] += 1
