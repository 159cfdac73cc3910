"""Tracking of which remote files are known to be current.

The tracker maps each relative path to the local UTC instant as of which the
remote copy is known to match the local file. It is the model every new scan
is diffed against.
"""

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from .scanner import LocalFile
from .utils import PathMap, utc_now

logger = logging.getLogger(__name__)


class RemoteStateTracker:
    """In-memory remote timestamp map.

    The map starts out unset. The first reconciliation pass seeds it from the
    scanned file timestamps, so files already present locally are treated as
    an up-to-date baseline. ``reset`` replaces it with an empty map, which
    forces every local file to be uploaded again.
    """

    def __init__(self, times: Optional[Mapping[str, datetime]] = None):
        self._times: Optional[PathMap[datetime]] = (
            PathMap(times) if times is not None else None
        )

    @property
    def is_initialized(self) -> bool:
        return self._times is not None

    @property
    def times(self) -> PathMap[datetime]:
        """The underlying map, created empty if still unset."""
        if self._times is None:
            self._times = PathMap()
        return self._times

    def seed(self, inventory: Mapping[str, LocalFile]) -> bool:
        """Initialize the map from an inventory if it is still unset.

        Args:
            inventory: Current local inventory

        Returns:
            True if the map was seeded by this call
        """
        if self._times is not None:
            return False
        self._times = PathMap(
            (path, local_file.modified) for path, local_file in inventory.items()
        )
        logger.debug(f"Seeded remote state with {len(self._times)} baseline file(s)")
        return True

    def reset(self) -> None:
        """Forget everything; the next pass uploads every local file."""
        self._times = PathMap()

    def orphans(self, inventory: Mapping[str, LocalFile]) -> list[str]:
        """Tracked paths that no longer exist in the local inventory."""
        return [path for path in self.times if path not in inventory]

    def mark_synced(self, relative_path: str, synced_at: Optional[datetime] = None) -> None:
        self.times[relative_path] = synced_at or utc_now()

    def forget(self, relative_path: str) -> None:
        self.times.pop(relative_path, None)

    def get(self, relative_path: str) -> Optional[datetime]:
        return self.times.get(relative_path)

    def __contains__(self, relative_path: object) -> bool:
        return self._times is not None and relative_path in self._times

    def __len__(self) -> int:
        return len(self._times) if self._times is not None else 0


@dataclass
class SyncState:
    """Serializable snapshot of a RemoteStateTracker."""

    local_path: str
    """Local directory that was mirrored"""

    remote_url: str
    """Server URL and remote base path that were mirrored"""

    times: dict[str, str] = field(default_factory=dict)
    """Relative path to ISO-8601 UTC instant"""

    last_sync: Optional[str] = None
    """ISO timestamp of the snapshot"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {
            "local_path": self.local_path,
            "remote_url": self.remote_url,
            "times": dict(sorted(self.times.items())),
            "last_sync": self.last_sync,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncState":
        """Create SyncState from dictionary."""
        return cls(
            local_path=data.get("local_path", ""),
            remote_url=data.get("remote_url", ""),
            times=dict(data.get("times", {})),
            last_sync=data.get("last_sync"),
        )


class SyncStateManager:
    """Persists tracker state between runs.

    Persistence is opt-in (``--keep-state`` on the command line); without it
    the tracker lives only as long as the process. State files are keyed by
    a hash of the local root and the remote URL.
    """

    def __init__(self, state_dir: Path):
        """Initialize state manager.

        Args:
            state_dir: Directory to store state files
        """
        self.state_dir = state_dir

    def _get_state_key(self, local_path: Path, remote_url: str) -> str:
        local_abs = str(local_path.resolve())
        combined = f"{local_abs}:{remote_url}"
        return hashlib.sha256(combined.encode()).hexdigest()[:16]

    def get_state_file(self, local_path: Path, remote_url: str) -> Path:
        key = self._get_state_key(local_path, remote_url)
        return self.state_dir / f"{key}.json"

    def load(self, local_path: Path, remote_url: str) -> RemoteStateTracker:
        """Load tracker state for a local root / remote pair.

        Returns:
            Tracker restored from disk, or an unset tracker when no usable
            state exists
        """
        state_file = self.get_state_file(local_path, remote_url)

        if not state_file.exists():
            logger.debug(f"No sync state found at {state_file}")
            return RemoteStateTracker()

        try:
            with open(state_file, encoding="utf-8") as f:
                state = SyncState.from_dict(json.load(f))
            times = {
                path: datetime.fromisoformat(instant)
                for path, instant in state.times.items()
            }
        except (OSError, json.JSONDecodeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load sync state: {e}")
            return RemoteStateTracker()

        logger.debug(f"Loaded sync state with {len(times)} files from {state.last_sync}")
        return RemoteStateTracker(times)

    def save(
        self, local_path: Path, remote_url: str, tracker: RemoteStateTracker
    ) -> None:
        """Save tracker state; an unset tracker is not written."""
        if not tracker.is_initialized:
            return

        state = SyncState(
            local_path=str(local_path.resolve()),
            remote_url=remote_url,
            times={path: instant.isoformat() for path, instant in tracker.times.items()},
            last_sync=utc_now().isoformat(),
        )
        state_file = self.get_state_file(local_path, remote_url)

        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(state_file, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
            logger.debug(f"Saved sync state with {len(state.times)} files to {state_file}")
        except OSError as e:
            logger.warning(f"Failed to save sync state: {e}")

    def clear(self, local_path: Path, remote_url: str) -> bool:
        """Delete stored state.

        Returns:
            True if state was cleared, False if no state existed
        """
        state_file = self.get_state_file(local_path, remote_url)
        if state_file.exists():
            state_file.unlink()
            logger.debug(f"Cleared sync state at {state_file}")
            return True
        return False
