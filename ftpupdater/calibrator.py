"""Clock calibration against the FTP server.

Directory listings report modification times in the server's own clock,
without a timezone and often without a year. Rather than trusting those
absolute values, the calibrator uploads a probe file at a known local instant
and reads back the time the server assigned to it. Every other listed file is
then expressed relative to the probe::

    local_time(p) = T_local + (remote_time(p) - remote_time(probe))
"""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from .listing import parse_listing
from .scanner import ExclusionFilter, LocalFile
from .state import RemoteStateTracker
from .transport import FtpCommand, FtpTransport
from .utils import PathMap, combine_path, parent_path, utc_now

logger = logging.getLogger(__name__)


@dataclass
class CalibrationResult:
    """Outcome of a calibration pass."""

    probe_path: str
    """Remote path of the probe (relative to the remote base path)"""

    probe_uploaded_at: datetime
    """Local UTC time taken just before the probe upload"""

    offset: Optional[timedelta] = None
    """Local minus remote time of the probe; None if the probe was not listed"""

    remote_times: PathMap[datetime] = field(default_factory=PathMap)
    """Raw parsed remote instants, probe included"""

    updated: int = 0
    """Number of remote state entries written"""

    @property
    def succeeded(self) -> bool:
        return self.offset is not None


class ClockCalibrator:
    """Derives remote file times in the local clock's frame."""

    def __init__(
        self,
        transport: FtpTransport,
        tracker: RemoteStateTracker,
        exclude: Optional[str] = None,
    ):
        """Initialize clock calibrator.

        Args:
            transport: FTP transport used for every command
            tracker: Remote state that receives the calibrated times
            exclude: Exclusion pattern; matching remote paths are not recorded
        """
        self.transport = transport
        self.tracker = tracker
        self.exclusion = ExclusionFilter(exclude)

    @staticmethod
    def directories(inventory: Mapping[str, LocalFile]) -> list[str]:
        """Distinct parent directories of the inventory, in first-seen order."""
        return list(dict.fromkeys(parent_path(path) for path in inventory))

    @staticmethod
    def probe_name() -> str:
        return str(uuid.uuid4())

    def calibrate(self, inventory: Mapping[str, LocalFile]) -> Optional[CalibrationResult]:
        """Run one calibration pass.

        Args:
            inventory: Current local inventory; its directories are listed

        Returns:
            CalibrationResult, or None when the inventory is empty and there
            is no directory to probe
        """
        directories = self.directories(inventory)
        if not directories:
            logger.warning("No local files found; skipping clock calibration")
            return None

        probe_path = combine_path(directories[0], self.probe_name())
        result = CalibrationResult(probe_path=probe_path, probe_uploaded_at=utc_now())

        try:
            self.transport.execute(
                FtpCommand.UPLOAD, probe_path, lambda: probe_path.encode("ascii")
            )
            for directory in directories:
                listing = self.transport.execute(FtpCommand.LIST, directory)
                for entry in parse_listing(listing.body):
                    result.remote_times[combine_path(directory, entry.name)] = entry.modified
        finally:
            self.transport.execute(FtpCommand.DELETE, probe_path)

        probe_time = result.remote_times.get(probe_path)
        if probe_time is None:
            logger.warning(
                "Probe file not found in remote listing; remote state left unchanged"
            )
            return result

        result.offset = result.probe_uploaded_at - probe_time
        for path, remote_time in result.remote_times.items():
            if path.casefold() == probe_path.casefold() or self.exclusion.matches(path):
                continue
            self.tracker.mark_synced(path, result.probe_uploaded_at + (remote_time - probe_time))
            result.updated += 1

        logger.info(f"Clock offset {result.offset}; {result.updated} remote time(s) updated")
        return result
