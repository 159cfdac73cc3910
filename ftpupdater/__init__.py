"""ftpupdater - keep a local directory mirrored onto an FTP server."""

from .calibrator import CalibrationResult, ClockCalibrator
from .comparator import FileComparator, SyncAction, SyncDecision
from .config import Config, Settings, config
from .engine import ReconciliationEngine
from .exceptions import ConfigError, FtpUpdaterError, LocalPathError
from .listing import ListingEntry, parse_listing
from .scanner import ExclusionFilter, InventoryScanner, LocalFile
from .scheduler import RunGuard, Scheduler
from .state import RemoteStateTracker, SyncStateManager
from .transport import FtpCommand, FtpResult, FtpStatus, FtpTransport

__all__ = [
    "CalibrationResult",
    "ClockCalibrator",
    "Config",
    "ConfigError",
    "ExclusionFilter",
    "FileComparator",
    "FtpCommand",
    "FtpResult",
    "FtpStatus",
    "FtpTransport",
    "FtpUpdaterError",
    "InventoryScanner",
    "ListingEntry",
    "LocalFile",
    "LocalPathError",
    "ReconciliationEngine",
    "RemoteStateTracker",
    "RunGuard",
    "Scheduler",
    "Settings",
    "SyncAction",
    "SyncDecision",
    "SyncStateManager",
    "config",
    "parse_listing",
]
