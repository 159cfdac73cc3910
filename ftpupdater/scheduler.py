"""Pass scheduling with at-most-one pass in flight."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Callable, Optional

from .calibrator import CalibrationResult, ClockCalibrator
from .config import Settings
from .engine import ReconciliationEngine
from .exceptions import LocalPathError
from .scanner import InventoryScanner, LocalFile
from .state import RemoteStateTracker
from .transport import FtpTransport
from .utils import PathMap

logger = logging.getLogger(__name__)


class RunGuard:
    """Single-slot, non-reentrant run token.

    ``claim`` never blocks: it yields False when another pass holds the token,
    so overlapping triggers are dropped rather than queued.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def claim(self) -> Iterator[bool]:
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


class Scheduler:
    """Triggers reconciliation and calibration passes.

    Periodic passes run on one background thread; on-demand triggers may be
    called from any thread and compete for the same RunGuard.
    """

    def __init__(
        self,
        settings: Settings,
        engine: ReconciliationEngine,
        calibrator: ClockCalibrator,
        on_pass_complete: Optional[Callable[[dict], None]] = None,
    ):
        """Initialize scheduler.

        Args:
            settings: Local root, scan options and interval
            engine: Reconciliation engine applying each pass
            calibrator: Clock calibrator for on-demand calibration
            on_pass_complete: Optional callback receiving each pass's statistics
        """
        self.settings = settings
        self.engine = engine
        self.calibrator = calibrator
        self.on_pass_complete = on_pass_complete
        self.scanner = InventoryScanner(
            recursive=settings.recursive, exclude=settings.exclude
        )
        self.guard = RunGuard()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        tracker: Optional[RemoteStateTracker] = None,
        on_activity: Optional[Callable[[], None]] = None,
        on_pass_complete: Optional[Callable[[dict], None]] = None,
    ) -> "Scheduler":
        """Wire transport, tracker, engine and calibrator for ``settings``.

        Args:
            settings: Validated settings
            tracker: Existing remote state (a fresh, unset tracker if omitted)
            on_activity: Callback invoked at the start of every FTP command
            on_pass_complete: Callback receiving each pass's statistics

        Returns:
            Scheduler ready to run passes
        """
        transport = FtpTransport(settings, on_activity=on_activity)
        tracker = tracker if tracker is not None else RemoteStateTracker()
        return cls(
            settings,
            ReconciliationEngine(transport, tracker),
            ClockCalibrator(transport, tracker, exclude=settings.exclude),
            on_pass_complete=on_pass_complete,
        )

    def scan(self) -> PathMap[LocalFile]:
        """Scan the local root with the configured options.

        Raises:
            LocalPathError: If the local root is not a directory
        """
        root = self.settings.local_root
        if not root.is_dir():
            raise LocalPathError(f"Local path is not a directory: {root}")
        return self.scanner.scan(root)

    def sync(self) -> Optional[dict]:
        """Run a reconciliation pass unless one is already running.

        Returns:
            Pass statistics, or None if the trigger was dropped
        """
        with self.guard.claim() as acquired:
            if not acquired:
                logger.debug("Pass already running; sync trigger dropped")
                return None
            return self._run_sync()

    def full_resync(self) -> Optional[dict]:
        """Clear the remote state and run a pass, re-uploading every file.

        Returns:
            Pass statistics, or None if the trigger was dropped
        """
        with self.guard.claim() as acquired:
            if not acquired:
                logger.debug("Pass already running; full resync dropped")
                return None
            logger.info("Updating all")
            self.engine.tracker.reset()
            stats = self._run_sync()
            logger.info("Updated all")
            return stats

    def calibrate(self) -> Optional[CalibrationResult]:
        """Run a clock calibration pass unless a pass is already running."""
        with self.guard.claim() as acquired:
            if not acquired:
                logger.debug("Pass already running; calibration dropped")
                return None
            return self.calibrator.calibrate(self.scan())

    def _run_sync(self) -> dict:
        stats = self.engine.run_pass(self.scan())
        if self.on_pass_complete is not None:
            self.on_pass_complete(stats)
        return stats

    def _tick(self) -> None:
        try:
            self.sync()
        except LocalPathError as e:
            logger.error(str(e))
        except Exception as e:
            logger.exception(f"Pass failed, retrying next interval: {e}")

    def run_forever(self) -> None:
        """Trigger passes every ``settings.interval`` seconds until stopped."""
        logger.info("Started")
        while not self._stop_event.is_set():
            self._tick()
            self._stop_event.wait(self.settings.interval)
        logger.info("Stopped")

    def start(self) -> None:
        """Run the periodic loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="ftpupdater-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the periodic loop; a running pass is allowed to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
