"""FTP command execution.

Every command opens its own connection, runs exactly one FTP command against
one remote path and closes the connection again. Failures never escape
``FtpTransport.execute``; they are reported through the returned status code
and a log line.
"""

import ftplib
import io
import logging
import time
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional

from .config import Settings
from .utils import ACTIVITY_FLASH_SECONDS, combine_path

logger = logging.getLogger(__name__)

PayloadProducer = Callable[[], bytes]


class FtpCommand(str, Enum):
    """FTP commands used by the updater."""

    LIST = "LIST"
    """Detailed (long form) directory listing"""

    UPLOAD = "STOR"
    """Store a file"""

    DELETE = "DELE"
    """Delete a file"""

    MAKE_DIRECTORY = "MKD"
    """Create a directory"""


class FtpStatus(IntEnum):
    """Reply codes the updater reacts to."""

    UNDEFINED = 0
    """No reply was received (connection or protocol failure)"""

    CLOSING_DATA = 226
    FILE_ACTION_OK = 250
    PATHNAME_CREATED = 257

    PERMANENT_FAILURE = 400
    """Replies at or above this code are failures"""

    FILENAME_NOT_ALLOWED = 553
    """Requested action not taken; file name not allowed (missing directory)"""


@dataclass
class FtpResult:
    """Outcome of a single FTP command."""

    status: int
    """Final reply code, or FtpStatus.UNDEFINED when none was received"""

    body: Optional[str] = None
    """Response text for listing commands"""

    @property
    def succeeded(self) -> bool:
        return FtpStatus.UNDEFINED < self.status < FtpStatus.PERMANENT_FAILURE

    @property
    def path_not_allowed(self) -> bool:
        return self.status == FtpStatus.FILENAME_NOT_ALLOWED


def reply_code(message: object) -> int:
    """Extract the three-digit reply code from an ftplib reply or error.

    Args:
        message: Server reply string or ftplib exception

    Returns:
        Reply code, or FtpStatus.UNDEFINED if none can be found
    """
    text = str(message).strip()
    if len(text) >= 3 and text[:3].isdigit():
        return int(text[:3])
    return FtpStatus.UNDEFINED


class FtpTransport:
    """Executes single FTP commands against the configured server.

    Examples:
        >>> transport = FtpTransport(settings)
        >>> result = transport.execute(FtpCommand.LIST, "img")
        >>> result.succeeded, result.body
    """

    def __init__(
        self,
        settings: Settings,
        on_activity: Optional[Callable[[], None]] = None,
        ftp_factory: Callable[..., ftplib.FTP] = ftplib.FTP,
    ):
        """Initialize transport.

        Args:
            settings: Connection settings (host, credentials, base paths)
            on_activity: Optional callback invoked at the start of every command
            ftp_factory: Callable creating the ftplib connection object
        """
        self.settings = settings
        self.on_activity = on_activity
        self.ftp_factory = ftp_factory
        self.activity_expiry = 0.0

    @property
    def is_active(self) -> bool:
        """True while the activity indicator should be lit."""
        return time.monotonic() < self.activity_expiry

    def remote_path(self, relative_path: str) -> str:
        """Absolute server path for a path relative to the local root."""
        return "/" + combine_path(
            self.settings.server_root, self.settings.remote_path, relative_path
        )

    def execute(
        self,
        command: FtpCommand,
        relative_path: str,
        payload: Optional[PayloadProducer] = None,
    ) -> FtpResult:
        """Run one FTP command on its own connection.

        Args:
            command: Command to run
            relative_path: Target path relative to the remote base path
            payload: Optional callable producing the bytes to upload; only
                invoked once the connection is established

        Returns:
            FtpResult with the reply code and, for LIST, the listing text
        """
        self.activity_expiry = time.monotonic() + ACTIVITY_FLASH_SECONDS
        if self.on_activity is not None:
            self.on_activity()

        target = self.remote_path(relative_path)
        name = command.name.lower()

        try:
            with self.ftp_factory() as ftp:
                ftp.connect(
                    self.settings.host, self.settings.port, timeout=self.settings.timeout
                )
                ftp.login(self.settings.username, self.settings.password)
                result = self._run(ftp, command, target, payload)
        except ftplib.Error as e:
            logger.warning(f"{name} {relative_path} failure - {e}")
            return FtpResult(status=reply_code(e))
        except Exception as e:
            # Network errors, and replies ftplib cannot decode
            logger.warning(f"{name} {relative_path} failure - {e}")
            return FtpResult(status=FtpStatus.UNDEFINED)

        logger.info(f"{name} {relative_path} success")
        return result

    def _run(
        self,
        ftp: ftplib.FTP,
        command: FtpCommand,
        target: str,
        payload: Optional[PayloadProducer],
    ) -> FtpResult:
        if command == FtpCommand.LIST:
            chunks: list[bytes] = []
            response = ftp.retrbinary(f"LIST {target}", chunks.append)
            body = b"".join(chunks).decode("utf-8", errors="replace")
            return FtpResult(status=reply_code(response), body=body)

        if command == FtpCommand.UPLOAD:
            data = payload() if payload is not None else b""
            response = ftp.storbinary(f"STOR {target}", io.BytesIO(data))
            return FtpResult(status=reply_code(response))

        # DELE and MKD carry no data connection
        ftp.voidcmd("TYPE I")
        response = ftp.sendcmd(f"{command.value} {target}")
        return FtpResult(status=reply_code(response))
