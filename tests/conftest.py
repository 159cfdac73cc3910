"""Shared fixtures for ftpupdater tests."""

import tempfile
from collections import defaultdict, deque
from pathlib import Path
from typing import Optional

import pytest

from ftpupdater.config import Settings
from ftpupdater.transport import FtpCommand, FtpResult, FtpStatus


class FakeTransport:
    """Records FTP commands instead of talking to a server.

    Responses are queued per (command, path); commands without a queued
    response succeed with a 226/250 reply. Payload producers are invoked so
    that uploaded bytes can be inspected.
    """

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        self.settings = settings
        self.calls: list[tuple[FtpCommand, str]] = []
        self.uploads: dict[str, bytes] = {}
        self.responses: dict[tuple[FtpCommand, str], deque] = defaultdict(deque)
        self.listings: dict[str, str] = {}
        self.is_active = False

    def respond(self, command: FtpCommand, path: str, *results: FtpResult) -> None:
        self.responses[(command, path)].extend(results)

    def execute(self, command, relative_path, payload=None) -> FtpResult:
        self.calls.append((command, relative_path))
        queued = self.responses.get((command, relative_path))
        if queued:
            return queued.popleft()
        if command == FtpCommand.LIST:
            return FtpResult(
                status=FtpStatus.CLOSING_DATA, body=self.listings.get(relative_path, "")
            )
        if command == FtpCommand.UPLOAD:
            self.uploads[relative_path] = payload() if payload is not None else b""
            return FtpResult(status=FtpStatus.CLOSING_DATA)
        return FtpResult(status=FtpStatus.FILE_ACTION_OK)

    def commands(self, command: FtpCommand) -> list[str]:
        return [path for cmd, path in self.calls if cmd == command]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def transport():
    """Provide a fake transport that records commands."""
    return FakeTransport()


@pytest.fixture
def settings(temp_dir):
    """Settings pointing at the temporary directory."""
    return Settings(
        server_url="ftp://ftp.example.com/www",
        remote_path="site",
        local_path=str(temp_dir),
        recursive=True,
        username="user",
        password="secret",
        interval=0.01,
    )
