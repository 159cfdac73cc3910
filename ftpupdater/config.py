"""Configuration handling for ftpupdater."""

import base64
import json
import logging
import os
import re
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"

# Timer interval of the periodic pass (seconds)
DEFAULT_INTERVAL: float = 1.0

# Socket timeout for a single FTP command (seconds)
DEFAULT_TIMEOUT: float = 30.0


@dataclass(frozen=True)
class Settings:
    """Connection and mirroring settings consumed by the core components.

    Instances are immutable; use ``with_overrides`` to derive a copy with
    values supplied on the command line.
    """

    server_url: str = ""
    """FTP server URL, e.g. ``ftp://example.com`` or ``ftp://example.com:2121/www``"""

    remote_path: str = ""
    """Base path on the server that mirrors the local root"""

    local_path: str = ""
    """Local directory to mirror"""

    recursive: bool = False
    """Whether subdirectories of the local root are mirrored"""

    exclude: str = ""
    """Regular expression; matching relative paths are never mirrored"""

    username: str = ""
    password: str = ""

    interval: float = DEFAULT_INTERVAL
    """Seconds between periodic reconciliation passes"""

    timeout: float = DEFAULT_TIMEOUT
    """Socket timeout for each FTP command"""

    @property
    def local_root(self) -> Path:
        return Path(self.local_path)

    @property
    def host(self) -> str:
        return urlparse(self.server_url).hostname or ""

    @property
    def port(self) -> int:
        return urlparse(self.server_url).port or 21

    @property
    def server_root(self) -> str:
        """Path component of the server URL."""
        return urlparse(self.server_url).path

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied.

        Args:
            **overrides: Field values; None means "keep the stored value"

        Returns:
            New Settings instance
        """
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def validate(self) -> None:
        """Check that the settings are usable for a pass.

        Raises:
            ConfigError: If the server URL, local path or exclude pattern is invalid
        """
        if not self.server_url:
            raise ConfigError("Server URL not configured. Run 'ftpupdater init'.")
        parsed = urlparse(self.server_url)
        if parsed.scheme.lower() != "ftp":
            raise ConfigError(f"Server URL must use the ftp:// scheme: {self.server_url}")
        if not parsed.hostname:
            raise ConfigError(f"Server URL has no host: {self.server_url}")
        if not self.local_path:
            raise ConfigError("Local path not configured. Run 'ftpupdater init'.")
        if self.interval <= 0:
            raise ConfigError("Interval must be greater than zero")
        if self.exclude:
            try:
                re.compile(self.exclude)
            except re.error as e:
                raise ConfigError(f"Invalid exclude pattern: {e}") from e

    def to_dict(self) -> dict:
        """Convert settings to a dictionary for JSON serialization.

        The password is base64-encoded; this keeps it out of casual view but
        is not encryption.
        """
        data = asdict(self)
        data["password"] = base64.b64encode(self.password.encode("utf-8")).decode(
            "ascii"
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary produced by ``to_dict``."""
        try:
            password = base64.b64decode(data.get("password", "")).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise ConfigError(f"Stored password is not valid base64: {e}") from e

        return cls(
            server_url=data.get("server_url", ""),
            remote_path=data.get("remote_path", ""),
            local_path=data.get("local_path", ""),
            recursive=bool(data.get("recursive", False)),
            exclude=data.get("exclude", ""),
            username=data.get("username", ""),
            password=password,
            interval=float(data.get("interval", DEFAULT_INTERVAL)),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
        )


class Config:
    """Loads and stores Settings in the user's config directory.

    The directory defaults to ``~/.config/ftpupdater`` and can be moved with
    the ``FTPUPDATER_CONFIG_DIR`` environment variable. ``FTPUPDATER_PASSWORD``
    takes precedence over a stored password.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = config_dir

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get("FTPUPDATER_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "ftpupdater"

    def get_config_path(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def is_configured(self) -> bool:
        return self.get_config_path().exists()

    def load_settings(self) -> Settings:
        """Load stored settings.

        Returns:
            Stored Settings, or defaults when no config file exists

        Raises:
            ConfigError: If the config file exists but cannot be parsed
        """
        path = self.get_config_path()
        settings = Settings()

        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Failed to read config file {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} does not contain an object")
            settings = Settings.from_dict(data)
            logger.debug(f"Loaded settings from {path}")

        env_password = os.environ.get("FTPUPDATER_PASSWORD")
        if env_password:
            settings = settings.with_overrides(password=env_password)
        return settings

    def save_settings(self, settings: Settings) -> Path:
        """Persist settings to the config file.

        Args:
            settings: Settings to store

        Returns:
            Path of the written config file
        """
        path = self.get_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, indent=2)
            # Restrict permissions since the file holds credentials
            path.chmod(0o600)
        except OSError as e:
            raise ConfigError(f"Failed to write config file {path}: {e}") from e
        logger.debug(f"Saved settings to {path}")
        return path


config = Config()
