"""Exceptions raised by ftpupdater."""


class FtpUpdaterError(Exception):
    """Base exception for all ftpupdater errors."""


class ConfigError(FtpUpdaterError):
    """Settings are missing, invalid, or could not be read."""


class LocalPathError(FtpUpdaterError):
    """The configured local root does not exist or is not a directory."""
