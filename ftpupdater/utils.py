"""Utility functions for ftpupdater."""

from collections.abc import Iterator, MutableMapping
from datetime import datetime, timezone
from typing import Generic, TypeVar

# =============================================================================
# Constants
# =============================================================================

# Seconds the activity indicator stays lit after an FTP command
ACTIVITY_FLASH_SECONDS: float = 5.0

# Number of lines kept by the in-memory activity log
ACTIVITY_LOG_SIZE: int = 50


# =============================================================================
# Remote path helpers
# =============================================================================


def combine_path(*parts: str) -> str:
    """Join remote path fragments with single forward slashes.

    Empty fragments are dropped and each fragment is trimmed of leading and
    trailing slashes, so the result never starts or ends with ``/``.

    Args:
        *parts: Path fragments (may be empty)

    Returns:
        Combined path

    Examples:
        >>> combine_path("/www/", "", "img/a.png")
        'www/img/a.png'
        >>> combine_path("", "a.txt")
        'a.txt'
    """
    return "/".join(p.strip("/") for p in parts if p and p.strip("/")).strip("/")


def parent_path(relative_path: str) -> str:
    """Return the directory part of a relative path ("" for top-level files).

    Examples:
        >>> parent_path("img/icons/a.png")
        'img/icons'
        >>> parent_path("a.png")
        ''
    """
    head, _, _ = relative_path.rpartition("/")
    return head


def ancestor_paths(relative_path: str) -> list[str]:
    """List every ancestor directory of a relative path, root first.

    Examples:
        >>> ancestor_paths("a/b/c.txt")
        ['a', 'a/b']
        >>> ancestor_paths("c.txt")
        []
    """
    return [relative_path[:i] for i, ch in enumerate(relative_path) if ch == "/"]


# =============================================================================
# Time helpers
# =============================================================================


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_from_timestamp(timestamp: float) -> datetime:
    """Convert a Unix timestamp to a timezone-aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


# =============================================================================
# Case-insensitive path mapping
# =============================================================================

V = TypeVar("V")


class PathMap(MutableMapping[str, V], Generic[V]):
    """Mapping keyed by relative path, compared case-insensitively.

    Both the local inventory and the remote state use this type so that
    lookups between them agree. The most recently assigned spelling of a key
    is the one reported by iteration.

    Examples:
        >>> m = PathMap()
        >>> m["Img/A.png"] = 1
        >>> "img/a.png" in m
        True
    """

    def __init__(self, *args, **kwargs):
        self._store: dict[str, tuple[str, V]] = {}
        self.update(*args, **kwargs)

    @staticmethod
    def _fold(key: str) -> str:
        return key.casefold()

    def __setitem__(self, key: str, value: V) -> None:
        self._store[self._fold(key)] = (key, value)

    def __getitem__(self, key: str) -> V:
        return self._store[self._fold(key)][1]

    def __delitem__(self, key: str) -> None:
        del self._store[self._fold(key)]

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._fold(key) in self._store

    def copy(self) -> "PathMap[V]":
        return PathMap(self.items())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"
