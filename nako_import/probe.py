"""Cached existence probing with a trace of every attempt."""

import logging
from pathlib import Path

from .models import TraceEntry

logger = logging.getLogger(__name__)


class PathProbe:
    """Checks candidate paths for regular files, remembering answers and attempts.

    Created fresh for each top-level resolution, so nothing (including
    negative answers) survives into the next one.
    """

    def __init__(self):
        self._cache: dict[str, bool] = {}
        self._trace: list[TraceEntry] = []

    def is_file(self, description: str, path: Path) -> bool:
        """Return True if path exists as a regular file (directories never count).

        A path the OS refuses to stat (name too long, permission denied) is
        reported as missing.
        """
        key = str(path)
        found = self._cache.get(key)
        if found is None:
            try:
                found = path.is_file()
            except OSError as e:
                logger.debug(f"[import:probe] cannot stat {key}: {e}")
                found = False
            self._cache[key] = found
        self._trace.append(TraceEntry(description=description, path=key, found=found))
        logger.debug(f"[import:probe] {description}: {key} -> {'found' if found else 'missing'}")
        return found

    @property
    def trace(self) -> tuple[TraceEntry, ...]:
        return tuple(self._trace)

    @property
    def syscalls(self) -> int:
        """Number of distinct paths actually checked on disk."""
        return len(self._cache)
