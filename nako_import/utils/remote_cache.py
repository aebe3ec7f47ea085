"""Remote content cache - single source of truth for cache file naming and scanning.

Remote plugins are written to <cache_dir>/<sanitized-url>.py before they are
loaded. Entries are created on first fetch and never refreshed automatically.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import UTC
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")
CACHE_SUFFIX = ".py"
MAX_NAME_LENGTH = 200


@dataclass
class CachedArtifact:
    """Information about one cached remote artifact."""

    name: str
    path: Path
    size: int
    cached_at: str


def sanitize_url(url: str) -> str:
    """Turn a URL into a filesystem-safe token (non-alphanumerics become '_')."""
    return _UNSAFE_CHARS.sub("_", url)


def cache_file_for_url(cache_dir: Path, url: str) -> Path:
    """Cache file path for a remote URL.

    Names longer than MAX_NAME_LENGTH keep a readable prefix and end in a
    digest of the full URL, so they stay within filesystem name limits.
    """
    name = sanitize_url(url)
    if len(name) > MAX_NAME_LENGTH:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        name = f"{name[: MAX_NAME_LENGTH - len(digest) - 1]}_{digest}"
    return cache_dir / f"{name}{CACHE_SUFFIX}"


def scan_cache(cache_dir: Path) -> list[CachedArtifact]:
    """List cached artifacts sorted by name."""
    if not cache_dir.exists():
        return []

    entries: list[CachedArtifact] = []
    for entry in cache_dir.iterdir():
        if not entry.is_file() or entry.suffix != CACHE_SUFFIX:
            continue
        try:
            stat = entry.stat()
        except OSError as e:
            logger.debug(f"Could not stat cache entry {entry}: {e}")
            continue
        entries.append(
            CachedArtifact(
                name=entry.name,
                path=entry,
                size=stat.st_size,
                cached_at=datetime.fromtimestamp(stat.st_mtime, UTC).isoformat(timespec="seconds"),
            )
        )

    entries.sort(key=lambda e: e.name)
    return entries


def clear_cache(cache_dir: Path) -> tuple[int, int]:
    """Delete every cached artifact.

    Returns:
        Tuple of (cleared_count, failed_count)
    """
    cleared = 0
    failed = 0
    for artifact in scan_cache(cache_dir):
        try:
            artifact.path.unlink()
            cleared += 1
        except OSError as e:
            logger.warning(f"Could not clear {artifact.path}: {e}")
            failed += 1
    return cleared, failed
