"""Data models for import resolution.

Defines the core types shared by the resolver, loader and driver:
- ReferenceKind: classification of a raw import reference
- ArtifactKind: plugin vs source module
- ResolvedArtifact: immutable result of a successful resolution
- TraceEntry / Resolution: what was probed and what was found
- SourceToken / ImportDirective: directive attribution
- LoadedModule: loaded content handed back to the compiler
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlsplit

SECURE_URL_SCHEME = "https://"
PLUGIN_EXTENSIONS = (".py",)
SOURCE_EXTENSIONS = (".nako3", ".nako")
DIRECT_FILE_EXTENSIONS = PLUGIN_EXTENSIONS + SOURCE_EXTENSIONS

_URL_LIKE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")


class PathStyle(str, Enum):
    """Platform path-separator convention used to classify references."""

    POSIX = "posix"
    WINDOWS = "windows"


class ReferenceKind(str, Enum):
    """Classification of a raw import reference.

    Kinds:
    - REMOTE_URL: begins with the secure URL scheme
    - ABSOLUTE_PATH: rooted filesystem path
    - RELATIVE_PATH: contains a separator or starts with ./ or ../
    - BARE_NAME: plain identifier, searched across all roots
    """

    REMOTE_URL = "remote_url"
    ABSOLUTE_PATH = "absolute_path"
    RELATIVE_PATH = "relative_path"
    BARE_NAME = "bare_name"


class ArtifactKind(str, Enum):
    """What a resolved artifact is loaded as."""

    PLUGIN = "plugin"
    SOURCE_MODULE = "source_module"


def classify_reference(ref: str, path_style: PathStyle = PathStyle.POSIX) -> ReferenceKind:
    """Classify a reference purely from its text.

    Never touches the filesystem. A URL with any scheme other than https is a
    bare name, not an error.
    """
    if ref.startswith(SECURE_URL_SCHEME):
        return ReferenceKind.REMOTE_URL
    if _URL_LIKE.match(ref):
        return ReferenceKind.BARE_NAME

    windows = path_style == PathStyle.WINDOWS
    if ref.startswith("/"):
        return ReferenceKind.ABSOLUTE_PATH
    if windows and (_WINDOWS_DRIVE.match(ref) or ref.startswith("\\")):
        return ReferenceKind.ABSOLUTE_PATH

    separators = ("/", "\\") if windows else ("/",)
    if ref in (".", "..") or any(ref.startswith(f"{dots}{sep}") for dots in (".", "..") for sep in separators):
        return ReferenceKind.RELATIVE_PATH
    if any(sep in ref for sep in separators):
        return ReferenceKind.RELATIVE_PATH

    return ReferenceKind.BARE_NAME


def artifact_kind_for(location: str) -> ArtifactKind:
    """Infer the artifact kind from a location's suffix (path or URL)."""
    path = urlsplit(location).path if location.startswith(SECURE_URL_SCHEME) else location
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    if suffix in SOURCE_EXTENSIONS:
        return ArtifactKind.SOURCE_MODULE
    return ArtifactKind.PLUGIN


@dataclass(frozen=True)
class ResolvedArtifact:
    """A resolved import target. Immutable once produced."""

    kind: ArtifactKind
    location: str
    is_remote: bool = False

    @classmethod
    def for_location(cls, location: str) -> ResolvedArtifact:
        return cls(
            kind=artifact_kind_for(location),
            location=location,
            is_remote=location.startswith(SECURE_URL_SCHEME),
        )


@dataclass(frozen=True)
class TraceEntry:
    """One probe made during a resolution attempt."""

    description: str
    path: str
    found: bool

    def __str__(self) -> str:
        mark = "found" if self.found else "missing"
        return f"[{mark}] {self.description}: {self.path}"


@dataclass(frozen=True)
class Resolution:
    """Outcome of one top-level resolution: the artifact (if any) plus the trace."""

    reference: str
    kind: ReferenceKind
    artifact: ResolvedArtifact | None
    trace: tuple[TraceEntry, ...] = ()

    @property
    def found(self) -> bool:
        return self.artifact is not None


@dataclass(frozen=True)
class SourceToken:
    """Requesting file and line of an import directive, for error attribution."""

    file: str | None
    line: int = 0

    def __str__(self) -> str:
        if self.line:
            return f"{self.file}:{self.line}"
        return str(self.file)


@dataclass(frozen=True)
class ImportDirective:
    """An import directive as emitted by the parser."""

    reference: str
    token: SourceToken


@dataclass
class LoadedModule:
    """Content produced by the loader for one artifact.

    Attributes:
        artifact: The artifact that was loaded
        text: Raw source text (source modules only)
        export: Default export object (plugins only)
        cache_path: Local cache copy used for a remote plugin
    """

    artifact: ResolvedArtifact
    text: str | None = None
    export: Any = None
    cache_path: str | None = None

    @property
    def is_plugin(self) -> bool:
        return self.artifact.kind == ArtifactKind.PLUGIN
