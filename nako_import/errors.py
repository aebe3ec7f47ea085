"""Error taxonomy for import resolution and loading.

Every failure raised while satisfying an import directive derives from
ImportResolutionError so the driver can collect them uniformly:

- NotFoundError: no candidate matched; carries the full search trace
- DescriptorInvalidError: package.json present but unusable
- TransportError: remote fetch failed (status or transport)
- RemoteLibraryNotFoundError: fetch "succeeded" but the body is a not-found page
- CacheWriteError: remote content could not be persisted locally
- LoadError: artifact found but failed to load as a module
- SourceReadError: local source exists but could not be read
- MissingRequesterContextError: directive without a requesting file
- DependencyLoadError: aggregate raised by the driver after a best-effort run
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SourceToken
    from .models import TraceEntry


class ImportResolutionError(Exception):
    """Base class for all import resolution and loading failures.

    Attributes:
        token: Requesting file and line the directive came from (if known)
    """

    def __init__(self, message: str, token: SourceToken | None = None):
        super().__init__(message)
        self.message = message
        self.token = token

    def attribute(self, token: SourceToken | None) -> ImportResolutionError:
        """Attach a source token unless one is already present."""
        if self.token is None and token is not None:
            self.token = token
        return self

    def __str__(self) -> str:
        if self.token is not None and self.token.file:
            return f"{self.token}: {self.message}"
        return self.message


class NotFoundError(ImportResolutionError):
    """No candidate path matched after exhausting the applicable roots."""

    def __init__(
        self,
        reference: str,
        trace: Sequence[TraceEntry] = (),
        token: SourceToken | None = None,
        message: str | None = None,
    ):
        self.reference = reference
        self.trace = tuple(trace)
        super().__init__(message or f"Module '{reference}' not found ({len(self.trace)} paths searched)", token)


class DescriptorInvalidError(ImportResolutionError):
    """A package descriptor exists but cannot be parsed or lacks its main entry."""

    def __init__(self, descriptor_path: str, reason: str, token: SourceToken | None = None):
        self.descriptor_path = descriptor_path
        self.reason = reason
        super().__init__(f"Invalid package descriptor {descriptor_path}: {reason}", token)


class TransportError(ImportResolutionError):
    """Remote fetch returned a non-success status or the transport failed."""

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
        token: SourceToken | None = None,
    ):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Failed to fetch {url}{status}: {reason}", token)


class RemoteLibraryNotFoundError(TransportError):
    """The server answered successfully but the body reports a missing library."""

    def __init__(self, url: str, marker: str, token: SourceToken | None = None):
        self.marker = marker
        super().__init__(url, f"library not found at this version/URL (body contains {marker!r})", token=token)


class CacheWriteError(ImportResolutionError):
    """The local cache copy of a remote artifact could not be written."""

    def __init__(self, cache_path: str, reason: str, token: SourceToken | None = None):
        self.cache_path = cache_path
        super().__init__(f"Cannot write cache file {cache_path}: {reason}", token)


class LoadError(ImportResolutionError):
    """The artifact was located but failed to load as a module."""

    def __init__(self, location: str, reason: str, token: SourceToken | None = None):
        self.location = location
        self.reason = reason
        super().__init__(f"Plugin load failed for {location}: {reason}", token)


class SourceReadError(LoadError):
    """A local source module exists but reading it failed (permissions, I/O, encoding)."""

    def __init__(self, location: str, reason: str, token: SourceToken | None = None):
        super().__init__(location, reason, token)
        self.message = f"Cannot read source module {location}: {reason}"


class MissingRequesterContextError(ImportResolutionError):
    """A directive arrived without a requesting file, so relative roots are unknown."""

    def __init__(self, reference: str, token: SourceToken | None = None):
        self.reference = reference
        super().__init__(
            f"Cannot resolve '{reference}': no requesting file to compute relative search roots from",
            token,
        )


class DependencyLoadError(ImportResolutionError):
    """Aggregate failure raised after every directive of a compilation was attempted."""

    def __init__(self, errors: Sequence[ImportResolutionError]):
        self.errors = list(errors)
        noun = "dependency" if self.failure_count == 1 else "dependencies"
        super().__init__(f"{self.failure_count} {noun} failed to resolve or load")

    @property
    def failure_count(self) -> int:
        return len(self.errors)
