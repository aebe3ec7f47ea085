"""Candidate resolution for import references.

Turns a raw reference plus the requesting file into a single artifact location.
Resolution order for bare names (first match wins):

a. Same directory as the requesting file
b. <runtime>/release (only when release roots are allowed)
c. <runtime>/src
d. NAKO_LIB library root
e. <runtime>/node_modules
f. <runtime>/.. (siblings of the runtime installation)
g. <runtime>/node_modules/<vendored>/src and .../core/src (plugin scripts only)
h. NAKO_HOME: <home>/release (when allowed), then <home>/src
i. Global module root (NODE_PATH equivalent)

Absolute and relative references produce exactly one candidate and never fall
back to other roots. https:// references are returned as-is. When the
requesting file is itself remote, relative references are joined to its URL
and bare names skip root (a).
"""

import json
import logging
import os
from pathlib import Path
from urllib.parse import urljoin

from .config import ResolverConfig
from .errors import DescriptorInvalidError
from .errors import MissingRequesterContextError
from .errors import NotFoundError
from .models import DIRECT_FILE_EXTENSIONS
from .models import PLUGIN_EXTENSIONS
from .models import SECURE_URL_SCHEME
from .models import PathStyle
from .models import ReferenceKind
from .models import Resolution
from .models import ResolvedArtifact
from .models import SourceToken
from .models import classify_reference
from .probe import PathProbe

logger = logging.getLogger(__name__)


def read_descriptor_main(descriptor_path: Path) -> str:
    """Read the declared main entry from a package descriptor.

    Args:
        descriptor_path: Path to an existing package.json

    Returns:
        The "main" field value

    Raises:
        DescriptorInvalidError: Unreadable, unparsable, or no usable "main"
    """
    try:
        data = json.loads(descriptor_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptorInvalidError(str(descriptor_path), f"cannot read: {e}") from e
    except json.JSONDecodeError as e:
        raise DescriptorInvalidError(str(descriptor_path), f"malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise DescriptorInvalidError(str(descriptor_path), "top-level value is not an object")

    main = data.get("main")
    if not isinstance(main, str) or not main.strip():
        raise DescriptorInvalidError(str(descriptor_path), "missing 'main' entry")
    return main


class CandidateResolver:
    """Resolves import references against an ordered list of search roots.

    One algorithm serves both source-module and plugin resolution; callers
    choose whether release roots and vendored runtime roots take part.
    """

    def __init__(self, config: ResolverConfig | None = None):
        self.config = config or ResolverConfig()

    def resolve(
        self,
        ref: str,
        requesting_file: str | Path | None,
        allow_release_roots: bool | None = None,
        search_vendored: bool = True,
    ) -> Resolution:
        """Resolve a reference to an artifact.

        Args:
            ref: Reference string as written in the import directive
            requesting_file: File containing the directive
            allow_release_roots: Include release roots (default: from config)
            search_vendored: Include vendored sub-runtime roots for plugin scripts

        Returns:
            Resolution with the artifact (None when not found) and the full trace

        Raises:
            MissingRequesterContextError: Relative/bare reference without a requesting file
            DescriptorInvalidError: A package descriptor was found but is unusable
        """
        kind = classify_reference(ref, self.config.path_style)

        if kind == ReferenceKind.REMOTE_URL:
            logger.debug(f"[import:resolve] {ref} -> remote URL")
            return Resolution(reference=ref, kind=kind, artifact=ResolvedArtifact.for_location(ref))

        if allow_release_roots is None:
            allow_release_roots = self.config.allow_release_roots

        probe = PathProbe()
        target = self._native(ref)
        remote_requester = str(requesting_file or "").startswith(SECURE_URL_SCHEME)

        if remote_requester and kind == ReferenceKind.RELATIVE_PATH:
            # Relative references inside a remote source module stay remote
            location = urljoin(str(requesting_file), target)
            logger.debug(f"[import:resolve] {ref} -> {location} (relative to remote module)")
            return Resolution(reference=ref, kind=kind, artifact=ResolvedArtifact.for_location(location))

        if kind == ReferenceKind.ABSOLUTE_PATH:
            found = self._probe_candidate(probe, "absolute path", Path(os.path.normpath(target)))
        else:
            requesting_dir = None if remote_requester else self._requesting_dir(ref, requesting_file)
            if kind == ReferenceKind.RELATIVE_PATH:
                candidate = Path(os.path.normpath(requesting_dir / target))
                found = self._probe_candidate(probe, "relative to requesting file", candidate)
            else:
                found = None
                for description, root in self.search_roots(ref, requesting_dir, allow_release_roots, search_vendored):
                    found = self._probe_candidate(probe, description, root / target)
                    if found is not None:
                        break

        artifact = ResolvedArtifact.for_location(str(found)) if found is not None else None
        if artifact is None:
            logger.debug(f"[import:resolve] {ref} -> not found ({len(probe.trace)} probes)")
        else:
            logger.debug(f"[import:resolve] {ref} -> {artifact.location}")
        return Resolution(reference=ref, kind=kind, artifact=artifact, trace=probe.trace)

    def resolve_or_raise(
        self,
        ref: str,
        requesting_file: str | Path | None,
        allow_release_roots: bool | None = None,
        search_vendored: bool = True,
        token: SourceToken | None = None,
    ) -> ResolvedArtifact:
        """Resolve a reference or raise NotFoundError carrying the trace."""
        try:
            resolution = self.resolve(ref, requesting_file, allow_release_roots, search_vendored)
        except (MissingRequesterContextError, DescriptorInvalidError) as e:
            e.attribute(token)
            raise
        if resolution.artifact is None:
            raise NotFoundError(ref, resolution.trace, token=token)
        return resolution.artifact

    def search_roots(
        self,
        ref: str,
        requesting_dir: Path | None,
        allow_release_roots: bool,
        search_vendored: bool = True,
    ) -> list[tuple[str, Path]]:
        """Ordered (description, directory) roots searched for a bare name.

        requesting_dir is None for a remote requester, which has no local directory.
        """
        config = self.config
        runtime = config.runtime_root
        package_dir = runtime / config.package_dir_name

        roots: list[tuple[str, Path]] = []
        if requesting_dir is not None:
            roots.append(("requesting file directory", requesting_dir))
        if allow_release_roots:
            roots.append(("runtime release directory", runtime / "release"))
        roots.append(("runtime source directory", runtime / "src"))
        if config.lib_root is not None:
            roots.append(("NAKO_LIB library directory", config.lib_root))
        roots.append(("runtime package directory", package_dir))
        roots.append(("runtime parent directory", runtime.parent))

        if search_vendored and ref.lower().endswith(PLUGIN_EXTENSIONS):
            for vendored in config.vendored_runtimes:
                roots.append((f"vendored {vendored} source", package_dir / vendored / "src"))
                roots.append((f"vendored {vendored} core source", package_dir / vendored / "core" / "src"))

        if config.home_root is not None:
            if allow_release_roots:
                roots.append(("NAKO_HOME release directory", config.home_root / "release"))
            roots.append(("NAKO_HOME source directory", config.home_root / "src"))
        if config.global_module_root is not None:
            roots.append(("global module directory", config.global_module_root))
        return roots

    def _probe_candidate(self, probe: PathProbe, description: str, candidate: Path) -> Path | None:
        """Probe one candidate as a direct file or as a package directory."""
        if candidate.suffix.lower() in DIRECT_FILE_EXTENSIONS:
            return candidate if probe.is_file(description, candidate) else None

        descriptor = candidate / self.config.descriptor_name
        if not probe.is_file(f"{description} (package descriptor)", descriptor):
            return None

        main = read_descriptor_main(descriptor)
        entry = Path(os.path.normpath(candidate / self._native(main)))
        if probe.is_file(f"{description} (main entry)", entry):
            return entry
        return None

    def _requesting_dir(self, ref: str, requesting_file: str | Path | None) -> Path:
        if requesting_file is None or str(requesting_file) == "":
            raise MissingRequesterContextError(ref)
        return Path(os.path.abspath(requesting_file)).parent

    def _native(self, ref: str) -> str:
        if self.config.path_style == PathStyle.WINDOWS:
            return ref.replace("\\", "/")
        return ref
