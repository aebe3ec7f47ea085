"""Plugin and dependency resolution for the Nadesiko compiler front-end.

Satisfies import directives that name Python plugins or other Nadesiko source
modules: locates the artifact among the configured search roots, fetches it
(locally or over https) and hands it back to the compiler's registry.
"""

from .config import ResolverConfig
from .config import load_config
from .driver import CompilerHost
from .driver import DependencyDriver
from .driver import PluginRegistry
from .errors import CacheWriteError
from .errors import DependencyLoadError
from .errors import DescriptorInvalidError
from .errors import ImportResolutionError
from .errors import LoadError
from .errors import MissingRequesterContextError
from .errors import NotFoundError
from .errors import RemoteLibraryNotFoundError
from .errors import SourceReadError
from .errors import TransportError
from .loader import ContentLoader
from .models import ArtifactKind
from .models import LoadedModule
from .models import PathStyle
from .models import ReferenceKind
from .models import Resolution
from .models import ResolvedArtifact
from .models import classify_reference
from .resolver import CandidateResolver

__all__ = [
    "ArtifactKind",
    "CacheWriteError",
    "CandidateResolver",
    "CompilerHost",
    "ContentLoader",
    "DependencyDriver",
    "DependencyLoadError",
    "DescriptorInvalidError",
    "ImportResolutionError",
    "LoadError",
    "LoadedModule",
    "MissingRequesterContextError",
    "NotFoundError",
    "PathStyle",
    "PluginRegistry",
    "ReferenceKind",
    "RemoteLibraryNotFoundError",
    "Resolution",
    "ResolvedArtifact",
    "ResolverConfig",
    "SourceReadError",
    "TransportError",
    "classify_reference",
    "load_config",
]
