"""Resolver and loader configuration.

All search roots and loader settings are passed in explicitly through a
ResolverConfig; neither the resolver nor the loader reads the process
environment. Configuration is layered (highest precedence first):

1. Environment variables (NAKO_LIB, NAKO_HOME, NODE_PATH, NAKO_RUNTIME_ROOT)
2. Settings file (.nako/settings.yaml, "imports" section)
3. Built-in defaults
"""

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .models import PathStyle

try:
    import yaml
except ImportError:
    yaml = None

logger = logging.getLogger(__name__)

ENV_LIB_ROOT = "NAKO_LIB"
ENV_HOME_ROOT = "NAKO_HOME"
ENV_GLOBAL_MODULE_ROOT = "NODE_PATH"
ENV_RUNTIME_ROOT = "NAKO_RUNTIME_ROOT"

DEFAULT_SETTINGS_PATH = Path(".nako") / "settings.yaml"
DEFAULT_NOT_FOUND_MARKERS = ("Couldn't find the requested file",)


def default_runtime_root() -> Path:
    """Installation root of this runtime (the directory holding the package)."""
    return Path(__file__).resolve().parent.parent


def default_cache_dir() -> Path:
    """Fixed temporary directory for cached remote artifacts."""
    return Path(tempfile.gettempdir()) / "nako3" / "remote-cache"


class ResolverConfig(BaseModel):
    """Explicit configuration for CandidateResolver and ContentLoader."""

    model_config = ConfigDict(frozen=True)

    runtime_root: Path = Field(default_factory=default_runtime_root, description="Runtime installation root")
    lib_root: Path | None = Field(None, description="Library root override (NAKO_LIB)")
    home_root: Path | None = Field(None, description="Home root override (NAKO_HOME)")
    global_module_root: Path | None = Field(None, description="Global module root (NODE_PATH equivalent)")
    path_style: PathStyle = Field(
        default_factory=lambda: PathStyle.WINDOWS if os.name == "nt" else PathStyle.POSIX,
        description="Separator convention used to classify references",
    )
    allow_release_roots: bool = Field(False, description="Search pre-bundled release directories")
    cache_dir: Path = Field(default_factory=default_cache_dir, description="Remote content cache directory")
    package_dir_name: str = Field("node_modules", description="Conventional package directory name")
    descriptor_name: str = Field("package.json", description="Package descriptor file name")
    vendored_runtimes: tuple[str, ...] = Field(("nadesiko3",), description="Nested sub-runtimes to search")
    not_found_markers: tuple[str, ...] = Field(
        DEFAULT_NOT_FOUND_MARKERS, description="Body substrings that mean a CDN could not find the file"
    )
    fetch_timeout: float = Field(30.0, description="HTTP timeout in seconds for remote fetches")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "ResolverConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)
            **overrides: Explicit field values; these win over the environment

        Returns:
            ResolverConfig
        """
        values = _env_values(os.environ if environ is None else environ)
        values.update(overrides)
        return cls(**values)


def _env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if lib_root := environ.get(ENV_LIB_ROOT):
        values["lib_root"] = Path(lib_root)
    if home_root := environ.get(ENV_HOME_ROOT):
        values["home_root"] = Path(home_root)
    if global_root := environ.get(ENV_GLOBAL_MODULE_ROOT):
        # NODE_PATH may hold a list; only the first entry is a search root
        first = global_root.split(os.pathsep)[0]
        if first:
            values["global_module_root"] = Path(first)
    if runtime_root := environ.get(ENV_RUNTIME_ROOT):
        values["runtime_root"] = Path(runtime_root)
    return values


def _read_settings(settings_path: Path) -> dict[str, Any]:
    """Read the "imports" section of a settings YAML file."""
    if not settings_path.exists():
        return {}

    if yaml is None:
        logger.warning(f"PyYAML not installed, cannot read {settings_path}")
        return {}

    with open(settings_path, encoding="utf-8") as f:
        settings = yaml.safe_load(f) or {}

    section = settings.get("imports") if isinstance(settings, dict) else None
    if not isinstance(section, dict):
        return {}
    return section


def load_config(
    settings_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ResolverConfig:
    """Load configuration from settings file, environment and overrides.

    Args:
        settings_path: Settings YAML path (default: .nako/settings.yaml)
        environ: Environment mapping (default: os.environ)
        **overrides: Explicit values that win over everything else

    Returns:
        ResolverConfig
    """
    values = _read_settings(settings_path or DEFAULT_SETTINGS_PATH)
    values.update(_env_values(os.environ if environ is None else environ))
    values.update(overrides)
    logger.debug(f"[import:config] loaded keys: {sorted(values)}")
    return ResolverConfig(**values)
