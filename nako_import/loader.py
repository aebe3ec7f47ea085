"""Asynchronous content loading for resolved artifacts.

Source modules are returned as text; plugins are executed as Python modules
and their module-level `default` object is returned as the export.

Remote plugins are loaded in two phases: the body is fetched and written to the
remote cache directory, then the cached copy is imported like a local plugin.
An existing cache file is reused without another network request.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Any

import httpx

from .config import ResolverConfig
from .errors import CacheWriteError
from .errors import LoadError
from .errors import NotFoundError
from .errors import RemoteLibraryNotFoundError
from .errors import SourceReadError
from .errors import TransportError
from .models import ArtifactKind
from .models import LoadedModule
from .models import ResolvedArtifact
from .models import SourceToken
from .utils.error_format import format_error_message
from .utils.remote_cache import cache_file_for_url
from .utils.remote_cache import sanitize_url

logger = logging.getLogger(__name__)

PLUGIN_EXPORT_NAME = "default"


class ContentLoader:
    """Loads source text or plugin exports for resolved artifacts.

    Holds no per-call state; concurrent loads of distinct URLs write distinct
    cache files.
    """

    def __init__(self, config: ResolverConfig | None = None, client: httpx.AsyncClient | None = None):
        """Initialize loader.

        Args:
            config: Resolver configuration (cache directory, markers, timeout)
            client: HTTP client to use for remote fetches (default: one per fetch)
        """
        self.config = config or ResolverConfig()
        self._client = client

    async def load(self, artifact: ResolvedArtifact, token: SourceToken | None = None) -> LoadedModule:
        """Load one artifact.

        Raises:
            NotFoundError: Local file vanished since resolution
            SourceReadError: Local source exists but cannot be read
            TransportError: Remote fetch failed
            CacheWriteError: Remote plugin could not be cached
            LoadError: Plugin failed to import or has no default export
        """
        if artifact.kind == ArtifactKind.SOURCE_MODULE:
            if artifact.is_remote:
                text = await self.fetch_text(artifact.location, token)
            else:
                text = await self._read_local(artifact.location, token)
            logger.debug(f"[import:load] source module {artifact.location} ({len(text)} chars)")
            return LoadedModule(artifact=artifact, text=text)

        if artifact.is_remote:
            cache_path = await self._cache_remote_plugin(artifact.location, token)
            export = await self._import_plugin(cache_path, artifact.location, token)
            return LoadedModule(artifact=artifact, export=export, cache_path=str(cache_path))

        path = Path(artifact.location)
        if not path.is_file():
            raise NotFoundError(artifact.location, token=token, message=f"Plugin file does not exist: {path}")
        export = await self._import_plugin(path, artifact.location, token)
        return LoadedModule(artifact=artifact, export=export)

    async def fetch_text(self, url: str, token: SourceToken | None = None) -> str:
        """HTTP GET a URL and return the body text.

        Raises:
            TransportError: Non-success status or transport failure
        """
        logger.info(f"[import:load] fetching {url}")
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.config.fetch_timeout, follow_redirects=True) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(url, format_error_message(e), token=token) from e

        if not response.is_success:
            raise TransportError(url, response.reason_phrase or "request failed", response.status_code, token)
        return response.text

    async def _read_local(self, location: str, token: SourceToken | None) -> str:
        path = Path(location)
        if not path.is_file():
            raise NotFoundError(location, token=token, message=f"Source module does not exist: {path}")
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(location, format_error_message(e), token) from e

    async def _cache_remote_plugin(self, url: str, token: SourceToken | None) -> Path:
        """Fetch a remote plugin into the cache directory (once) and return the cache path."""
        cache_path = cache_file_for_url(self.config.cache_dir, url)
        try:
            cached = cache_path.is_file()
        except OSError as e:
            raise CacheWriteError(str(cache_path), format_error_message(e), token) from e
        if cached:
            logger.debug(f"[import:load] using cached copy of {url}: {cache_path}")
            return cache_path

        text = await self.fetch_text(url, token)
        for marker in self.config.not_found_markers:
            if marker in text:
                raise RemoteLibraryNotFoundError(url, marker, token)

        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(cache_path.write_text, text, encoding="utf-8")
        except OSError as e:
            raise CacheWriteError(str(cache_path), format_error_message(e), token) from e

        logger.debug(f"[import:load] cached {url} -> {cache_path}")
        return cache_path

    async def _import_plugin(self, path: Path, location: str, token: SourceToken | None) -> Any:
        """Execute a plugin file as a module and return its default export.

        Yields to the event loop before executing, so pending sibling loads
        get to start their own I/O first. The module body itself runs on the loop
        thread; a plugin that blocks during import blocks its siblings too.
        """
        await asyncio.sleep(0)
        module_name = f"nako_plugin_{sanitize_url(str(path))}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise LoadError(location, f"{path.name} is not a loadable Python module", token)

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise LoadError(location, format_error_message(e), token) from e

        if not hasattr(module, PLUGIN_EXPORT_NAME):
            sys.modules.pop(module_name, None)
            raise LoadError(location, f"module defines no '{PLUGIN_EXPORT_NAME}' export", token)

        logger.debug(f"[import:load] plugin {location} loaded as {module_name}")
        return getattr(module, PLUGIN_EXPORT_NAME)
