"""Dependency graph driver: resolves and loads every import directive of a compilation.

Per file, directives are resolved in textual order and their loads started
concurrently; results are then registered with the compiler strictly in the
order the directives were encountered. Source modules are scanned for further
directives right after they are registered (depth-first).

Failures never stop the run. Every failing directive is recorded and a single
DependencyLoadError is raised once all directives have been attempted.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Protocol

from .directives import scan_directives
from .errors import DependencyLoadError
from .errors import ImportResolutionError
from .loader import ContentLoader
from .models import SECURE_URL_SCHEME
from .models import ImportDirective
from .models import LoadedModule
from .models import ResolvedArtifact
from .resolver import CandidateResolver

logger = logging.getLogger(__name__)

Scanner = Callable[[str, str | None, int], Iterable[ImportDirective]]


class CompilerHost(Protocol):
    """Registry side of the compiler that receives loaded dependencies."""

    def register_plugin(self, name: str, location: str, export: Any) -> None: ...

    def register_module(self, name: str, location: str, text: str) -> None: ...


@dataclass
class RegisteredPlugin:
    name: str
    location: str
    export: Any


@dataclass
class RegisteredModule:
    name: str
    location: str
    text: str


@dataclass
class PluginRegistry:
    """In-memory CompilerHost, in registration order."""

    plugins: dict[str, RegisteredPlugin] = field(default_factory=dict)
    modules: list[RegisteredModule] = field(default_factory=list)
    order: list[str] = field(default_factory=list)

    def register_plugin(self, name: str, location: str, export: Any) -> None:
        self.plugins[name] = RegisteredPlugin(name=name, location=location, export=export)
        self.order.append(name)

    def register_module(self, name: str, location: str, text: str) -> None:
        self.modules.append(RegisteredModule(name=name, location=location, text=text))
        self.order.append(name)


@dataclass
class _Slot:
    """One directive of a file, in directive order: a resolution error or a running load."""

    directive: ImportDirective
    error: ImportResolutionError | None = None
    artifact: ResolvedArtifact | None = None
    task: asyncio.Task[LoadedModule] | None = None


class DependencyDriver:
    """Drives resolution and loading of all import directives for one compilation."""

    def __init__(
        self,
        resolver: CandidateResolver,
        loader: ContentLoader,
        host: CompilerHost | None = None,
        allow_release_roots: bool | None = None,
        search_vendored: bool = True,
        scanner: Scanner = scan_directives,
    ):
        """Initialize driver.

        Args:
            resolver: Candidate resolver
            loader: Content loader
            host: Compiler registry (default: a fresh PluginRegistry)
            allow_release_roots: Passed through to the resolver
            search_vendored: Passed through to the resolver
            scanner: Directive scanner (text, file, line_offset) -> directives
        """
        self.resolver = resolver
        self.loader = loader
        self.host: CompilerHost = host if host is not None else PluginRegistry()
        self.allow_release_roots = allow_release_roots
        self.search_vendored = search_vendored
        self.scanner = scanner
        self.errors: list[ImportResolutionError] = []
        self.loaded: list[LoadedModule] = []
        self._resolved: dict[tuple[str, str], ResolvedArtifact] = {}
        self._claimed: set[str] = set()

    async def load_all(self, source_text: str, main_file: str, prefix_code: str = "") -> None:
        """Resolve, load and register every directive reachable from the main file.

        Args:
            source_text: Main file source
            main_file: Main file path (requesting file for its directives)
            prefix_code: Code prepended to the main source (directives processed first)

        Raises:
            DependencyLoadError: One or more directives failed (after all were attempted)
        """
        self.errors = []
        self.loaded = []
        self._resolved = {}
        self._claimed = set()
        if main_file and not main_file.startswith(SECURE_URL_SCHEME):
            # The main file is never loaded again as a dependency of itself
            self._claimed.add(os.path.normpath(os.path.abspath(main_file)))

        directives = [*self.scanner(prefix_code, main_file, 0), *self.scanner(source_text, main_file, 0)]
        logger.debug(f"[import:driver] {main_file}: {len(directives)} top-level directives")
        await self._process(directives)

        if self.errors:
            raise DependencyLoadError(self.errors)
        logger.debug(f"[import:driver] {main_file}: {len(self.loaded)} dependencies loaded")

    async def _process(self, directives: list[ImportDirective]) -> None:
        slots: list[_Slot] = []
        for directive in directives:
            try:
                artifact = self._resolve(directive)
            except ImportResolutionError as e:
                slots.append(_Slot(directive, error=e))
                continue

            if artifact.location in self._claimed:
                logger.debug(f"[import:driver] {directive.reference} already loaded from {artifact.location}")
                continue
            self._claimed.add(artifact.location)
            task = asyncio.create_task(self.loader.load(artifact, directive.token))
            slots.append(_Slot(directive, artifact=artifact, task=task))

        try:
            for slot in slots:
                if slot.error is not None:
                    self._fail(slot.error, slot.directive)
                    continue
                try:
                    loaded = await slot.task
                except ImportResolutionError as e:
                    self._fail(e, slot.directive)
                    continue
                await self._register(slot.directive, slot.artifact, loaded)
        finally:
            for slot in slots:
                if slot.task is not None and not slot.task.done():
                    slot.task.cancel()

    async def _register(self, directive: ImportDirective, artifact: ResolvedArtifact, loaded: LoadedModule) -> None:
        self.loaded.append(loaded)
        if loaded.is_plugin:
            self.host.register_plugin(directive.reference, artifact.location, loaded.export)
            logger.debug(f"[import:driver] registered plugin {directive.reference}")
            return

        text = loaded.text or ""
        self.host.register_module(directive.reference, artifact.location, text)
        logger.debug(f"[import:driver] registered module {directive.reference}")
        await self._process(list(self.scanner(text, artifact.location, 0)))

    def _resolve(self, directive: ImportDirective) -> ResolvedArtifact:
        ref = directive.reference
        requester = directive.token.file
        base = os.path.dirname(requester) if requester else ""
        key = (ref, base)
        if key in self._resolved:
            return self._resolved[key]

        artifact = self.resolver.resolve_or_raise(
            ref,
            requester,
            allow_release_roots=self.allow_release_roots,
            search_vendored=self.search_vendored,
            token=directive.token,
        )
        self._resolved[key] = artifact
        return artifact

    def _fail(self, error: ImportResolutionError, directive: ImportDirective) -> None:
        error.attribute(directive.token)
        logger.error(f"[import:driver] {error}")
        self.errors.append(error)

    @property
    def failure_count(self) -> int:
        return len(self.errors)
