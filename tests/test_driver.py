"""Tests for DependencyDriver: ordering, transitive loading, best-effort aggregation."""

import asyncio

import httpx
import pytest
from nako_import.driver import DependencyDriver
from nako_import.driver import PluginRegistry
from nako_import.errors import DependencyLoadError
from nako_import.errors import LoadError
from nako_import.errors import MissingRequesterContextError
from nako_import.errors import NotFoundError
from nako_import.loader import ContentLoader
from nako_import.models import LoadedModule
from nako_import.resolver import CandidateResolver


def _driver(config, loader=None) -> tuple[DependencyDriver, PluginRegistry]:
    registry = PluginRegistry()
    driver = DependencyDriver(CandidateResolver(config), loader or ContentLoader(config), host=registry)
    return driver, registry


class SlowLoader:
    """Loader whose earlier loads finish later than the ones after them."""

    def __init__(self, delays: dict[str, float]):
        self.delays = delays
        self.finished: list[str] = []

    async def load(self, artifact, token=None):
        name = artifact.location.rsplit("/", 1)[-1]
        await asyncio.sleep(self.delays.get(name, 0))
        self.finished.append(name)
        return LoadedModule(artifact=artifact, export=name)


@pytest.mark.asyncio
async def test_second_of_three_unresolvable(config, layout, write_file):
    """The third directive is still loaded and exactly one failure is reported."""
    write_file(layout["lib"] / "plugin_a.py", "default = 'a'\n")
    write_file(layout["lib"] / "plugin_c.py", "default = 'c'\n")
    source = "!「plugin_a.py」を取り込む\n!「plugin_missing.py」を取り込む\n!「plugin_c.py」を取り込む\n"

    driver, registry = _driver(config)
    with pytest.raises(DependencyLoadError) as exc_info:
        await driver.load_all(source, str(layout["main"]))

    assert exc_info.value.failure_count == 1
    assert driver.failure_count == 1
    assert registry.order == ["plugin_a.py", "plugin_c.py"]
    assert registry.plugins["plugin_c.py"].export == "c"

    failure = exc_info.value.errors[0]
    assert isinstance(failure, NotFoundError)
    assert failure.token.line == 2
    assert failure.token.file == str(layout["main"])
    assert failure.trace


@pytest.mark.asyncio
async def test_every_failure_is_collected(config, layout, write_file):
    write_file(layout["lib"] / "plugin_broken.py", "default = [\n")
    source = "!「plugin_x.py」を取り込む\n!「plugin_broken.py」を取り込む\n!「./nothing.nako3」を取り込む\n"

    driver, registry = _driver(config)
    with pytest.raises(DependencyLoadError) as exc_info:
        await driver.load_all(source, str(layout["main"]))

    assert exc_info.value.failure_count == 3
    assert [type(e) for e in exc_info.value.errors] == [NotFoundError, LoadError, NotFoundError]
    assert [e.token.line for e in exc_info.value.errors] == [1, 2, 3]
    assert registry.order == []
    assert "3 dependencies failed" in str(exc_info.value)


@pytest.mark.asyncio
async def test_load_failure_reported_between_resolution_failures(config, layout, write_file):
    write_file(layout["lib"] / "plugin_ok.py", "default = 'ok'\n")
    write_file(layout["lib"] / "plugin_broken.py", "raise ImportError('no backend')\n")
    source = (
        "!「plugin_gone.py」を取り込む\n"
        "!「plugin_ok.py」を取り込む\n"
        "!「plugin_broken.py」を取り込む\n"
        "!「plugin_gone_too.py」を取り込む\n"
    )

    driver, registry = _driver(config)
    with pytest.raises(DependencyLoadError) as exc_info:
        await driver.load_all(source, str(layout["main"]))

    assert [e.token.line for e in exc_info.value.errors] == [1, 3, 4]
    assert registry.order == ["plugin_ok.py"]


@pytest.mark.asyncio
async def test_overlong_reference_does_not_stop_later_directives(config, layout, write_file):
    write_file(layout["lib"] / "plugin_c.py", "default = 'c'\n")
    source = f"!「{'b' * 300}.py」を取り込む\n!「plugin_c.py」を取り込む\n"

    driver, registry = _driver(config)
    with pytest.raises(DependencyLoadError) as exc_info:
        await driver.load_all(source, str(layout["main"]))

    assert exc_info.value.failure_count == 1
    assert isinstance(exc_info.value.errors[0], NotFoundError)
    assert registry.order == ["plugin_c.py"]


@pytest.mark.asyncio
async def test_registration_follows_directive_order(config, layout, write_file):
    for name in ("plugin_1.py", "plugin_2.py", "plugin_3.py"):
        write_file(layout["lib"] / name)
    loader = SlowLoader({"plugin_1.py": 0.05, "plugin_2.py": 0.02})
    source = "!「plugin_1.py」を取り込む\n!「plugin_2.py」を取り込む\n!「plugin_3.py」を取り込む\n"

    driver, registry = _driver(config, loader)
    await driver.load_all(source, str(layout["main"]))

    # Loads run concurrently, so the fastest finishes first
    assert loader.finished[0] == "plugin_3.py"
    assert registry.order == ["plugin_1.py", "plugin_2.py", "plugin_3.py"]


@pytest.mark.asyncio
async def test_transitive_modules_registered_depth_first(config, layout, write_file):
    write_file(layout["project"] / "util.nako3", "!「plugin_a.py」を取り込む\n")
    write_file(layout["lib"] / "plugin_a.py", "default = 'a'\n")
    write_file(layout["lib"] / "plugin_b.py", "default = 'b'\n")
    source = "!「util.nako3」を取り込む\n!「plugin_b.py」を取り込む\n"

    driver, registry = _driver(config)
    await driver.load_all(source, str(layout["main"]))

    assert registry.order == ["util.nako3", "plugin_a.py", "plugin_b.py"]
    assert registry.modules[0].text == "!「plugin_a.py」を取り込む\n"
    assert len(driver.loaded) == 3


@pytest.mark.asyncio
async def test_nested_directive_resolves_against_its_own_file(config, layout, write_file):
    write_file(layout["project"] / "sub" / "helper.nako3", "!「./local.nako3」を取り込む\n")
    local = write_file(layout["project"] / "sub" / "local.nako3", "")
    source = "!「./sub/helper.nako3」を取り込む\n"

    driver, registry = _driver(config)
    await driver.load_all(source, str(layout["main"]))

    assert [m.location for m in registry.modules][-1] == str(local)


@pytest.mark.asyncio
async def test_same_artifact_loaded_once(config, layout, write_file):
    write_file(layout["project"] / "util.nako3", "!「plugin_a.py」を取り込む\n")
    write_file(layout["lib"] / "plugin_a.py", "default = 'a'\n")
    source = "!「plugin_a.py」を取り込む\n!「util.nako3」を取り込む\n!「plugin_a.py」を取り込む\n"

    driver, registry = _driver(config)
    await driver.load_all(source, str(layout["main"]))

    assert registry.order == ["plugin_a.py", "util.nako3"]


@pytest.mark.asyncio
async def test_import_cycles_terminate(config, layout, write_file):
    write_file(layout["project"] / "a.nako3", "!「b.nako3」を取り込む\n")
    write_file(layout["project"] / "b.nako3", "!「a.nako3」を取り込む\n!「main.nako3」を取り込む\n")

    driver, registry = _driver(config)
    await driver.load_all("!「a.nako3」を取り込む\n", str(layout["main"]))

    assert registry.order == ["a.nako3", "b.nako3"]


@pytest.mark.asyncio
async def test_prefix_code_directives_first(config, layout, write_file):
    write_file(layout["lib"] / "plugin_prefix.py", "default = 'p'\n")
    write_file(layout["lib"] / "plugin_main.py", "default = 'm'\n")

    driver, registry = _driver(config)
    await driver.load_all("!「plugin_main.py」を取り込む\n", str(layout["main"]), prefix_code="!「plugin_prefix.py」を取り込む\n")

    assert registry.order == ["plugin_prefix.py", "plugin_main.py"]


@pytest.mark.asyncio
async def test_missing_requesting_file_is_collected(config):
    driver, registry = _driver(config)
    with pytest.raises(DependencyLoadError) as exc_info:
        await driver.load_all("!「plugin_csv.py」を取り込む\n", "")

    assert isinstance(exc_info.value.errors[0], MissingRequesterContextError)
    assert exc_info.value.errors[0].token.line == 1


@pytest.mark.asyncio
async def test_no_directives_is_success(config, layout):
    driver, registry = _driver(config)
    await driver.load_all("「こんにちは」を表示\n", str(layout["main"]))

    assert registry.order == []
    assert driver.failure_count == 0


@pytest.mark.asyncio
async def test_relative_import_inside_remote_module_stays_remote(config, layout):
    fetched = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetched.append(str(request.url))
        if request.url.path == "/lib/entry.nako3":
            return httpx.Response(200, text="!「./helper.nako3」を取り込む\n")
        return httpx.Response(200, text="")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        driver, registry = _driver(config, ContentLoader(config, client=client))
        await driver.load_all("!「https://example.com/lib/entry.nako3」を取り込む\n", str(layout["main"]))

    assert fetched == ["https://example.com/lib/entry.nako3", "https://example.com/lib/helper.nako3"]
    assert [m.location for m in registry.modules] == fetched


@pytest.mark.asyncio
async def test_bare_name_inside_remote_module_uses_local_roots(config, layout, write_file):
    write_file(layout["lib"] / "plugin_local.py", "default = 'local'\n")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="!「plugin_local.py」を取り込む\n")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        driver, registry = _driver(config, ContentLoader(config, client=client))
        await driver.load_all("!「https://example.com/lib/entry.nako3」を取り込む\n", str(layout["main"]))

    assert registry.order == ["https://example.com/lib/entry.nako3", "plugin_local.py"]
    assert registry.plugins["plugin_local.py"].export == "local"
