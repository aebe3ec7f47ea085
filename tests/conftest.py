"""Pytest configuration for nako-import tests."""

from pathlib import Path

import pytest
from nako_import.config import ResolverConfig


@pytest.fixture
def layout(tmp_path: Path) -> dict[str, Path]:
    """Create a runtime installation and a project directory with every search root."""
    workspace = tmp_path / "workspace"
    runtime = workspace / "runtime"
    project = tmp_path / "project"
    lib = tmp_path / "nako_lib"
    home = tmp_path / "nako_home"
    global_root = tmp_path / "global_modules"

    for directory in (
        runtime / "release",
        runtime / "src",
        runtime / "node_modules" / "nadesiko3" / "src",
        runtime / "node_modules" / "nadesiko3" / "core" / "src",
        project,
        lib,
        home / "release",
        home / "src",
        global_root,
    ):
        directory.mkdir(parents=True, exist_ok=True)

    main_file = project / "main.nako3"
    main_file.write_text("", encoding="utf-8")

    return {
        "tmp": tmp_path,
        "workspace": workspace,
        "runtime": runtime,
        "project": project,
        "main": main_file,
        "lib": lib,
        "home": home,
        "global": global_root,
        "cache": tmp_path / "cache",
    }


@pytest.fixture
def config(layout: dict[str, Path]) -> ResolverConfig:
    """Config with every optional root set and release roots disabled."""
    return ResolverConfig(
        runtime_root=layout["runtime"],
        lib_root=layout["lib"],
        home_root=layout["home"],
        global_module_root=layout["global"],
        cache_dir=layout["cache"],
        path_style="posix",
    )


def _write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    """Write a file, creating parent directories."""
    return _write
