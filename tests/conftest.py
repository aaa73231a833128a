"""Shared fixtures for buildbus tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from buildbus.bus import BuildBus, BusRegistry
from buildbus.config import BusConfig
from buildbus.discovery import StaticDiscovery
from buildbus.tracking import Trackable


@pytest.fixture(autouse=True)
def _reset_tracking():
    yield
    Trackable.disable_tracking()


@pytest.fixture
def registry() -> BusRegistry:
    return BusRegistry()


@pytest.fixture
def write_entry(tmp_path: Path):
    """Write a package entry module and return its path."""

    def write(name: str, body: str) -> str:
        path = tmp_path / "entries" / f"{name}.py"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(body))
        return str(path)

    return write


@pytest.fixture
def make_bus(tmp_path: Path, registry: BusRegistry):
    """Build a bus over a static package list, e.g. ``make_bus({"alpha": {"declare": path}})``."""

    def make(packages, roots=None, events=None, **config_fields) -> BuildBus:
        config = BusConfig(**config_fields)
        sink = events.append if events is not None else None
        return BuildBus.for_context(
            tmp_path,
            (lambda *event: sink(event)) if sink else None,
            registry=registry,
            config=config,
            discovery=StaticDiscovery(packages, roots),
        )

    return make


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip())


@pytest.fixture
def shop_project(tmp_path: Path) -> Path:
    """A project ``shop`` depending on a workspace package ``venia-ui``."""
    project = tmp_path / "shop"
    _write(
        project / "pyproject.toml",
        """
        [project]
        name = "shop"
        dependencies = ["venia-ui"]

        [tool.buildbus]
        workspace = ["packages/*"]

        [tool.buildbus.targets]
        intercept = "shop_intercept.py"
        """,
    )
    _write(
        project / "shop_intercept.py",
        """
        from buildbus.targetables import TargetableSet


        def intercept(targets):
            targets.of("venia-ui").nav_items.tap(lambda items: [*items, "Orders"])
            app = TargetableSet.using(targets).component("src/App.js")
            app.remove_element("Spinner")
            app.append_markup("Main", "<Footer />")
        """,
    )
    _write(project / "src" / "App.js", "<Main><Spinner /></Main>")

    venia = project / "packages" / "venia_ui"
    _write(
        venia / "pyproject.toml",
        """
        [project]
        name = "venia-ui"

        [tool.buildbus.targets]
        declare = "targets/declare.py"
        intercept = "targets/intercept.py"
        """,
    )
    _write(
        venia / "targets" / "declare.py",
        """
        def declare(targets):
            targets.declare({"nav_items": targets.types.SyncWaterfall(["items"])})
        """,
    )
    _write(
        venia / "targets" / "intercept.py",
        """
        from buildbus.targetables import TargetableSet


        def intercept(targets):
            targetables = TargetableSet.using(targets)
            targetables.es_module_array("venia-ui/lib/nav.js").add('Help from "./help.js"')
            targetables.set_special_features("css_modules")
        """,
    )
    _write(venia / "lib" / "nav.js", 'import Home from "./home.js";\nexport default [Home];\n')
    return project
