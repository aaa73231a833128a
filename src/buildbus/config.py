"""Bus configuration with layered precedence.

Sources, lowest to highest: built-in defaults, the ``[tool.buildbus]`` table
of the project's ``pyproject.toml``, then environment variables.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "buildbus"
ENV_DEPS_ADDITIONAL = "BUILDBUS_DEPS_ADDITIONAL"
ENV_TRACKING = "BUILDBUS_TRACKING"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class BusConfig:
    """Settings for one bus instance."""

    namespace: str = DEFAULT_NAMESPACE
    # package names that take part even though the project does not depend on them
    additional_deps: list[str] = field(default_factory=list)
    # vendor prefixes whose packages may transform files of other packages
    trusted_vendors: list[str] = field(default_factory=list)
    project_name: str | None = None
    builtin_targets: bool = True
    tracking: bool = False

    @classmethod
    def load(cls, context: str | Path, environ: Mapping[str, str] | None = None) -> BusConfig:
        environ = os.environ if environ is None else environ
        config = cls()

        manifest = read_pyproject(Path(context))
        project = manifest.get("project", {})
        if isinstance(project.get("name"), str):
            config.project_name = project["name"]

        table = manifest.get("tool", {}).get(DEFAULT_NAMESPACE, {})
        config._apply_table(table)

        env_deps = environ.get(ENV_DEPS_ADDITIONAL)
        if env_deps:
            config.additional_deps = _split_names(env_deps)
        env_tracking = environ.get(ENV_TRACKING)
        if env_tracking is not None:
            config.tracking = env_tracking.strip().lower() in _TRUTHY
        return config

    def _apply_table(self, table: Mapping[str, Any]) -> None:
        if "namespace" in table:
            self.namespace = str(table["namespace"])
        if "additional-deps" in table:
            self.additional_deps = [str(name) for name in table["additional-deps"]]
        if "trusted-vendors" in table:
            self.trusted_vendors = [str(name) for name in table["trusted-vendors"]]
        if "builtin-targets" in table:
            self.builtin_targets = bool(table["builtin-targets"])
        if "tracking" in table:
            self.tracking = bool(table["tracking"])


def read_pyproject(directory: Path) -> dict[str, Any]:
    """Parse ``directory/pyproject.toml``; a missing file reads as empty."""
    path = directory / "pyproject.toml"
    if not path.is_file():
        return {}
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid pyproject.toml at {path}: {exc}"
            raise ValueError(msg) from exc


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]
