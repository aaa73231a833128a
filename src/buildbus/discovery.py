"""Finding the packages that take part in a bus phase.

A package takes part in a phase when its manifest names an entry module for
that phase. Two sources are supported:

* workspace manifests: ``pyproject.toml`` files of the project and of its
  workspace members, with a ``[tool.buildbus.targets]`` table such as
  ``declare = "targets/declare.py"`` or ``intercept = "mypkg.targets:intercept"``;
* installed distributions exposing entry points in the ``buildbus.targets``
  group, where the entry point name is the phase.
"""

from __future__ import annotations

import importlib.metadata
import importlib.util
import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from buildbus.config import DEFAULT_NAMESPACE, read_pyproject

logger = logging.getLogger(__name__)

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")
_EXTRA_MARKER = re.compile(r";.*\bextra\s*==")
_SKIP_DIRS = {"__pycache__", "node_modules", "build", "dist"}


def canonical_name(name: str) -> str:
    return re.sub(r"[-_.]+", "-", name).lower()


def requirement_names(requirements: Iterable[str]) -> list[str]:
    """Project names from requirement strings, leaving out optional ``extra == ...`` requirements."""
    names = []
    for requirement in requirements:
        if _EXTRA_MARKER.search(requirement):
            continue
        match = _REQUIREMENT_NAME.match(requirement)
        if match:
            names.append(match.group(1))
    return names


def dependency_order(
    roots: Iterable[str],
    requires: Callable[[str], Sequence[str] | None],
    extra: Iterable[str] = (),
    last: str | None = None,
) -> list[str]:
    """Canonical names reachable from ``roots`` and ``extra``, dependencies before dependents.

    ``requires(key)`` gives the requirement names of a known package, or
    ``None`` for a package that is not known; unknown packages are left out
    but do not stop the walk. ``last`` (the project) goes at the end and is
    never visited as somebody's dependency.
    """
    ordered: list[str] = []
    done: set[str] = set()
    visiting: set[str] = {last} if last is not None else set()

    def visit(key: str) -> None:
        if key in done or key in visiting:
            return
        dependencies = requires(key)
        if dependencies is None:
            return
        visiting.add(key)
        for dep in dependencies:
            visit(canonical_name(dep))
        visiting.discard(key)
        done.add(key)
        ordered.append(key)

    for name in roots:
        visit(canonical_name(name))
    for name in extra:
        key = canonical_name(name)
        if key != last and requires(key) is None:
            logger.info("Additional dependency %r not found", name)
            continue
        visit(key)
    if last is not None:
        ordered.append(last)
    return ordered


@dataclass(frozen=True)
class Dependency:
    """A package registered for one phase."""

    name: str
    path: str
    phase: str
    root: Path | None = None


class Discovery(Protocol):
    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]: ...

    def package_roots(self) -> dict[str, Path]: ...


# --- Workspace manifests ---


@dataclass
class PackageManifest:
    name: str
    root: Path
    dependencies: list[str] = field(default_factory=list)
    targets: dict[str, str] = field(default_factory=dict)
    workspace: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, root: Path, namespace: str = DEFAULT_NAMESPACE) -> PackageManifest | None:
        data = read_pyproject(root)
        project = data.get("project", {})
        name = project.get("name")
        if not isinstance(name, str):
            return None
        table = data.get("tool", {}).get(namespace, {})
        deps = requirement_names(project.get("dependencies", []))
        targets = {str(phase): str(entry) for phase, entry in table.get("targets", {}).items()}
        return cls(name, root, deps, targets, [str(p) for p in table.get("workspace", [])])

    def entry_for(self, phase: str) -> str | None:
        entry = self.targets.get(phase)
        if entry is None:
            return None
        if entry.endswith(".py") or "/" in entry:
            return str((self.root / entry).resolve())
        return entry


class WorkspaceDiscovery:
    """Reads the project manifest and its workspace members.

    Only packages reachable from the project through ``[project] dependencies``
    take part (plus names passed as ``extra``). Dependencies come before their
    dependents, and the project itself comes last.
    """

    def __init__(self, root: str | Path, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.root = Path(root).resolve()
        self.namespace = namespace
        self._manifests: dict[str, PackageManifest] | None = None
        self._project: PackageManifest | None = None

    def _scan(self) -> dict[str, PackageManifest]:
        if self._manifests is not None:
            return self._manifests

        manifests: dict[str, PackageManifest] = {}
        self._project = PackageManifest.load(self.root, self.namespace)
        patterns = self._project.workspace if self._project else []
        for pattern in patterns:
            for member in sorted(self.root.glob(pattern)):
                if not member.is_dir() or member.name in _SKIP_DIRS or member.name.startswith("."):
                    continue
                try:
                    manifest = PackageManifest.load(member, self.namespace)
                except ValueError as exc:
                    logger.warning("Skipping %s: %s", member, exc)
                    continue
                if manifest is not None:
                    manifests[canonical_name(manifest.name)] = manifest
        if self._project is not None:
            manifests[canonical_name(self._project.name)] = self._project
        self._manifests = manifests
        return manifests

    def manifests(self) -> dict[str, PackageManifest]:
        """Workspace members and the project, keyed by canonical name."""
        return self._scan()

    @property
    def project(self) -> PackageManifest | None:
        self._scan()
        return self._project

    def _ordered(self, extra: Sequence[str]) -> list[PackageManifest]:
        manifests = self._scan()

        def requires(key: str) -> list[str] | None:
            manifest = manifests.get(key)
            return manifest.dependencies if manifest is not None else None

        project = self._project
        ordered = dependency_order(
            project.dependencies if project else [],
            requires,
            extra,
            last=canonical_name(project.name) if project else None,
        )
        return [manifests[key] for key in ordered]

    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]:
        deps = []
        for manifest in self._ordered(extra):
            entry = manifest.entry_for(phase)
            if entry is not None:
                deps.append(Dependency(manifest.name, entry, phase, manifest.root))
        return deps

    def package_roots(self) -> dict[str, Path]:
        return {manifest.name: manifest.root for manifest in self._scan().values()}


# --- Installed distributions ---


class EntryPointDiscovery:
    """Reads entry points of installed distributions; the entry point name is the phase.

    On its own this reports every installed registration, sorted by name.
    :class:`ProjectDiscovery` narrows it to the project's dependencies.
    """

    def __init__(self, group: str = f"{DEFAULT_NAMESPACE}.targets") -> None:
        self.group = group

    def _entry_points(self) -> Iterable[importlib.metadata.EntryPoint]:
        return importlib.metadata.entry_points(group=self.group)

    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]:
        deps = []
        for ep in self._entry_points():
            if ep.name != phase:
                continue
            name = ep.dist.name if ep.dist is not None else ep.module.split(".")[0]
            deps.append(Dependency(name, ep.value, phase, _module_root(ep.module)))
        return sorted(deps, key=lambda dep: canonical_name(dep.name))

    def requires(self, name: str) -> list[str] | None:
        """Requirement names of the installed distribution ``name``, ``None`` if it is not installed."""
        key = canonical_name(name)
        for ep in self._entry_points():
            if ep.dist is not None and canonical_name(ep.dist.name) == key:
                return requirement_names(ep.dist.requires or [])
        try:
            dist = importlib.metadata.distribution(name)
        except importlib.metadata.PackageNotFoundError:
            return None
        return requirement_names(dist.requires or [])

    def package_roots(self) -> dict[str, Path]:
        roots = {}
        for ep in self._entry_points():
            root = _module_root(ep.module)
            if root is not None and ep.dist is not None:
                roots.setdefault(ep.dist.name, root)
        return roots


def _module_root(module: str) -> Path | None:
    top = module.split(".")[0]
    try:
        spec = importlib.util.find_spec(top)
    except (ImportError, ValueError):
        return None
    if spec is None:
        return None
    if spec.submodule_search_locations:
        return Path(next(iter(spec.submodule_search_locations)))
    if spec.origin:
        return Path(spec.origin).parent
    return None


# --- Composition ---


class StaticDiscovery:
    """Fixed registrations, for programmatic setups and tests.

    ``packages`` maps a package name to ``{phase: entry}``; order is kept.
    """

    def __init__(self, packages: Mapping[str, Mapping[str, str]], roots: Mapping[str, str | Path] | None = None) -> None:
        self.packages = {name: dict(phases) for name, phases in packages.items()}
        self.roots = {name: Path(root) for name, root in (roots or {}).items()}

    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]:
        return [
            Dependency(name, phases[phase], phase, self.roots.get(name))
            for name, phases in self.packages.items()
            if phase in phases
        ]

    def package_roots(self) -> dict[str, Path]:
        return dict(self.roots)


class ChainDiscovery:
    """Merges several strategies; the first one to report a package wins."""

    def __init__(self, *strategies: Discovery) -> None:
        self.strategies = strategies

    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]:
        seen: set[str] = set()
        deps = []
        for strategy in self.strategies:
            for dep in strategy.pertaining(phase, extra):
                key = canonical_name(dep.name)
                if key not in seen:
                    seen.add(key)
                    deps.append(dep)
        return deps

    def package_roots(self) -> dict[str, Path]:
        roots: dict[str, Path] = {}
        for strategy in self.strategies:
            for name, root in strategy.package_roots().items():
                roots.setdefault(name, root)
        return roots


class ProjectDiscovery:
    """Workspace members and installed distributions reachable from the project.

    The dependency graph starts at the project's ``[project] dependencies``.
    A workspace manifest supplies a package's dependencies and entries when
    there is one; otherwise the installed distribution's metadata and entry
    points do. Names passed as ``extra`` join the graph too. Dependencies come
    before their dependents and the project comes last.
    """

    def __init__(self, root: str | Path, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.workspace = WorkspaceDiscovery(root, namespace)
        self.installed = EntryPointDiscovery(f"{namespace}.targets")
        self._requires: dict[str, list[str] | None] = {}

    def requires(self, key: str) -> list[str] | None:
        manifest = self.workspace.manifests().get(key)
        if manifest is not None:
            return manifest.dependencies
        if key not in self._requires:
            self._requires[key] = self.installed.requires(key)
        return self._requires[key]

    def pertaining(self, phase: str, extra: Sequence[str] = ()) -> list[Dependency]:
        project = self.workspace.project
        ordered = dependency_order(
            project.dependencies if project else [],
            self.requires,
            extra,
            last=canonical_name(project.name) if project else None,
        )
        manifests = self.workspace.manifests()
        installed = {canonical_name(dep.name): dep for dep in self.installed.pertaining(phase)}
        deps = []
        for key in ordered:
            manifest = manifests.get(key)
            if manifest is not None:
                entry = manifest.entry_for(phase)
                if entry is not None:
                    deps.append(Dependency(manifest.name, entry, phase, manifest.root))
            elif key in installed:
                deps.append(installed[key])
        return deps

    def package_roots(self) -> dict[str, Path]:
        roots = self.workspace.package_roots()
        for name, root in self.installed.package_roots().items():
            roots.setdefault(name, root)
        return roots


def default_discovery(root: str | Path, namespace: str = DEFAULT_NAMESPACE) -> Discovery:
    return ProjectDiscovery(root, namespace)
