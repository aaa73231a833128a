"""The hook bus: runs every participating package through the extension lifecycle.

One bus exists per project root. Packages are discovered per phase and their
entry functions are called with a :class:`TargetProvider`, first for the
``declare`` phase (publishing hooks) and then for the ``intercept`` phase
(subscribing to other packages' hooks).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from buildbus.builtin_targets import BUILTIN_PACKAGE
from buildbus.config import BusConfig
from buildbus.discovery import Dependency, Discovery, canonical_name, default_discovery
from buildbus.errors import NotYetDeclaredError
from buildbus.loader import find_entry_function, load_entry_module, run_entry
from buildbus.provider import TargetMap, TargetProvider
from buildbus.tracking import OutCallback, Trackable, log_tracking_event

logger = logging.getLogger(__name__)

Phase = Literal["declare", "intercept"]
PHASES: tuple[Phase, ...] = ("declare", "intercept")

BUILTIN_ENTRY = "buildbus.builtin_targets:declare"

_FACTORY_TOKEN = object()


class BusRegistry:
    """Owned cache of buses keyed by resolved project root."""

    def __init__(self) -> None:
        self._buses: dict[Path, BuildBus] = {}

    def __contains__(self, context: object) -> bool:
        return isinstance(context, (str, Path)) and Path(context).resolve() in self._buses

    def __len__(self) -> int:
        return len(self._buses)

    def get(self, context: str | Path) -> BuildBus | None:
        return self._buses.get(Path(context).resolve())

    def get_or_create(self, context: str | Path, create: Callable[[Path], BuildBus]) -> BuildBus:
        root = Path(context).resolve()
        bus = self._buses.get(root)
        if bus is None:
            bus = self._buses[root] = create(root)
        return bus

    def clear(self, context: str | Path) -> None:
        self._buses.pop(Path(context).resolve(), None)

    def clear_all(self) -> None:
        self._buses.clear()


default_registry = BusRegistry()


class BuildBus(Trackable):
    """Manages dependency participation in project builds.

    Do not construct directly; use :meth:`BuildBus.for_context`.
    """

    def __init__(
        self,
        token: object,
        context: Path,
        config: BusConfig,
        discovery: Discovery,
    ) -> None:
        super().__init__()
        if token is not _FACTORY_TOKEN:
            msg = (
                "BuildBus must not be created with its constructor. "
                "Use the factory method BuildBus.for_context(context) instead."
            )
            raise RuntimeError(msg)
        self.context = context
        self.config = config
        self.discovery = discovery
        self.additional_deps = list(config.additional_deps)
        self.has_run: set[str] = set()
        self.target_providers: dict[str, TargetProvider] = {}
        self.dep_files: list[str] = []
        self.declared: set[str] = set()
        self._dep_roots: dict[str, Path] = {}

    def __repr__(self) -> str:
        return f"<BuildBus {self.context} ran={sorted(self.has_run)}>"

    # --- Cache control ---

    @classmethod
    def for_context(
        cls,
        context: str | Path,
        tracking_owner: Trackable | OutCallback | None = None,
        *,
        registry: BusRegistry | None = None,
        config: BusConfig | None = None,
        discovery: Discovery | None = None,
    ) -> BuildBus:
        """Return the bus for ``context``, creating it on first request."""
        registry = registry if registry is not None else default_registry

        def create(root: Path) -> BuildBus:
            bus_config = config if config is not None else BusConfig.load(root)
            bus_discovery = discovery if discovery is not None else default_discovery(root, bus_config.namespace)
            bus = cls(_FACTORY_TOKEN, root, bus_config, bus_discovery)
            bus.attach(str(context), tracking_owner if tracking_owner is not None else log_tracking_event)
            if bus_config.tracking:
                Trackable.enable_tracking()
            return bus

        return registry.get_or_create(context, create)

    @classmethod
    def clear(cls, context: str | Path, registry: BusRegistry | None = None) -> None:
        """Remove the cached bus for ``context``. Mostly for testing."""
        (registry if registry is not None else default_registry).clear(context)

    @classmethod
    def clear_all(cls, registry: BusRegistry | None = None) -> None:
        (registry if registry is not None else default_registry).clear_all()

    # --- Lifecycle ---

    async def init(self) -> BuildBus:
        """Run the declare and intercept phases, in that order."""
        await self.run_phase("declare")
        await self.run_phase("intercept")
        return self

    async def run_phase(self, phase: str) -> None:
        """Run the entry functions of every package registered for ``phase``.

        A phase runs only once; later calls return immediately.
        """
        if phase not in PHASES:
            msg = f"Unknown phase {phase!r}; expected one of {PHASES}"
            raise ValueError(msg)
        if phase in self.has_run:
            return
        self.has_run.add(phase)
        self.track("runPhase", {"phase": phase})
        logger.info('running phase "%s"', phase)

        for dep in self._pertaining(phase):
            provider = self._provider_for(dep)
            provider.phase = phase
            provider.file = dep.path
            self.track("loadDep", {"phase": phase, "dep": {"name": dep.name, "path": dep.path}})
            try:
                await self._run_dependency(dep, provider)
            finally:
                provider.phase = None
                provider.file = None

    async def _run_dependency(self, dep: Dependency, provider: TargetProvider) -> None:
        try:
            module = load_entry_module(dep.path)
        except ImportError as exc:
            logger.warning('Skipping "%s" %s entry %s: %s', dep.name, dep.phase, dep.path, exc)
            self.track("skipped", {"phase": dep.phase, "dep": dep.name, "reason": str(exc)})
            return

        fn = find_entry_function(module, dep.path, dep.phase)
        if fn is None:
            logger.info('Skipping "%s": %s exports no callable %s entry', dep.name, dep.path, dep.phase)
            self.track("skipped", {"phase": dep.phase, "dep": dep.name, "reason": "no callable entry"})
            return

        logger.debug('running %s entry for "%s"', dep.phase, dep.name)
        await run_entry(fn, provider)
        self.dep_files.append(dep.path)
        if dep.phase == "declare":
            self.declared.add(dep.name)

    def _pertaining(self, phase: str) -> list[Dependency]:
        deps = []
        builtin = canonical_name(BUILTIN_PACKAGE)
        if self.config.builtin_targets and phase == "declare":
            deps.append(Dependency(BUILTIN_PACKAGE, BUILTIN_ENTRY, phase))
        for dep in self.discovery.pertaining(phase, self.additional_deps):
            if self.config.builtin_targets and canonical_name(dep.name) == builtin:
                continue
            deps.append(dep)
        return deps

    def _provider_for(self, dep: Dependency) -> TargetProvider:
        provider = self.target_providers.get(dep.name)
        if provider is None:
            logger.debug('creating target provider for "%s"', dep.name)
            provider = TargetProvider(self, dep.name, self._request_targets)
            self.target_providers[dep.name] = provider
        if dep.root is not None:
            self._dep_roots[dep.name] = dep.root
        return provider

    # --- Hook access ---

    def get_targets_of(self, dep_name: str) -> TargetMap:
        """Return the full handles a package declared. Useful for the bundler integration and tests."""
        return self._get_provider(dep_name).own

    def _get_provider(self, dep_name: str) -> TargetProvider:
        provider = self.target_providers.get(dep_name)
        # a package seen only in the intercept phase has nothing to hand out
        if provider is None or (dep_name not in self.declared and not provider.hooks):
            msg = f'{self._identifier}: Cannot get_targets_of("{dep_name}"): {dep_name} has not yet declared'
            raise NotYetDeclaredError(msg)
        return provider

    def _request_targets(self, requestor: TargetProvider, requested: str) -> TargetMap:
        self.track("requestTargets", {"source": requestor.name, "requested": requested})
        provider = self._get_provider(requested)
        return TargetMap(
            (name, provider.link_target(requestor, name, hook)) for name, hook in provider.hooks.items()
        )

    def package_roots(self) -> dict[str, Path]:
        """Known package roots: from discovery, overridden by roots seen while running phases."""
        roots = dict(self.discovery.package_roots())
        roots.update(self._dep_roots)
        return roots

    def to_json(self) -> dict[str, Any]:
        json_obj = super().to_json()
        json_obj["context"] = str(self.context)
        return json_obj
