"""Extension context handed to every package entry function."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from buildbus.errors import HookDeclarationError
from buildbus.hooks import Hook, classify_hook, types
from buildbus.targets import ExternalTarget, Target
from buildbus.tracking import Trackable

if TYPE_CHECKING:
    from buildbus.bus import BuildBus

logger = logging.getLogger(__name__)

ExternalTargetsGetter = Callable[["TargetProvider", str], "TargetMap"]


class TargetMap(dict[str, Target]):
    """Hook handles of one package, readable as items or attributes."""

    def __getattr__(self, name: str) -> Target:
        try:
            return self[name]
        except KeyError:
            msg = f"No target named {name!r}; available: {sorted(self)}"
            raise AttributeError(msg) from None


class TargetProvider(Trackable):
    """Per-package view of the bus.

    ``declare()`` publishes hooks during the ``declare`` phase; ``of()``
    fetches another package's hooks during the ``intercept`` phase. Using
    either outside its phase is allowed but logged as a lifecycle warning.
    """

    types = types

    def __init__(self, bus: BuildBus | Trackable, name: str, get_external_targets: ExternalTargetsGetter) -> None:
        super().__init__()
        self.attach(name, bus)
        self.name = name
        self.phase: str | None = None
        self.file: str | None = None
        self.hooks: dict[str, Hook] = {}
        self.own = TargetMap()
        self._get_external_targets = get_external_targets
        self._intercepted: dict[str, TargetMap] = {}

    def __repr__(self) -> str:
        return f"<TargetProvider {self.name} phase={self.phase}>"

    def link_target(self, requestor: TargetProvider, name: str, hook: Any) -> Target:
        target_cls = Target if requestor is self else ExternalTarget
        return target_cls(self, requestor, name, classify_hook(hook).type_name, hook)

    def declare(self, declarations: Mapping[str, Any]) -> Mapping[str, Any]:
        if self.phase != "declare":
            self._lifecycle_warning(
                f'ran declare() in the "{self.phase}" phase. Be sure this is what you want to do; '
                "other packages that expect to intercept these targets may never see them."
            )
        for target_name, hook in declarations.items():
            shape = classify_hook(hook)
            if not shape.valid:
                msg = (
                    f'Package "{self.name}" declared target "{target_name}" with an invalid target type '
                    f'"{type(hook).__name__}". Targets must be hook instances from buildbus.hooks '
                    "or objects with the same interface."
                )
                raise HookDeclarationError(msg)
            self.track("declare", {"targetName": target_name, "tapableType": shape.type_name})
            self.hooks[target_name] = hook
            self.own[target_name] = self.link_target(self, target_name, hook)
        return declarations

    def of(self, dep_name: str) -> TargetMap:
        if self.phase != "intercept":
            self._lifecycle_warning(
                f'ran of({dep_name}) in the "{self.phase}" phase. Be sure this is what you want to do; '
                "outside the intercept phase, this behavior is not guaranteed."
            )
        if dep_name == self.name:
            return self.own
        if dep_name not in self._intercepted:
            self._intercepted[dep_name] = self._get_external_targets(self, dep_name)
        return self._intercepted[dep_name]

    def _lifecycle_warning(self, message: str) -> None:
        logger.warning("%s %s", self.name, message)
        self.track("warning", {"type": "lifecycle", "message": message})
