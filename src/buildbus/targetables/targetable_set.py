"""Entry point for extensions that want to change other packages' files."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from buildbus.builtin_targets import BUILTIN_PACKAGE, EnvVarDefinition, EnvVarDefinitions
from buildbus.provider import TargetProvider
from buildbus.targetables.collections import (
    TargetableESModuleArray,
    TargetableESModuleObject,
    TargetableLazyModuleObject,
)
from buildbus.targetables.component import TargetableComponent
from buildbus.targetables.esmodule import TargetableESModule
from buildbus.targetables.module import TargetableModule

Publisher = Callable[..., Any] | Any
T = TypeVar("T", bound=TargetableModule)


class TargetableSet:
    """Hands out builders for files and applies their requests when the build asks.

    Use it in an ``intercept`` entry::

        def intercept(targets):
            targetables = TargetableSet.using(targets)
            nav = targetables.es_module_array("mypkg/nav_items.js")
            nav.add('Help from "./help.js"')

    A builder may take a publisher, a callable (or an object with a
    ``publish`` method) that is called with the package's own targets and the
    builder right before its requests are collected.
    """

    Module = TargetableModule
    ESModule = TargetableESModule
    ESModuleArray = TargetableESModuleArray
    ESModuleObject = TargetableESModuleObject
    LazyModuleObject = TargetableLazyModuleObject
    Component = TargetableComponent

    def __init__(self, provider: TargetProvider) -> None:
        if not isinstance(provider, TargetProvider):
            msg = "Must supply a TargetProvider to a new TargetableSet."
            raise TypeError(msg)
        self.provider = provider
        self.owner = provider.name
        # provider.file is only set while the entry function runs
        self.owner_file = provider.file or ""
        self.targets = provider.of(BUILTIN_PACKAGE)
        self._connected: dict[str, tuple[TargetableModule, Callable[..., Any] | None]] = {}
        self._bind()

    @classmethod
    def using(cls, provider: TargetProvider) -> TargetableSet:
        return cls(provider)

    def module(self, path: str, publisher: Publisher = None) -> TargetableModule:
        return self._provide(TargetableModule, path, publisher)

    def es_module(self, path: str, publisher: Publisher = None) -> TargetableESModule:
        return self._provide(TargetableESModule, path, publisher)

    def es_module_array(self, path: str, publisher: Publisher = None) -> TargetableESModuleArray:
        return self._provide(TargetableESModuleArray, path, publisher)

    def es_module_object(self, path: str, publisher: Publisher = None) -> TargetableESModuleObject:
        return self._provide(TargetableESModuleObject, path, publisher)

    def lazy_module_object(self, path: str, publisher: Publisher = None) -> TargetableLazyModuleObject:
        return self._provide(TargetableLazyModuleObject, path, publisher)

    def component(self, path: str, publisher: Publisher = None) -> TargetableComponent:
        return self._provide(TargetableComponent, path, publisher)

    def set_special_features(self, *flags: str | Iterable[str] | Mapping[str, bool]) -> None:
        """Tap ``special_features`` to set flags for this package.

        Accepts flag names, lists of flag names, or ``{flag: bool}`` mappings.
        """
        features: dict[str, bool] = {}
        for arg in flags:
            if isinstance(arg, str):
                features[arg] = True
            elif isinstance(arg, Mapping):
                features.update({str(name): bool(value) for name, value in arg.items()})
            else:
                features.update(dict.fromkeys(arg, True))
        owner = self.owner

        def set_flags(all_features: dict[str, dict[str, bool]]) -> None:
            all_features.setdefault(owner, {}).update(features)

        self.targets.special_features.tap(set_flags)

    def define_env_vars(self, section_name: str, definitions: Iterable[EnvVarDefinition | Mapping[str, Any]]) -> None:
        variables = [EnvVarDefinition.model_validate(d) if isinstance(d, Mapping) else d for d in definitions]

        def add_section(all_definitions: EnvVarDefinitions) -> None:
            all_definitions.section(section_name).variables.extend(variables)

        self.targets.env_var_definitions.tap(add_section)

    def _bind(self) -> None:
        self.targets.transform_modules.tap_promise("TargetableSet", self._publish_all)

    async def _publish_all(self, add_transform: Callable[[Any], Any]) -> None:
        for instance, publish in self._connected.values():
            if publish is not None:
                result = publish(self.provider.own, instance)
                if inspect.isawaitable(result):
                    await result
            for request in instance.flush():
                add_transform(request)

    def _provide(self, targetable_cls: type[T], path: str, publisher: Publisher) -> T:
        publish = publisher if publisher is None or callable(publisher) else getattr(publisher, "publish", None)
        extant = self._connected.get(path)
        if extant is None:
            instance = targetable_cls(path, self.provider, requestor=self.owner, requestor_file=self.owner_file)
            self._connected[path] = (instance, publish)
            return instance

        instance = extant[0]
        if isinstance(instance, targetable_cls):
            return instance
        msg = (
            f'Cannot target the file "{path}" using "{targetable_cls.__name__}", because it has already been '
            f'targeted by the {type(instance).__name__} created by "{self.owner}".'
        )
        raise TypeError(msg)
