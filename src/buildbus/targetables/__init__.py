"""Builders that turn extension intent into transform requests for specific files."""

from buildbus.targetables.collections import (
    TargetableESModuleArray,
    TargetableESModuleObject,
    TargetableLazyModuleObject,
)
from buildbus.targetables.component import TargetableComponent
from buildbus.targetables.esmodule import TargetableESModule
from buildbus.targetables.imports import SingleImportStatement
from buildbus.targetables.module import TargetableModule
from buildbus.targetables.targetable_set import TargetableSet

__all__ = [
    "SingleImportStatement",
    "TargetableComponent",
    "TargetableESModule",
    "TargetableESModuleArray",
    "TargetableESModuleObject",
    "TargetableLazyModuleObject",
    "TargetableModule",
    "TargetableSet",
]
