"""buildbus: extension hook bus and declarative transforms for modular builds.

Packages declare hooks in a ``declare`` entry, subscribe to other packages'
hooks in an ``intercept`` entry, and queue rewrites of each other's files
through targetable builders.
"""

from buildbus.builtin_targets import EnvVarDefinition, EnvVarDefinitions, EnvVarSection
from buildbus.bus import PHASES, BuildBus, BusRegistry
from buildbus.config import BusConfig
from buildbus.discovery import (
    ChainDiscovery,
    Dependency,
    EntryPointDiscovery,
    ProjectDiscovery,
    StaticDiscovery,
    WorkspaceDiscovery,
)
from buildbus.errors import (
    BuildBusError,
    ExternalInvokeError,
    HookDeclarationError,
    ImportStatementError,
    NotYetDeclaredError,
    OperationError,
    TransformError,
    TransformRequestError,
    UnknownOperationError,
)
from buildbus.hooks import (
    AsyncParallelBailHook,
    AsyncParallelHook,
    AsyncSeriesBailHook,
    AsyncSeriesHook,
    AsyncSeriesWaterfallHook,
    SyncBailHook,
    SyncHook,
    SyncLoopHook,
    SyncWaterfallHook,
    appears_to_be_hook,
    classify_hook,
    get_hook_type,
)
from buildbus.pipeline import collect_env_var_definitions, collect_special_features, collect_transform_requests
from buildbus.provider import TargetMap, TargetProvider
from buildbus.targetables import (
    SingleImportStatement,
    TargetableComponent,
    TargetableESModule,
    TargetableESModuleArray,
    TargetableESModuleObject,
    TargetableLazyModuleObject,
    TargetableModule,
    TargetableSet,
)
from buildbus.targets import ExternalTarget, Target
from buildbus.tracking import Trackable
from buildbus.transform import ModuleTransformConfig, PathResolver, TransformRequest, apply_transforms
from buildbus.tree import modify_tree

__all__ = [
    # Bus
    "PHASES",
    "BuildBus",
    "BusConfig",
    "BusRegistry",
    "TargetMap",
    "TargetProvider",
    "Target",
    "ExternalTarget",
    "Trackable",
    # Discovery
    "Dependency",
    "WorkspaceDiscovery",
    "EntryPointDiscovery",
    "ProjectDiscovery",
    "StaticDiscovery",
    "ChainDiscovery",
    # Hooks
    "SyncHook",
    "SyncBailHook",
    "SyncWaterfallHook",
    "SyncLoopHook",
    "AsyncParallelHook",
    "AsyncParallelBailHook",
    "AsyncSeriesHook",
    "AsyncSeriesBailHook",
    "AsyncSeriesWaterfallHook",
    "appears_to_be_hook",
    "classify_hook",
    "get_hook_type",
    # Targetables
    "SingleImportStatement",
    "TargetableSet",
    "TargetableModule",
    "TargetableESModule",
    "TargetableESModuleArray",
    "TargetableESModuleObject",
    "TargetableLazyModuleObject",
    "TargetableComponent",
    # Transforms
    "TransformRequest",
    "ModuleTransformConfig",
    "PathResolver",
    "apply_transforms",
    "modify_tree",
    "collect_transform_requests",
    "collect_special_features",
    "collect_env_var_definitions",
    # Builtin targets
    "EnvVarDefinition",
    "EnvVarDefinitions",
    "EnvVarSection",
    # Errors
    "BuildBusError",
    "ExternalInvokeError",
    "HookDeclarationError",
    "ImportStatementError",
    "NotYetDeclaredError",
    "OperationError",
    "TransformError",
    "TransformRequestError",
    "UnknownOperationError",
]
