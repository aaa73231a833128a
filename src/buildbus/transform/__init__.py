"""Transform requests: collection, resolution and application."""

from buildbus.transform.apply import TransformContext, TransformResult, apply_transforms, load_transformer
from buildbus.transform.config import ModuleTransformConfig
from buildbus.transform.resolver import PathResolver, Resolver
from buildbus.transform.types import (
    TRANSFORM_TYPES,
    LoaderOptions,
    TransformRequest,
    dump_loader_options,
    empty_loader_options,
    load_loader_options,
)

__all__ = [
    "TRANSFORM_TYPES",
    "LoaderOptions",
    "ModuleTransformConfig",
    "PathResolver",
    "Resolver",
    "TransformContext",
    "TransformRequest",
    "TransformResult",
    "apply_transforms",
    "dump_loader_options",
    "empty_loader_options",
    "load_loader_options",
    "load_transformer",
]
