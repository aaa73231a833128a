"""Calling the builtin hooks the way a build integration does.

After :meth:`BuildBus.init`, a build asks the bus for transform requests,
special feature flags and environment variable definitions. These helpers
invoke the builtin hooks with fresh accumulators and return the results.
"""

from __future__ import annotations

import logging

from buildbus.builtin_targets import BUILTIN_PACKAGE, EnvVarDefinitions
from buildbus.bus import BuildBus
from buildbus.transform.config import ModuleTransformConfig
from buildbus.transform.resolver import PathResolver, Resolver
from buildbus.transform.types import LoaderOptions

logger = logging.getLogger(__name__)


async def collect_transform_requests(bus: BuildBus, resolver: Resolver | None = None) -> LoaderOptions:
    """Call ``transform_modules`` and resolve what the taps requested into loader options."""
    if resolver is None:
        resolver = PathResolver(bus.context, bus.package_roots())
    config = ModuleTransformConfig(resolver, bus.config.project_name, bus.config.trusted_vendors)
    await bus.get_targets_of(BUILTIN_PACKAGE).transform_modules.promise(config.add)
    logger.debug("collected %d transform requests", len(config))
    return await config.to_loader_options()


def collect_special_features(bus: BuildBus) -> dict[str, dict[str, bool]]:
    features: dict[str, dict[str, bool]] = {}
    bus.get_targets_of(BUILTIN_PACKAGE).special_features.call(features)
    return features


def collect_env_var_definitions(bus: BuildBus) -> EnvVarDefinitions:
    definitions = EnvVarDefinitions()
    bus.get_targets_of(BUILTIN_PACKAGE).env_var_definitions.call(definitions)
    return definitions
