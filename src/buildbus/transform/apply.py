"""Applying grouped transform requests to one file's source."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any

from buildbus.errors import BuildBusError, TransformError
from buildbus.loader import load_entry_module
from buildbus.transform.types import SOURCE, TREE, LoaderOptions, TransformRequest

logger = logging.getLogger(__name__)

Transformer = Callable[[str, list[dict[str, Any]], "TransformContext"], str]

# source transforms see raw text, so they run before the tree is parsed
APPLY_ORDER = (SOURCE, TREE)


class TransformContext:
    """Passed to each transformer; collects what it reports besides the new code."""

    def __init__(self, file_id: str) -> None:
        self.file_id = file_id
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def emit_warning(self, message: str) -> None:
        logger.warning("%s: %s", self.file_id, message)
        self.warnings.append(message)

    def emit_error(self, message: str) -> None:
        logger.error("%s: %s", self.file_id, message)
        self.errors.append(message)


@dataclass
class TransformResult:
    code: str
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    changed: bool = False


def load_transformer(name: str) -> Transformer:
    try:
        module: ModuleType = load_entry_module(name)
    except ImportError as e:
        msg = f"Cannot load transform module {name!r}: {e}"
        raise TransformError(msg) from e
    transform = getattr(module, "transform", None)
    if not callable(transform):
        msg = f"Transform module {name!r} does not define a transform(source, options, context) function"
        raise TransformError(msg)
    return transform


def requests_for_file(loader_options: LoaderOptions, transform_type: str, file_id: str) -> Iterable[tuple[str, list[TransformRequest]]]:
    """Yield ``(transform_module, requests)`` for every module that targets ``file_id``."""
    for transform_module, files in loader_options.get(transform_type, {}).items():
        requests = files.get(file_id)
        if requests:
            yield transform_module, requests


def apply_transforms(source: str, file_id: str, loader_options: LoaderOptions) -> TransformResult:
    """Run every transform requested for ``file_id``: source transforms first, then tree transforms."""
    context = TransformContext(file_id)
    code = source
    for transform_type in APPLY_ORDER:
        for transform_module, requests in requests_for_file(loader_options, transform_type, file_id):
            logger.debug("applying %s transform %s to %s (%d requests)", transform_type, transform_module, file_id, len(requests))
            transform = load_transformer(transform_module)
            try:
                code = transform(code, [request.options for request in requests], context)
            except BuildBusError:
                raise
            except Exception as e:
                requestors = ", ".join(sorted({request.requestor for request in requests}))
                msg = f"{transform_module} failed on {file_id} (requested by {requestors}): {e}"
                raise TransformError(msg) from e
    return TransformResult(
        code=code,
        warnings=context.warnings,
        errors=context.errors,
        changed=code != source,
    )
