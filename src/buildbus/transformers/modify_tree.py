"""Runs the tree operations queued by component builders."""

from __future__ import annotations

from typing import Any

from buildbus.transform.apply import TransformContext
from buildbus.tree import modify_tree


def transform(source: str, options_list: list[dict[str, Any]], context: TransformContext) -> str:
    result = modify_tree(source, options_list, filename=context.file_id)
    for warning in result.warnings:
        context.emit_warning(warning)
    return result.code
