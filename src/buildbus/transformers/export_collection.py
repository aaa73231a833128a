"""Makes a module's default export a collection of the bindings imported into it.

Options come from the collection builders:

* ``{"type": "array", "bindings": [...]}`` exports ``[a, b]``
* ``{"type": "object", "bindings": [...], "errors": [...]}`` exports ``{ a, b }``
* ``{"type": "lazy", "entries": [{"binding", "source"}], "errors": [...]}``
  exports ``{ A: () => import("source") }``

An existing default export is kept and spread into the new collection.
"""

from __future__ import annotations

import json
import re
from typing import Any

from buildbus.transform.apply import TransformContext

ORIGINAL_DEFAULT = "$buildbus$original_default"

_DEFAULT_EXPORT = re.compile(r"^(\s*)export\s+default\s+", re.MULTILINE)


def _detach_default_export(source: str, name: str) -> tuple[str, bool]:
    if _DEFAULT_EXPORT.search(source) is None:
        return source, False
    return _DEFAULT_EXPORT.sub(rf"\1const {name} = ", source, count=1), True


def _array(bindings: list[str], spread: str | None) -> str:
    items = [f"...{spread}"] if spread else []
    items.extend(bindings)
    return f"[{', '.join(items)}]"


def _object(members: list[str], spread: str | None) -> str:
    items = [f"...{spread}"] if spread else []
    items.extend(members)
    if not items:
        return "{}"
    return f"{{ {', '.join(items)} }}"


def _collection(options: dict[str, Any], spread: str | None, context: TransformContext) -> str | None:
    kind = options.get("type")
    if kind == "array":
        return _array(list(options.get("bindings", [])), spread)
    if kind == "object":
        return _object(list(options.get("bindings", [])), spread)
    if kind == "lazy":
        members = [
            f"{entry['binding']}: () => import({json.dumps(entry['source'])})" for entry in options.get("entries", [])
        ]
        return _object(members, spread)
    context.emit_error(f"export_collection: unknown collection type {kind!r}")
    return None


def transform(source: str, options_list: list[dict[str, Any]], context: TransformContext) -> str:
    for index, options in enumerate(options_list):
        for error in options.get("errors", []):
            context.emit_error(error)
        name = f"{ORIGINAL_DEFAULT}{index}"
        body, detached = _detach_default_export(source, name)
        collection = _collection(options, name if detached else None, context)
        if collection is None:
            continue
        if body and not body.endswith("\n"):
            body += "\n"
        source = f"{body}export default {collection};\n"
    return source
