"""Passes one export of a module through the default export of a wrapper module.

Options: ``wrapper_module`` (import path of the wrapper), ``default_export``
and, for named exports, ``export_name``. The wrapped module ends up exporting
``wrapper(original)`` under the same name; code inside the module keeps
seeing the original.
"""

from __future__ import annotations

import json
import re
from typing import Any

from buildbus.transform.apply import TransformContext

_DEFAULT_EXPORT = re.compile(r"^(\s*)export\s+default\s+", re.MULTILINE)
_EXPORT_LIST = re.compile(r"export\s*\{([^}]*)\}\s*;?")


def _declaration(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^(\s*)export\s+((?:async\s+)?function\s*\*?\s*|class\s+|const\s+|let\s+|var\s+){re.escape(name)}\b",
        re.MULTILINE,
    )


def _wrap_default(source: str, wrapper: str, local: str) -> str | None:
    if _DEFAULT_EXPORT.search(source) is None:
        return None
    body = _DEFAULT_EXPORT.sub(rf"\1const {local} = ", source, count=1)
    if not body.endswith("\n"):
        body += "\n"
    return f"{body}export default {wrapper}({local});\n"


def _remove_from_export_list(source: str, name: str) -> tuple[str, str] | None:
    """Drop ``name`` from an ``export { ... }`` list. Returns the new source and the local it exported."""
    for match in _EXPORT_LIST.finditer(source):
        specifiers = [spec.strip() for spec in match.group(1).split(",") if spec.strip()]
        for index, spec in enumerate(specifiers):
            local, _, exported = (part.strip() for part in spec.partition(" as "))
            if (exported or local) != name:
                continue
            del specifiers[index]
            replacement = f"export {{ {', '.join(specifiers)} }};" if specifiers else ""
            return source[: match.start()] + replacement + source[match.end() :], local
    return None


def _wrap_named(source: str, wrapper: str, name: str, local: str) -> str | None:
    declared = _declaration(name)
    if declared.search(source) is not None:
        body = declared.sub(rf"\1\2{name}", source, count=1)
        original = name
    else:
        removed = _remove_from_export_list(source, name)
        if removed is None:
            return None
        body, original = removed
    if not body.endswith("\n"):
        body += "\n"
    return f"{body}const {local} = {wrapper}({original});\nexport {{ {local} as {name} }};\n"


def transform(source: str, options_list: list[dict[str, Any]], context: TransformContext) -> str:
    for index, options in enumerate(options_list):
        wrapper_module = options.get("wrapper_module")
        if not wrapper_module:
            context.emit_error(f"wrap_module: no wrapper_module in {options}")
            continue
        wrapper = f"$buildbus$wrapper{index}"
        local = f"$buildbus$wrapped{index}"
        if options.get("default_export", "export_name" not in options):
            wrapped = _wrap_default(source, wrapper, local)
            what = "a default export"
        else:
            name = options["export_name"]
            wrapped = _wrap_named(source, wrapper, name, local)
            what = f"an export named {name!r}"
        if wrapped is None:
            context.emit_error(f"wrap_module: cannot wrap {what} with {wrapper_module}; the module has none")
            continue
        source = f"import {wrapper} from {json.dumps(wrapper_module)};\n{wrapped}"
    return source
