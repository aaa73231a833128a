"""Text splicing: insert and/or remove characters at an offset or around a search string.

Each options dict holds one of ``after``, ``before`` (search strings) or
``at`` (an offset), plus ``insert`` text and/or a ``remove`` count. With
``"global": True`` the splice happens at every occurrence of the search
string instead of only the first.
"""

from __future__ import annotations

import logging
from typing import Any

from buildbus.transform.apply import TransformContext

logger = logging.getLogger(__name__)

_LOCATORS = ("after", "before", "at")


def _positions(source: str, options: dict[str, Any], context: TransformContext) -> list[int] | None:
    present = [key for key in _LOCATORS if key in options]
    if len(present) != 1:
        context.emit_error(f"splice_source needs exactly one of {_LOCATORS}, got {present or 'none'}: {options}")
        return None
    locator = present[0]

    if locator == "at":
        at = options["at"]
        if not isinstance(at, int) or isinstance(at, bool) or not 0 <= at <= len(source):
            context.emit_error(f"splice_source: offset {at!r} is outside the file ({len(source)} characters)")
            return None
        return [at]

    needle = options[locator]
    if not isinstance(needle, str) or not needle:
        context.emit_error(f"splice_source: {locator!r} must be a non-empty string")
        return None
    offset = len(needle) if locator == "after" else 0
    positions = []
    start = source.find(needle)
    while start != -1:
        positions.append(start + offset)
        if not options.get("global"):
            break
        start = source.find(needle, start + len(needle))
    if not positions:
        context.emit_error(f"splice_source: could not find {needle!r} to splice {locator}")
        return None
    return positions


def _splice(source: str, options: dict[str, Any], context: TransformContext) -> str:
    insert = options.get("insert", "")
    remove = options.get("remove", 0)
    if not isinstance(insert, str) or not isinstance(remove, int) or remove < 0:
        context.emit_error(f"splice_source: invalid insert/remove in {options}")
        return source
    positions = _positions(source, options, context)
    if positions is None:
        return source
    # right to left so earlier offsets stay valid
    for position in reversed(positions):
        source = source[:position] + insert + source[position + remove :]
    return source


def transform(source: str, options_list: list[dict[str, Any]], context: TransformContext) -> str:
    for options in options_list:
        source = _splice(source, options, context)
    return source
