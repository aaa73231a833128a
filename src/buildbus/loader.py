"""Loading package entry modules via importlib.

An entry is either a path to a ``.py`` file (or a package directory) or a
dotted module name, optionally followed by ``:attr`` to pick the entry
function explicitly.
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import inspect
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType
from typing import Any

logger = logging.getLogger(__name__)

EntryFunction = Callable[[Any], Any]


def _looks_like_path(entry: str) -> bool:
    return entry.endswith(".py") or "/" in entry or "\\" in entry


def split_entry(entry: str) -> tuple[str, str | None]:
    """Split ``module:attr`` into its parts. Windows drive letters are not separators."""
    head, sep, attr = entry.rpartition(":")
    if not sep or not attr.isidentifier() or (len(head) == 1 and head.isalpha()):
        return entry, None
    return head, attr


def _load_module_from_path(path: str) -> ModuleType:
    resolved = Path(path).expanduser().resolve()
    if resolved.is_dir():
        init = resolved / "__init__.py"
        if not init.is_file():
            msg = f"Directory has no __init__.py: {resolved}"
            raise ImportError(msg)
        resolved = init
    if not resolved.is_file():
        msg = f"Entry module not found: {resolved}"
        raise ImportError(msg)

    digest = hashlib.sha1(str(resolved).encode()).hexdigest()[:10]
    module_name = f"buildbus_entry_{resolved.stem}_{digest}"
    if module_name in sys.modules:
        return sys.modules[module_name]

    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        msg = f"Cannot create module spec for: {resolved}"
        raise ImportError(msg)

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[module_name]
        msg = f"Failed to load entry module: {resolved}"
        raise ImportError(msg) from e
    return module


def load_entry_module(entry: str) -> ModuleType:
    """Import the module an entry points at. Raises ImportError on failure."""
    target, _ = split_entry(entry)
    if _looks_like_path(target):
        return _load_module_from_path(target)
    try:
        return importlib.import_module(target)
    except ImportError:
        raise
    except Exception as e:
        msg = f"Failed to load entry module: {target}"
        raise ImportError(msg) from e


def find_entry_function(module: ModuleType, entry: str, phase: str) -> EntryFunction | None:
    """Pick the entry function: the explicit ``:attr``, else ``default``, else an attribute named after the phase."""
    _, attr = split_entry(entry)
    names = (attr,) if attr else ("default", phase)
    for name in names:
        candidate = getattr(module, name, None)
        if callable(candidate):
            return candidate
    return None


async def run_entry(fn: EntryFunction, context: Any) -> Any:
    result = fn(context)
    if inspect.isawaitable(result):
        result = await result
    return result
