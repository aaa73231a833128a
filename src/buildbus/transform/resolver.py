"""Resolving the paths named in transform requests."""

from __future__ import annotations

import importlib.util
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from buildbus.discovery import canonical_name

logger = logging.getLogger(__name__)

_DOTTED_MODULE = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")


class Resolver(Protocol):
    async def resolve(self, request: str) -> str | None: ...


class PathResolver:
    """Resolves files and transformer modules for transform requests.

    * ``/abs/path`` is used as is.
    * ``package/some/file`` is looked up under the root of ``package``.
    * ``some.module`` naming an importable module resolves to itself.
    * anything else is tried relative to the project root.

    Files must exist; ``None`` means the request could not be resolved.
    """

    def __init__(self, context: str | Path, package_roots: Mapping[str, str | Path] | None = None) -> None:
        self.context = Path(context).resolve()
        self.package_roots = {canonical_name(name): Path(root) for name, root in (package_roots or {}).items()}

    async def resolve(self, request: str) -> str | None:
        path = Path(request)
        if path.is_absolute():
            return str(path.resolve()) if path.exists() else None

        package, sep, rest = request.partition("/")
        if sep:
            root = self.package_roots.get(canonical_name(package))
            if root is not None:
                candidate = root / rest
                if candidate.exists():
                    return str(candidate.resolve())

        if not sep and _DOTTED_MODULE.match(request) and self._module_exists(request):
            return request

        candidate = self.context / request
        if candidate.exists():
            return str(candidate.resolve())
        logger.debug("Could not resolve %r from %s", request, self.context)
        return None

    @staticmethod
    def _module_exists(name: str) -> bool:
        try:
            return importlib.util.find_spec(name) is not None
        except (ImportError, ValueError):
            return False
