"""Collecting transform requests and resolving them into loader options."""

from __future__ import annotations

import asyncio
import logging
import posixpath
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from buildbus.builtin_targets import BUILTIN_PACKAGE
from buildbus.discovery import canonical_name
from buildbus.errors import TransformRequestError
from buildbus.transform.resolver import Resolver
from buildbus.transform.types import TRANSFORM_TYPES, LoaderOptions, TransformRequest, empty_loader_options

logger = logging.getLogger(__name__)

_VENDOR_SEP = re.compile(r"[-_.]")


class ModuleTransformConfig:
    """Accepts transform requests and emits them grouped for the transformers.

    :meth:`add` is what taps of the ``transform_modules`` hook receive. It
    rejects bad requests right away, so the error surfaces in the extension
    that made the request; path resolution happens later, in
    :meth:`to_loader_options`.
    """

    def __init__(
        self,
        resolver: Resolver,
        local_project_name: str | None,
        trusted_vendors: Iterable[str] = (),
    ) -> None:
        self.resolver = resolver
        self.local_project_name = local_project_name
        self.trusted_vendors = {canonical_name(vendor) for vendor in trusted_vendors}
        self._needs_resolved: list[Callable[[], Awaitable[TransformRequest]]] = []

    def __len__(self) -> int:
        return len(self._needs_resolved)

    def add(self, request: TransformRequest | Mapping[str, Any]) -> None:
        if not isinstance(request, TransformRequest):
            try:
                request = TransformRequest.model_validate(request)
            except ValidationError as e:
                msg = f"ModuleTransformConfig: Invalid TransformRequest: {e}"
                raise TransformRequestError(msg) from e
        if request.type not in TRANSFORM_TYPES:
            raise self._traceable_error(
                f"Unknown request type '{request.type}' in TransformRequest: "
                f"{request.model_dump_json(by_alias=True, exclude={'trace'})}",
                request.trace,
            )
        self._needs_resolved.append(self._resolve_request(request))

    async def to_loader_options(self) -> LoaderOptions:
        """Resolve every request and group them by type, transform module and file."""
        requests = await asyncio.gather(*(do_resolve() for do_resolve in self._needs_resolved))
        by_type = empty_loader_options()
        for request in requests:
            files = by_type.setdefault(request.type, {}).setdefault(request.transform_module, {})
            files.setdefault(request.file_to_transform, []).append(request)
        return by_type

    def _assert_allowed_to_transform(self, request: TransformRequest) -> None:
        requestor = request.requestor
        file_to_transform = _from_requestor(requestor, request.file_to_transform)
        if (
            self._is_local(requestor)
            or self._is_builtin(requestor)
            or self._is_trusted_vendor(requestor)
            or _is_own_path(requestor, file_to_transform)
        ):
            return
        raise self._traceable_error(
            f'Invalid file_to_transform path "{file_to_transform}": Extensions are not allowed '
            f'to provide file_to_transform paths outside their own codebase! This transform request from '
            f'"{requestor}" must provide a path to one of its own modules, starting with "{requestor}".',
            request.trace,
        )

    def _is_local(self, requestor: str) -> bool:
        return bool(self.local_project_name) and canonical_name(requestor) == canonical_name(self.local_project_name)

    def _is_builtin(self, requestor: str) -> bool:
        return canonical_name(requestor) == BUILTIN_PACKAGE

    def _is_trusted_vendor(self, requestor: str) -> bool:
        vendor = _VENDOR_SEP.split(canonical_name(requestor), maxsplit=1)[0]
        return bool(vendor) and vendor in self.trusted_vendors

    @staticmethod
    def _traceable_error(msg: str, trace: str) -> TransformRequestError:
        return TransformRequestError(f"ModuleTransformConfig: {msg}", trace)

    def _resolve_request(self, request: TransformRequest) -> Callable[[], Awaitable[TransformRequest]]:
        # checks run now so that add() raises in the caller
        self._assert_allowed_to_transform(request)
        transform_module = self._prepare_resolve(request, "transform_module")
        file_to_transform = self._prepare_resolve(request, "file_to_transform")

        async def do_resolve() -> TransformRequest:
            return request.model_copy(
                update={
                    "transform_module": await transform_module(),
                    "file_to_transform": await file_to_transform(),
                }
            )

        return do_resolve

    def _prepare_resolve(self, request: TransformRequest, prop: str) -> Callable[[], Awaitable[str]]:
        request_path: str = getattr(request, prop)
        to_resolve = _from_requestor(request.requestor, request_path)
        resolve_error = self._traceable_error(
            f'could not resolve {prop} "{to_resolve}" from requestor {request.requestor}.',
            request.trace,
        )

        async def resolve() -> str:
            try:
                result = await self.resolver.resolve(to_resolve)
            except Exception as e:
                resolve_error.original_errors = [e]
                raise resolve_error from e
            if result is None:
                raise resolve_error
            return result

        return resolve


def _from_requestor(requestor: str, path: str) -> str:
    """Paths starting with ``.`` are relative to the requesting package."""
    if path.startswith("."):
        return posixpath.normpath(posixpath.join(requestor, path))
    return path


def _is_own_path(requestor: str, path: str) -> bool:
    """True when the first segment of ``path`` names ``requestor``."""
    package = path.split("/", 1)[0]
    return bool(package) and canonical_name(package) == canonical_name(requestor)
