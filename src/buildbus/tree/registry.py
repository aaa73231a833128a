"""Name to implementation map for tree operations."""

from __future__ import annotations

import pprint
from collections.abc import Mapping
from typing import Any

from buildbus.errors import UnknownOperationError
from buildbus.tree.operation import Operation, OperationContext, validate_request
from buildbus.tree.operations import BUILTIN_OPERATIONS


class OperationRegistry:
    def __init__(self, defined: Mapping[str, type[Operation]] | None = None) -> None:
        self._defined: dict[str, type[Operation]] = dict(BUILTIN_OPERATIONS if defined is None else defined)

    def __contains__(self, name: object) -> bool:
        return name in self._defined

    def names(self) -> list[str]:
        return list(self._defined)

    def define(self, name: str, operation_cls: type[Operation]) -> None:
        if not (isinstance(operation_cls, type) and issubclass(operation_cls, Operation)):
            msg = f"Operation {name!r} must be a subclass of Operation, got {operation_cls!r}"
            raise TypeError(msg)
        self._defined[name] = operation_cls

    def copy(self) -> OperationRegistry:
        return OperationRegistry(self._defined)

    def from_request(self, request: Mapping[str, Any], context: OperationContext) -> Operation:
        validate_request(request)
        name = request["operation"]
        operation_cls = self._defined.get(name)
        if operation_cls is None:
            msg = f'Invalid request {pprint.pformat(dict(request))}: operation name "{name}" unrecognized'
            raise UnknownOperationError(msg)
        return operation_cls(request, context)


default_registry = OperationRegistry()
