"""Applying queued tree operations to a markup document in one traversal."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from buildbus.tree.operation import Operation, OperationContext
from buildbus.tree.parser import SnippetParser
from buildbus.tree.path import ElementPath, index_of
from buildbus.tree.registry import OperationRegistry, default_registry

logger = logging.getLogger(__name__)


def _options_of(request: Any) -> Mapping[str, Any]:
    """Accept bare operation options, ``{"options": {...}}`` wrappers or transform requests."""
    options = getattr(request, "options", None)
    if isinstance(options, Mapping):
        return options
    if isinstance(request, Mapping) and "operation" not in request and isinstance(request.get("options"), Mapping):
        return request["options"]
    return request


class TreeModifier:
    """Runs every pending operation against each element of a tree, top down.

    A non-global operation retires after its first match. A global one keeps
    matching, but never twice against the same node, even after the node
    was replaced. Elements inserted by operations are descended into but never
    matched, which keeps global operations from feeding on their own output.
    """

    def __init__(
        self,
        requests: Iterable[Any],
        filename: str = "<unknown>",
        registry: OperationRegistry | None = None,
        parser: SnippetParser | None = None,
    ) -> None:
        self.filename = filename
        self.parser = parser if parser is not None else SnippetParser(filename)
        registry = registry if registry is not None else default_registry
        context = OperationContext(self.parser, filename)
        self.operations: dict[Operation, None] = dict.fromkeys(
            registry.from_request(_options_of(request), context) for request in requests
        )
        self._unmatched: dict[Operation, None] = dict(self.operations)
        self._visited: dict[int, tuple[ET.Element, set[Operation]]] = {}
        self._generated: dict[int, ET.Element] = {}

    def modify(self, root: ET.Element) -> ET.Element:
        self._walk(root)
        return root

    def unmatched_warnings(self) -> list[str]:
        return [
            f"Tree operation:\n{operation}\nnever found an element matching '{operation.element}'"
            for operation in self._unmatched
        ]

    def _mark_generated(self, node: ET.Element) -> None:
        for descendant in node.iter():
            self._generated[id(descendant)] = descendant

    def _walk(self, parent: ET.Element) -> None:
        index = 0
        while index < len(parent) and self.operations:
            node = parent[index]
            previous = parent[index - 1] if index > 0 else None
            path = ElementPath(node, parent, self._mark_generated)
            if id(node) not in self._generated:
                self._run_matching_operations(path)
            if path.removed:
                index = 0 if previous is None else index_of(parent, previous) + 1
                continue
            self._walk(path.node)
            index = index_of(parent, path.node) + 1

    def _run_matching_operations(self, path: ElementPath) -> None:
        original = path.node
        _, already_run = self._visited.get(id(original), (original, set()))
        for operation in list(self.operations):
            if operation in already_run or not operation.match(path):
                continue
            logger.debug("%s: running %r on <%s>", self.filename, operation, original.tag)
            self._unmatched.pop(operation, None)
            operation.run(path)
            already_run.add(operation)
            if not operation.is_global:
                del self.operations[operation]
            self._visited[id(original)] = (original, already_run)
            if path.removed:
                break
            if path.node is not original:
                self._visited[id(path.node)] = (path.node, already_run)
                break


@dataclass
class TreeModifyResult:
    code: str
    warnings: list[str] = field(default_factory=list)


def modify_tree(
    source: str,
    requests: Iterable[Any],
    filename: str = "<unknown>",
    registry: OperationRegistry | None = None,
) -> TreeModifyResult:
    """Parse ``source``, apply the operation requests, and serialize the result."""
    parser = SnippetParser(filename)
    modifier = TreeModifier(requests, filename, registry=registry, parser=parser)
    root = parser.parse_document(source)
    modifier.modify(root)
    warnings = modifier.unmatched_warnings()
    for warning in warnings:
        logger.warning("%s: %s", filename, warning)
    return TreeModifyResult(parser.serialize(root), warnings)
