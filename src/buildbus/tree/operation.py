"""Base class for tree operations and the shape of their requests."""

from __future__ import annotations

import pprint
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

import jsonschema

from buildbus.errors import OperationError
from buildbus.tree.parser import SnippetParser
from buildbus.tree.path import ElementPath

OPERATION_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["element", "operation"],
    "properties": {
        "element": {"type": "string", "minLength": 1},
        "operation": {"type": "string", "minLength": 1},
        "params": {
            "type": "object",
            "properties": {
                "global": {"type": "boolean"},
                "markup": {"type": "string"},
            },
        },
    },
}


@dataclass
class OperationContext:
    parser: SnippetParser
    filename: str = "<unknown>"


def validate_request(request: Mapping[str, Any], schema: Mapping[str, Any] = OPERATION_REQUEST_SCHEMA) -> None:
    try:
        jsonschema.validate(instance=request, schema=schema)
    except jsonschema.ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        msg = f"Invalid tree operation request {dict(request)!r}: {path}: {e.message}"
        raise OperationError(msg) from e


class Operation:
    """A structural edit applied to every element its matcher accepts.

    Subclasses implement :meth:`run`. They may override :meth:`match` to
    change which elements they apply to, and :meth:`setup` to precompute
    anything derived from their parameters. ``params_schema`` validates the
    operation's own parameters.
    """

    params_schema: ClassVar[dict[str, Any] | None] = None
    requires_markup: ClassVar[bool] = False

    def __init__(self, request: Mapping[str, Any], context: OperationContext) -> None:
        validate_request(request)
        self.request = request
        self.operation: str = request["operation"]
        self.element: str = request["element"]
        self.params: dict[str, Any] = dict(request.get("params") or {})
        if self.params_schema is not None:
            validate_request(self.params, self.params_schema)
        self.is_global = bool(self.params.get("global", False))
        self.parser = context.parser
        self.filename = context.filename

        matcher = self.parser.parse_element(self.parser.normalize_element(self.element))
        self.matcher_name = matcher.tag
        self.required_attributes = dict(matcher.attrib)

        # markup is parsed now so a bad parameter fails before any traversal
        self.markup: list[ET.Element] | None = None
        if "markup" in self.params:
            self.markup = self.parser.parse_nodes(self.params["markup"])
        elif self.requires_markup:
            msg = f"Tree operation:\n{self}\nis invalid: params.markup is required"
            raise OperationError(msg)
        self.setup()

    @property
    def markup_element(self) -> ET.Element:
        """The markup as exactly one element, for operations that cannot take a fragment."""
        if not self.markup or len(self.markup) != 1:
            msg = f"Tree operation:\n{self}\nneeds markup with exactly one element"
            raise OperationError(msg)
        return self.markup[0]

    def setup(self) -> None:
        pass

    def match(self, path: ElementPath) -> bool:
        return self.match_element(path)

    def match_element(self, path: ElementPath) -> bool:
        node = path.node
        if node.tag != self.matcher_name:
            return False
        if len(node.attrib) < len(self.required_attributes):
            return False
        return all(
            name in node.attrib and node.attrib[name] == expected
            for name, expected in self.required_attributes.items()
        )

    def run(self, path: ElementPath) -> None:
        msg = f'{type(self).__name__} has not implemented a run(path) method for the operation "{self.operation}".'
        raise NotImplementedError(msg)

    def __str__(self) -> str:
        args = repr(self.element)
        if self.params:
            args += f", {pprint.pformat(self.params, width=100)}"
        if "\n" in args:
            args += "\n"
        return "\n".join(f"  {line}" for line in f"{self.operation}({args})".split("\n"))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.operation} {self.element!r}>"
