"""The built-in tree operations."""

from __future__ import annotations

import json
from typing import Any

from buildbus.tree.operation import Operation
from buildbus.tree.path import ElementPath


class AppendOperation(Operation):
    requires_markup = True

    def run(self, path: ElementPath) -> None:
        path.append_child(self.markup)


class PrependOperation(Operation):
    requires_markup = True

    def run(self, path: ElementPath) -> None:
        path.prepend_child(self.markup)


class InsertBeforeOperation(Operation):
    requires_markup = True

    def run(self, path: ElementPath) -> None:
        path.insert_before(self.markup)


class InsertAfterOperation(Operation):
    requires_markup = True

    def run(self, path: ElementPath) -> None:
        path.insert_after(self.markup)


class RemoveOperation(Operation):
    def run(self, path: ElementPath) -> None:
        path.remove()


class ReplaceOperation(Operation):
    requires_markup = True

    def setup(self) -> None:
        self.replacement = self.markup_element
        self.seen: set[int] = set()

    def run(self, path: ElementPath) -> None:
        if id(path.node) in self.seen:
            return
        new_node = path.replace_with(self.replacement)
        self.seen.add(id(new_node))


class SurroundOperation(Operation):
    """Wraps the element in the markup; the element becomes the wrapper's last child."""

    requires_markup = True

    def setup(self) -> None:
        self.wrapper = self.markup_element

    def run(self, path: ElementPath) -> None:
        path.surround(self.wrapper)


def _attribute_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


class SetAttributesOperation(Operation):
    """Sets attributes; an attribute given ``None`` is removed."""

    params_schema = {
        "type": "object",
        "required": ["attributes"],
        "properties": {"attributes": {"type": "object"}},
    }

    def setup(self) -> None:
        self.attributes = {
            name: None if value is None else _attribute_text(value)
            for name, value in self.params["attributes"].items()
        }

    def run(self, path: ElementPath) -> None:
        for name, value in self.attributes.items():
            if value is None:
                path.node.attrib.pop(name, None)
            else:
                path.node.set(name, value)


class RemoveAttributesOperation(Operation):
    params_schema = {
        "type": "object",
        "required": ["attributes"],
        "properties": {"attributes": {"type": "array", "items": {"type": "string"}}},
    }

    def setup(self) -> None:
        self.names = set(self.params["attributes"])

    def run(self, path: ElementPath) -> None:
        for name in list(path.node.attrib):
            if name in self.names:
                del path.node.attrib[name]


class AppendToAttributeOperation(Operation):
    """Adds to an attribute's existing value, e.g. one more CSS class."""

    params_schema = {
        "type": "object",
        "required": ["value"],
        "properties": {
            "value": {"type": "string", "minLength": 1},
            "attribute": {"type": "string", "minLength": 1},
            "separator": {"type": "string"},
        },
    }

    def setup(self) -> None:
        self.attribute = self.params.get("attribute", "class")
        self.value = self.params["value"]
        self.separator = self.params.get("separator", " ")

    def run(self, path: ElementPath) -> None:
        existing = path.node.get(self.attribute)
        path.node.set(self.attribute, f"{existing}{self.separator}{self.value}" if existing else self.value)


BUILTIN_OPERATIONS: dict[str, type[Operation]] = {
    "append": AppendOperation,
    "prepend": PrependOperation,
    "replace": ReplaceOperation,
    "surround": SurroundOperation,
    "remove": RemoveOperation,
    "insert_before": InsertBeforeOperation,
    "insert_after": InsertAfterOperation,
    "set_attributes": SetAttributesOperation,
    "remove_attributes": RemoveAttributesOperation,
    "append_to_attribute": AppendToAttributeOperation,
}
