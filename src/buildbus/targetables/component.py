"""Builder for markup components: queues declarative tree operations."""

from __future__ import annotations

import json
import re
from typing import Any

from buildbus.targetables.esmodule import TargetableESModule
from buildbus.transform.types import TransformRequest

MODIFY_TREE = "buildbus.transformers.modify_tree"
LAZY_IMPORT = '{ lazy as reactLazy } from "react"'


class TargetableComponent(TargetableESModule):
    """Edits the markup of a component file.

    ``element`` arguments are matchers: an element name plus the attributes
    it must carry, written as in markup, e.g. ``'Button type="submit"'``.
    ``options`` may include ``"global": True`` to edit every matching
    element instead of the first one.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_components: dict[str, str] = {}

    def add_lazy_import(self, module_path: str, local_name: str = "Component") -> str:
        """Load the default export of ``module_path`` lazily, through ``lazy(() => import(...))``.

        Returns the element name bound to it, for use in markup operations.
        Asking again for the same path returns the same name.
        """
        existing = self.lazy_components.get(module_path)
        if existing is not None:
            return existing

        element_name = "Dynamic" + re.sub(r"[\s\-.,]", "", local_name)
        if element_name in self.bindings or element_name in self.lazy_components.values():
            # markup tags cannot carry the `$` of generated bindings
            element_name = self.unique_identifier(element_name).replace("$", "_")
        lazy = self.add_import(LAZY_IMPORT)
        self.lazy_components[module_path] = element_name
        self.insert_after_source(
            lazy.statement, f"const {element_name} = {lazy.binding}(() => import({json.dumps(module_path)}));\n"
        )
        return element_name

    def append_markup(self, element: str, markup: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("append", element, markup, options)

    def prepend_markup(self, element: str, markup: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("prepend", element, markup, options)

    def insert_after_markup(self, element: str, markup: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("insert_after", element, markup, options)

    def insert_before_markup(
        self, element: str, markup: str, options: dict[str, Any] | None = None
    ) -> TransformRequest:
        return self._add_tree_transform("insert_before", element, markup, options)

    def remove_element(self, element: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("remove", element, None, options)

    def replace_element(self, element: str, markup: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("replace", element, markup, options)

    def surround_element(self, element: str, markup: str, options: dict[str, Any] | None = None) -> TransformRequest:
        return self._add_tree_transform("surround", element, markup, options)

    def set_attributes(
        self, element: str, attributes: dict[str, Any], options: dict[str, Any] | None = None
    ) -> TransformRequest:
        """Set attribute values; a value of ``None`` removes the attribute."""
        return self._add_tree_transform("set_attributes", element, None, {**(options or {}), "attributes": attributes})

    def remove_attributes(
        self, element: str, attributes: list[str], options: dict[str, Any] | None = None
    ) -> TransformRequest:
        return self._add_tree_transform(
            "remove_attributes", element, None, {**(options or {}), "attributes": list(attributes)}
        )

    def append_to_attribute(
        self, element: str, value: str, attribute: str = "class", options: dict[str, Any] | None = None
    ) -> TransformRequest:
        params = {**(options or {}), "value": value, "attribute": attribute}
        return self._add_tree_transform("append_to_attribute", element, None, params)

    def _add_tree_transform(
        self, operation: str, element: str, markup: str | None, options: dict[str, Any] | None
    ) -> TransformRequest:
        params = dict(options or {})
        if markup is not None:
            params["markup"] = markup
        return self.add_transform("tree", MODIFY_TREE, {"element": element, "operation": operation, "params": params})
