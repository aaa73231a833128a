"""A matched element together with the parent it lives in.

ElementTree nodes do not know their parent, so the traversal hands each
operation an :class:`ElementPath` that can splice siblings in and out. Every
node an operation inserts is a fresh copy and is reported to ``on_insert``
so the traversal never matches it.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable


def index_of(parent: ET.Element, node: ET.Element) -> int:
    for index, child in enumerate(parent):
        if child is node:
            return index
    msg = f"<{node.tag}> is no longer a child of <{parent.tag}>"
    raise ValueError(msg)


class ElementPath:
    def __init__(
        self,
        node: ET.Element,
        parent: ET.Element,
        on_insert: Callable[[ET.Element], None] | None = None,
    ) -> None:
        self.node = node
        self.parent = parent
        self.removed = False
        self._on_insert = on_insert

    def __repr__(self) -> str:
        return f"<ElementPath <{self.node.tag}> in <{self.parent.tag}>{' removed' if self.removed else ''}>"

    @property
    def index(self) -> int:
        return index_of(self.parent, self.node)

    def _fresh(self, nodes: ET.Element | Iterable[ET.Element]) -> list[ET.Element]:
        if isinstance(nodes, ET.Element):
            nodes = [nodes]
        fresh = []
        for node in nodes:
            clone = copy.deepcopy(node)
            clone.tail = None
            if self._on_insert is not None:
                self._on_insert(clone)
            fresh.append(clone)
        return fresh

    def _assert_attached(self, action: str) -> None:
        if self.removed:
            msg = f"Cannot {action} <{self.node.tag}>: it was removed"
            raise RuntimeError(msg)

    # --- Children ---

    def append_child(self, nodes: ET.Element | Iterable[ET.Element]) -> None:
        self._assert_attached("append to")
        self.node.extend(self._fresh(nodes))

    def prepend_child(self, nodes: ET.Element | Iterable[ET.Element]) -> None:
        self._assert_attached("prepend to")
        fresh = self._fresh(nodes)
        if not fresh:
            return
        # leading text stays in front of the element, after the new children
        fresh[-1].tail, self.node.text = self.node.text, None
        for offset, child in enumerate(fresh):
            self.node.insert(offset, child)

    # --- Siblings ---

    def insert_before(self, nodes: ET.Element | Iterable[ET.Element]) -> None:
        self._assert_attached("insert before")
        index = self.index
        for offset, sibling in enumerate(self._fresh(nodes)):
            self.parent.insert(index + offset, sibling)

    def insert_after(self, nodes: ET.Element | Iterable[ET.Element]) -> None:
        self._assert_attached("insert after")
        index = self.index
        fresh = self._fresh(nodes)
        if not fresh:
            return
        fresh[-1].tail, self.node.tail = self.node.tail, None
        for offset, sibling in enumerate(fresh, start=1):
            self.parent.insert(index + offset, sibling)

    def replace_with(self, node: ET.Element) -> ET.Element:
        """Swap the current node for a copy of ``node``; the path now points at the copy."""
        self._assert_attached("replace")
        (replacement,) = self._fresh(node)
        self._swap(replacement)
        return replacement

    def surround(self, wrapper: ET.Element) -> ET.Element:
        """Wrap the current node in a copy of ``wrapper``, as its last child."""
        self._assert_attached("surround")
        (outer,) = self._fresh(wrapper)
        original = self.node
        self._swap(outer)
        outer.append(original)
        return outer

    def _swap(self, replacement: ET.Element) -> None:
        index = self.index
        replacement.tail, self.node.tail = self.node.tail, None
        self.parent[index] = replacement
        self.node = replacement

    def remove(self) -> None:
        self._assert_attached("remove")
        index = self.index
        tail = self.node.tail
        if tail:
            if index > 0:
                previous = self.parent[index - 1]
                previous.tail = (previous.tail or "") + tail
            else:
                self.parent.text = (self.parent.text or "") + tail
        self.node.tail = None
        self.parent.remove(self.node)
        self.removed = True
