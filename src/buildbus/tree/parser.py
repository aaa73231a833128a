"""Parsing markup snippets and documents into ElementTree nodes."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from xml.sax.saxutils import escape

from buildbus.errors import OperationError, TransformError

ROOT_TAG = "__root__"
FRAGMENT_TAG = "__fragment__"

_ELEMENT_PATTERNS = [
    re.compile(r"^<>.+</>$", re.DOTALL),  # fragments: <>...</>
    re.compile(r"<.+/\s*>$", re.DOTALL),  # self-closing: <foo .../>
    re.compile(r"^<([^\s>/]+).+</\1>$", re.DOTALL),  # open and close: <foo ...>...</foo>
]
_OPENING_ELEMENT = re.compile(r"^<.+>$", re.DOTALL)
_FRAGMENT = re.compile(r"^<>(.*)</>$", re.DOTALL)


class SnippetParser:
    """Turns element matchers and markup parameters into nodes.

    Matchers may be written loosely: ``Foo id="x"``, ``<Foo id="x">`` and
    ``<Foo id="x" />`` all normalize to the same self-closing element.
    """

    def __init__(self, filename: str = "<snippet>") -> None:
        self.filename = filename

    def normalize_element(self, snippet: str) -> str:
        formatted = snippet.strip()
        if any(pattern.search(formatted) for pattern in _ELEMENT_PATTERNS):
            return formatted
        # an opening element like `<Foo>` becomes self-closing
        if _OPENING_ELEMENT.match(formatted):
            return f"{formatted[:-1].rstrip()} />"
        return f"<{formatted} />"

    def parse_element(self, snippet: str) -> ET.Element:
        """Parse one element (or one ``<>...</>`` fragment, returned as a fragment node)."""
        fragment = _FRAGMENT.match(snippet.strip())
        if fragment:
            snippet = f"<{FRAGMENT_TAG}>{fragment.group(1)}</{FRAGMENT_TAG}>"
        try:
            return ET.fromstring(snippet)
        except ET.ParseError as exc:
            msg = f"Provided markup does not parse as a valid element: {snippet}: {exc}"
            raise OperationError(msg) from exc

    def parse_nodes(self, markup: str) -> list[ET.Element]:
        element = self.parse_element(self.normalize_element(markup))
        if element.tag == FRAGMENT_TAG:
            return list(element)
        return [element]

    def parse_document(self, source: str) -> ET.Element:
        try:
            return ET.fromstring(f"<{ROOT_TAG}>{source}</{ROOT_TAG}>")
        except ET.ParseError as exc:
            msg = f"{self.filename}: could not parse markup: {exc}"
            raise TransformError(msg) from exc

    def serialize(self, root: ET.Element) -> str:
        parts = [escape(root.text or "")]
        parts.extend(ET.tostring(child, encoding="unicode") for child in root)
        return "".join(parts)
