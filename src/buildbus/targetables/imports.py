"""A static ES module import statement that binds exactly one name.

Accepted forms, with or without the leading ``import`` and trailing ``;``::

    X from "m"                  # default import
    * as X from "m"             # namespace import
    { a } from "m"              # named import
    { a as b } from "m"         # aliased named import
    { "a-b" as c } from "m"     # string import name

``str(statement)`` is the local binding, so statements can be interpolated
directly into generated code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from buildbus.errors import ImportStatementError

_IDENT = r"[A-Za-z_$][\w$]*"
_IDENT_RE = re.compile(_IDENT)
_IDENT_ONLY = re.compile(rf"^{_IDENT}$")
_WS = re.compile(r"\s*")
_COMMA = re.compile(r"\s*(?:,\s*)?")
_NAMESPACE = re.compile(rf"\*\s*as\s+({_IDENT})")
_NAMED = re.compile(rf"""(?P<imported>{_IDENT}|"[^"]*"|'[^']*')(?:\s+as\s+(?P<local>{_IDENT}))?""")
_STATEMENT = re.compile(
    r"""^import\s+(?P<clause>.*?)\s*\bfrom\s*(?P<quote>["'])(?P<source>.*?)(?P=quote)\s*;\s*$""",
    re.DOTALL,
)


@dataclass(frozen=True)
class _Specifier:
    kind: Literal["default", "namespace", "named"]
    imported: str
    local: str
    local_span: tuple[int, int]
    # set for `{ a }` without an alias: where ` as <binding>` must go
    alias_insert_at: int | None = None


def _parse_clause(statement: str, start: int, end: int) -> list[_Specifier]:
    specs: list[_Specifier] = []
    pos = start

    default = _IDENT_RE.match(statement, pos, end)
    if default:
        specs.append(_Specifier("default", "default", default.group(), default.span()))
        pos = default.end()
        comma = _COMMA.match(statement, pos, end)
        if "," not in comma.group():
            pos = _WS.match(statement, comma.end(), end).end()
            if pos != end:
                msg = f"Unexpected {statement[pos:end]!r} after default import"
                raise ValueError(msg)
            return specs
        pos = comma.end()

    namespace = _NAMESPACE.match(statement, pos, end)
    if namespace:
        specs.append(_Specifier("namespace", "*", namespace.group(1), namespace.span(1)))
        pos = namespace.end()
    elif pos < end and statement[pos] == "{":
        close = statement.find("}", pos, end)
        if close == -1:
            msg = "Unclosed '{' in import clause"
            raise ValueError(msg)
        inner = pos + 1
        while True:
            inner = _WS.match(statement, inner, close).end()
            if inner >= close:
                break
            named = _NAMED.match(statement, inner, close)
            if not named:
                msg = f"Unexpected {statement[inner:close]!r} in named imports"
                raise ValueError(msg)
            imported = named.group("imported")
            quoted = imported[0] in "\"'"
            if quoted:
                imported = imported[1:-1]
            if named.group("local"):
                specs.append(_Specifier("named", imported, named.group("local"), named.span("local")))
            elif quoted:
                msg = f"String import name {imported!r} needs an alias"
                raise ValueError(msg)
            else:
                specs.append(_Specifier("named", imported, imported, named.span("imported"), named.end("imported")))
            inner = _WS.match(statement, named.end(), close).end()
            if inner < close:
                if statement[inner] != ",":
                    msg = f"Expected ',' in named imports, found {statement[inner:close]!r}"
                    raise ValueError(msg)
                inner += 1
        pos = close + 1
    else:
        msg = f"Unexpected {statement[pos:end]!r} in import clause"
        raise ValueError(msg)

    pos = _WS.match(statement, pos, end).end()
    if pos != end:
        msg = f"Unexpected {statement[pos:end]!r} in import clause"
        raise ValueError(msg)
    return specs


class SingleImportStatement:
    def __init__(self, statement: str) -> None:
        if not isinstance(statement, str):
            raise ImportStatementError(statement)
        self.original_statement = statement
        self.statement = self.normalize_statement(statement)

        match = _STATEMENT.match(self.statement)
        if not match:
            raise ImportStatementError(statement, "Statement is not a static import with a 'from' clause")
        try:
            specifiers = _parse_clause(self.statement, match.start("clause"), match.end("clause"))
        except ValueError as exc:
            raise ImportStatementError(statement, str(exc)) from exc
        if len(specifiers) != 1:
            bindings = [spec.local for spec in specifiers]
            raise ImportStatementError(
                statement,
                f"Import {len(bindings)} bindings: {', '.join(bindings)}. Imports for these targets must have "
                "exactly one binding, which will be used in generated code.",
            )

        self._specifier = specifiers[0]
        self.binding = self._specifier.local
        self.source = match.group("source")
        self.imported = self._specifier.imported

    @classmethod
    def create(cls, statement: str | SingleImportStatement) -> SingleImportStatement:
        return statement if isinstance(statement, SingleImportStatement) else cls(statement)

    @staticmethod
    def normalize_statement(statement: str) -> str:
        statement = statement.strip()
        # semicolons because line breaks are no guarantee once modules are concatenated
        if not statement.endswith(";"):
            statement += ";"
        if not re.match(r"import\b", statement):
            statement = f"import {statement}"
        return statement + "\n"

    def change_binding(self, new_binding: str) -> SingleImportStatement:
        """Return a copy of this statement importing the same thing under ``new_binding``."""
        if not _IDENT_ONLY.match(new_binding):
            raise ImportStatementError(self.original_statement, f"Invalid binding name {new_binding!r}")
        spec = self._specifier
        if spec.alias_insert_at is not None:
            # `{ a }` becomes `{ a as new }`
            start = end = spec.alias_insert_at
            replacement = f" as {new_binding}"
        else:
            start, end = spec.local_span
            replacement = new_binding
        return SingleImportStatement(self.statement[:start] + replacement + self.statement[end:])

    def __str__(self) -> str:
        return self.binding

    def __repr__(self) -> str:
        return f"<SingleImportStatement {self.statement.strip()!r}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleImportStatement):
            return NotImplemented
        return self.statement == other.statement

    def __hash__(self) -> int:
        return hash(self.statement)
