"""Builder for ES modules: adds deduplicated import statements to a file."""

from __future__ import annotations

from typing import ClassVar

from buildbus.targetables.imports import SingleImportStatement
from buildbus.targetables.module import TargetableModule
from buildbus.transform.types import TransformRequest

WRAP_MODULE = "buildbus.transformers.wrap_module"

ImportStatementOrString = str | SingleImportStatement


class TargetableESModule(TargetableModule):
    increment: ClassVar[int] = 0

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.imports: dict[tuple[str, str], SingleImportStatement] = {}
        self.bindings: dict[str, SingleImportStatement] = {}

    def add_import(self, statement: ImportStatementOrString) -> SingleImportStatement:
        """Import a binding into the file, once.

        Importing the same thing from the same source again returns the
        existing statement. A binding already taken by another import is
        renamed, e.g. ``X`` becomes ``X$1``; use the returned statement's
        ``binding`` to refer to it.
        """
        import_statement = SingleImportStatement.create(statement)
        key = (import_statement.source, import_statement.imported)
        existing = self.imports.get(key)
        if existing is not None:
            return existing

        if import_statement.binding in self.bindings:
            import_statement = import_statement.change_binding(self.unique_identifier(import_statement.binding))

        self.bindings[import_statement.binding] = import_statement
        self.imports[key] = import_statement
        self.prepend_source(import_statement.statement)
        return import_statement

    @classmethod
    def unique_identifier(cls, name: str) -> str:
        TargetableESModule.increment += 1
        return f"{name}${TargetableESModule.increment}"

    def wrap_with_file(self, export_name_or_wrapper: str, wrapper_module: str | None = None) -> TransformRequest:
        """Wrap an export of this module with the default export of ``wrapper_module``.

        With one argument the module's default export is wrapped; with two,
        the named export ``export_name_or_wrapper`` is.
        """
        if wrapper_module is not None:
            options = {"export_name": export_name_or_wrapper, "wrapper_module": wrapper_module, "default_export": False}
        else:
            options = {"wrapper_module": export_name_or_wrapper, "default_export": True}
        return self.add_transform("source", WRAP_MODULE, options)
