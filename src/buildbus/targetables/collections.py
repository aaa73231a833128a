"""Builders whose file exports a collection of imported bindings.

Contributions from many packages are accumulated and consolidated into one
``export_collection`` request at flush time, so N additions cost one rewrite.
"""

from __future__ import annotations

from buildbus.targetables.esmodule import ImportStatementOrString, TargetableESModule
from buildbus.targetables.imports import SingleImportStatement
from buildbus.transform.types import TransformRequest

EXPORT_COLLECTION = "buildbus.transformers.export_collection"


class TargetableESModuleArray(TargetableESModule):
    """The file's default export becomes an array of the imported bindings, in order."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.ordered_bindings: list[str] = []

    def add_import(self, statement: ImportStatementOrString, append: bool = True) -> SingleImportStatement:
        generated = super().add_import(statement)
        if generated.binding not in self.ordered_bindings:
            if append:
                self.ordered_bindings.append(generated.binding)
            else:
                self.ordered_bindings.insert(0, generated.binding)
        return generated

    def add(self, *statements: ImportStatementOrString) -> None:
        self.push(*statements)

    def push(self, *statements: ImportStatementOrString) -> None:
        for statement in statements:
            self.add_import(statement, append=True)

    def unshift(self, *statements: ImportStatementOrString) -> None:
        for statement in statements:
            self.add_import(statement, append=False)

    def flush(self) -> list[TransformRequest]:
        if self.bindings:
            # runs before the import splices, which insert at offset 0 and so land above it
            self.queued_transforms.insert(
                0,
                self._create_transform(
                    "source", EXPORT_COLLECTION, {"type": "array", "bindings": list(self.ordered_bindings)}
                ),
            )
        return super().flush()


class TargetableESModuleObject(TargetableESModule):
    """The file's default export becomes an object keyed by binding.

    Two imports competing for the same key are not renamed: the second one is
    rejected and reported when the module is transformed.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.errors: list[str] = []

    def add_import(self, statement: ImportStatementOrString) -> TargetableESModuleObject:
        import_statement = SingleImportStatement.create(statement)
        already_bound = self.bindings.get(import_statement.binding)
        if already_bound is not None and (already_bound.source, already_bound.imported) != (
            import_statement.source,
            import_statement.imported,
        ):
            self.errors.append(
                f'Cannot export "{import_statement.imported}" as "{import_statement.binding}" from '
                f'"{import_statement.source}". Export "{import_statement.binding}" was already assigned to '
                f'"{already_bound.imported}" from "{already_bound.source}".'
            )
        else:
            super().add_import(import_statement)
        return self

    def add(self, *statements: ImportStatementOrString) -> TargetableESModuleObject:
        for statement in statements:
            self.add_import(statement)
        return self

    def flush(self) -> list[TransformRequest]:
        if self.bindings or self.errors:
            self.queued_transforms.insert(
                0,
                self._create_transform(
                    "source",
                    EXPORT_COLLECTION,
                    {"type": "object", "bindings": list(self.bindings), "errors": list(self.errors)},
                ),
            )
        return super().flush()


class TargetableLazyModuleObject(TargetableESModule):
    """The file's default export becomes an object of loaders, ``{Name: () => import("source")}``.

    Entries are never imported statically, so only default imports can be
    added; anything else is reported as an error at transform time.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.lazy_entries: dict[str, str] = {}
        self.errors: list[str] = []

    def add_import(self, statement: ImportStatementOrString) -> TargetableLazyModuleObject:
        import_statement = SingleImportStatement.create(statement)
        if import_statement.imported != "default":
            self.errors.append(
                f'Only default exports can be loaded lazily; "{import_statement.imported}" from '
                f'"{import_statement.source}" was not added.'
            )
            return self
        already_bound = self.lazy_entries.get(import_statement.binding)
        if already_bound is not None and already_bound != import_statement.source:
            self.errors.append(
                f'Cannot export "default" as "{import_statement.binding}" from "{import_statement.source}". '
                f'Export "{import_statement.binding}" was already assigned to "default" from "{already_bound}".'
            )
        else:
            self.lazy_entries[import_statement.binding] = import_statement.source
        return self

    def add(self, *statements: ImportStatementOrString) -> TargetableLazyModuleObject:
        for statement in statements:
            self.add_import(statement)
        return self

    def flush(self) -> list[TransformRequest]:
        if self.lazy_entries or self.errors:
            entries = [{"binding": binding, "source": source} for binding, source in self.lazy_entries.items()]
            self.queued_transforms.insert(
                0,
                self._create_transform(
                    "source", EXPORT_COLLECTION, {"type": "lazy", "entries": entries, "errors": list(self.errors)}
                ),
            )
        return super().flush()
