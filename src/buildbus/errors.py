"""Exception types raised by the hook bus and the transform machinery."""

from __future__ import annotations


class BuildBusError(Exception):
    """Base class for all buildbus errors."""


class HookDeclarationError(BuildBusError, TypeError):
    """A package declared something that is not a hook."""


class NotYetDeclaredError(BuildBusError, LookupError):
    """Hooks were requested from a package that has not run its declare phase."""


class ExternalInvokeError(BuildBusError):
    """A package tried to invoke a hook it does not own."""


class ImportStatementError(BuildBusError, ValueError):
    """An import statement could not be parsed or does not bind exactly one name."""

    def __init__(self, statement: object, details: str | None = None) -> None:
        msg = (
            f"Bad import statement: {statement!r}. SingleImportStatement must be an ES module "
            "static import statement which imports exactly one binding."
        )
        if details:
            msg = f"{msg}\n\nDetails: {details}"
        super().__init__(msg)
        self.statement = statement
        self.details = details


class OperationError(BuildBusError, ValueError):
    """A tree operation request is malformed or its parameters do not parse."""


class UnknownOperationError(OperationError):
    """A tree operation request names an operation nobody defined."""


class TransformRequestError(BuildBusError):
    """A transform request was rejected or could not be resolved.

    ``trace`` is the call stack captured when the request was created, so that
    failures surfacing later (during asynchronous resolution) still point at
    the code that queued the request.
    """

    def __init__(self, message: str, trace: str = "") -> None:
        super().__init__(message)
        self.trace = trace
        self.original_errors: list[BaseException] = []

    def __str__(self) -> str:
        text = super().__str__()
        if self.trace:
            text = f"{text}\n{self.trace}"
        for err in self.original_errors:
            text = f"{text}\n\nCaused by: {type(err).__name__}: {err}"
        return text


class TransformError(BuildBusError):
    """A transformer failed while rewriting a module."""
