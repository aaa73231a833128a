"""Declarative tree transforms: match elements by name and attributes, then edit them."""

from buildbus.tree.modifier import TreeModifier, TreeModifyResult, modify_tree
from buildbus.tree.operation import OPERATION_REQUEST_SCHEMA, Operation, OperationContext
from buildbus.tree.operations import BUILTIN_OPERATIONS
from buildbus.tree.parser import SnippetParser
from buildbus.tree.path import ElementPath
from buildbus.tree.registry import OperationRegistry, default_registry

__all__ = [
    "BUILTIN_OPERATIONS",
    "OPERATION_REQUEST_SCHEMA",
    "ElementPath",
    "Operation",
    "OperationContext",
    "OperationRegistry",
    "SnippetParser",
    "TreeModifier",
    "TreeModifyResult",
    "default_registry",
    "modify_tree",
]
