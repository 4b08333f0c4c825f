"""Restores the original declaration order after graph construction."""

from __future__ import annotations

from typing import List

from cxxbind.core.schema import Class, Library, Namespace


def _definition_order(cls: Class) -> int:
    return cls.definition_order


def _sort_classes(classes: List[Class]) -> None:
    classes.sort(key=_definition_order)
    for cls in classes:
        _sort_classes(cls.classes)


def sort_declarations(namespace: Namespace) -> None:
    """Sort the classes of ``namespace`` and every nested scope by DefinitionOrder.

    Only class sequences are reordered; namespaces, enums and functions keep
    the order they were added in.
    """
    _sort_classes(namespace.classes)
    for child in namespace.namespaces:
        sort_declarations(child)


def sort_library(library: Library) -> None:
    for unit in library.translation_units:
        sort_declarations(unit)
