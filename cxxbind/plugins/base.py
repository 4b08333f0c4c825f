"""Library transform interface and the graph helpers passed to its hooks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator, List, Optional

from cxxbind.core.schema import Class, Enumeration, Function, Library, Namespace

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from cxxbind.passes.base import PassBuilder

logger = logging.getLogger(__name__)


class LibraryHelpers:
    """Handle on the declaration graph given to ``preprocess``/``postprocess``."""

    def __init__(self, library: Library):
        self.library = library

    # Lookup -------------------------------------------------------------

    def find_classes(self, name: str) -> Iterator[Class]:
        """Classes whose plain or qualified name is ``name``"""
        for cls in self.library.classes():
            if cls.name == name or self.library.qualified_name(cls) == name:
                yield cls

    def find_class(self, name: str) -> Optional[Class]:
        """First complete class called ``name``, else the first match"""
        matches = list(self.find_classes(name))
        for cls in matches:
            if not cls.is_incomplete:
                return cls
        return matches[0] if matches else None

    def find_namespace(self, name: str) -> Optional[Namespace]:
        for namespace in self.library.namespaces():
            if namespace.name and self.library.qualified_name(namespace) == name:
                return namespace
        return None

    def find_function(self, name: str) -> Optional[Function]:
        for namespace in self.library.namespaces():
            for function in namespace.functions:
                if function.name == name or self.library.qualified_name(function) == name:
                    return function
        return None

    def find_enums(self) -> Iterator[Enumeration]:
        for decl in self.library.walk():
            if isinstance(decl, Enumeration):
                yield decl

    # Mutation -----------------------------------------------------------

    def ignore_class_with_name(self, name: str) -> int:
        """Exclude every class called ``name`` from emission"""
        count = 0
        for cls in self.find_classes(name):
            cls.ignored = True
            count += 1
        return count

    def ignore_function_with_name(self, name: str) -> int:
        count = 0
        for namespace in self.library.namespaces():
            for function in namespace.functions:
                if function.name == name:
                    function.ignored = True
                    count += 1
        return count

    def set_class_as_value_type(self, name: str) -> bool:
        cls = self.find_class(name)
        if cls is None:
            return False
        cls.is_value_type = True
        return True

    def set_class_as_opaque(self, name: str) -> bool:
        """Emit ``name`` without a memory layout, as a handle type"""
        cls = self.find_class(name)
        if cls is None:
            return False
        cls.metadata["opaque"] = True
        return True

    def rename_class(self, name: str, new_name: str) -> bool:
        cls = self.find_class(name)
        if cls is None:
            return False
        cls.rename(new_name)
        return True

    def remove_class(self, name: str) -> int:
        """Detach every class called ``name`` from the graph"""
        removed: List[Class] = list(self.find_classes(name))
        for cls in removed:
            self.library.remove(cls)
        return len(removed)

    def set_name_of_enum_with_matching_item(self, item_name: str, new_name: str) -> bool:
        """Name the (usually anonymous) enum that declares ``item_name``"""
        for enum in self.find_enums():
            if any(item.name == item_name for item in enum.items):
                enum.rename(new_name)
                return True
        return False


class LibraryTransform:
    """Hook interface for pipeline extensions.

    Every hook is optional; the defaults do nothing. Each hook is called
    exactly once per run, in this order: ``setup_headers``, ``preprocess``,
    ``setup_passes``, ``postprocess``.
    """

    name = "transform"

    def setup_headers(self, headers: List[str]) -> None:
        """Append headers that are parsed before the command-line headers."""

    def preprocess(self, helpers: LibraryHelpers) -> None:
        """Run after parsing, before any pass."""

    def setup_passes(self, passes: "PassBuilder") -> None:
        """Append passes that run after the built-in ones."""

    def postprocess(self, helpers: LibraryHelpers) -> None:
        """Run after every pass, before the graph is handed to the emitter."""


class NullTransform(LibraryTransform):
    """Used when no transform is configured"""

    name = "none"
