"""Passes that make declaration names usable as Python identifiers."""

from __future__ import annotations

import keyword
import logging
import re
from collections import defaultdict
from typing import Dict, List, Set

from cxxbind.core.schema import (
    Class,
    Declaration,
    DeclarationKind,
    Library,
    Namespace,
    Parameter,
    TranslationUnit,
)

from .base import TranslationUnitPass

logger = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r'[^0-9A-Za-z_]')

_KIND_LABELS = {
    DeclarationKind.NAMESPACE: 'Namespace',
    DeclarationKind.CLASS: 'Class',
    DeclarationKind.FIELD: 'Field',
    DeclarationKind.METHOD: 'Method',
    DeclarationKind.PARAMETER: 'Parameter',
    DeclarationKind.ENUM: 'Enum',
    DeclarationKind.ENUM_ITEM: 'Item',
    DeclarationKind.FUNCTION: 'Function',
}


def is_valid_name(name: str) -> bool:
    """True when ``name`` can be emitted as a Python identifier"""
    return bool(name) and name.isascii() and name.isidentifier() and not keyword.iskeyword(name)


def sanitize_name(name: str) -> str:
    """Best-effort identifier from a native name; empty when nothing usable is left"""
    text = _INVALID_CHARS.sub('_', name)
    if not text.strip('_'):
        return ''
    if text[0].isdigit():
        text = '_' + text
    if keyword.iskeyword(text):
        text += '_'
    return text


def _kind_label(decl: Declaration) -> str:
    if isinstance(decl, Class):
        if decl.is_union:
            return 'Union'
        if decl.is_struct:
            return 'Struct'
    return _KIND_LABELS.get(decl.kind, 'Decl')


class CleanInvalidDeclNamesPass(TranslationUnitPass):
    """Replace names that are not valid identifiers with deterministic ones.

    Anonymous declarations become ``<Scope>_Anonymous<Kind><ordinal>`` where
    the ordinal counts anonymous declarations of that kind within the scope in
    traversal order, unnamed parameters become ``arg<index>`` and everything
    else is sanitised character by character. The same input always yields
    the same names.
    """

    name = "clean_invalid_decl_names"

    def __init__(self):
        super().__init__()
        self.renamed: int = 0

    def visit_library(self, library: Library) -> None:
        for unit in library.translation_units:
            self._clean_scope(unit)
        logger.debug("Renamed %d declaration(s) with invalid names", self.renamed)

    def _clean_scope(self, scope: Declaration) -> None:
        children = list(scope.children())
        taken: Set[str] = {child.name for child in children if is_valid_name(child.name)}
        ordinals: Dict[str, int] = defaultdict(int)

        for child in children:
            if not is_valid_name(child.name):
                new_name = self._derive_name(scope, child, ordinals)
                new_name = self._unique(new_name, taken)
                logger.debug("Renaming %s %r to %r", child.kind.value, child.name, new_name)
                child.rename(new_name)
                taken.add(new_name)
                self.renamed += 1
            self._clean_scope(child)

    @staticmethod
    def _derive_name(scope: Declaration, decl: Declaration, ordinals: Dict[str, int]) -> str:
        if isinstance(decl, Parameter) and not decl.name:
            return f"arg{decl.index}"

        sanitized = sanitize_name(decl.name)
        if sanitized:
            return sanitized

        label = _kind_label(decl)
        ordinal = ordinals[label]
        ordinals[label] += 1
        if isinstance(scope, TranslationUnit) or not scope.name:
            return f"Anonymous{label}{ordinal}"
        return f"{scope.name}_Anonymous{label}{ordinal}"

    @staticmethod
    def _unique(name: str, taken: Set[str]) -> str:
        if name not in taken:
            return name
        suffix = 1
        while f"{name}_{suffix}" in taken:
            suffix += 1
        return f"{name}_{suffix}"


class CheckDuplicateNamesPass(TranslationUnitPass):
    """Give overloaded functions and methods distinct names (``f``, ``f_1``, ...)"""

    name = "check_duplicate_names"

    def visit_namespace(self, namespace: Namespace) -> None:
        self._dedupe(namespace.functions, namespace)
        super().visit_namespace(namespace)

    def visit_class(self, cls: Class) -> None:
        self._dedupe(cls.methods, cls)
        super().visit_class(cls)

    @staticmethod
    def _dedupe(declarations: List[Declaration], scope: Declaration) -> None:
        taken = {child.name for child in scope.children()}
        counts: Dict[str, int] = defaultdict(int)
        for decl in declarations:
            counts[decl.name] += 1
            if counts[decl.name] == 1:
                continue
            suffix = counts[decl.name] - 1
            candidate = f"{decl.name}_{suffix}"
            while candidate in taken:
                suffix += 1
                candidate = f"{decl.name}_{suffix}"
            logger.debug("Renaming overload %s to %s", decl.name, candidate)
            taken.add(candidate)
            decl.rename(candidate)


class CheckModuleNamesPass(TranslationUnitPass):
    """Make names that share the generated module unique across the library.

    Classes, enums and functions of every namespace and header land in one
    flat module. In DefinitionOrder, the first declaration keeps its name.
    A later one with the same name is renamed after its scope (``b_Foo`` for
    ``b::Foo``) and then gets a ``_<n>`` suffix if that name is taken too.
    """

    name = "check_module_names"

    # Names the ctypes module defines itself
    reserved = frozenset({"ctypes", "enum"})

    def visit_library(self, library: Library) -> None:
        taken: Set[str] = set(self.reserved)
        for decl in sorted(self._module_level(library), key=lambda d: d.definition_order):
            if decl.name not in taken:
                taken.add(decl.name)
                continue
            candidate = sanitize_name(library.qualified_name(decl).replace("::", "_"))
            new_name = CleanInvalidDeclNamesPass._unique(candidate or decl.name, taken)
            logger.debug("Renaming %s %s to %s", decl.kind.value, library.qualified_name(decl), new_name)
            decl.rename(new_name)
            taken.add(new_name)

    @staticmethod
    def _module_level(library: Library) -> List[Declaration]:
        result = []
        for decl in library.walk():
            if decl.ignored or not decl.name:
                continue
            if isinstance(decl, Class) and decl.is_incomplete:
                continue
            if decl.kind in (DeclarationKind.CLASS, DeclarationKind.ENUM, DeclarationKind.FUNCTION):
                result.append(decl)
        return result
