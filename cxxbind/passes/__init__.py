"""Graph transformation passes."""

from .base import FunctionPass, PassBuilder, Transform, TranslationUnitPass
from .names import (
    CheckDuplicateNamesPass,
    CheckModuleNamesPass,
    CleanInvalidDeclNamesPass,
    is_valid_name,
    sanitize_name,
)
from .resolve import ResolveIncompleteDeclsPass
from .sort import sort_declarations, sort_library

__all__ = [
    "FunctionPass",
    "PassBuilder",
    "Transform",
    "TranslationUnitPass",
    "CheckDuplicateNamesPass",
    "CheckModuleNamesPass",
    "CleanInvalidDeclNamesPass",
    "ResolveIncompleteDeclsPass",
    "is_valid_name",
    "sanitize_name",
    "sort_declarations",
    "sort_library",
]
