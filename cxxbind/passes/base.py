"""Pass framework: visitor base class, ordered registry and runner."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional, Sequence, Union, TYPE_CHECKING

from cxxbind.core.errors import PassError, PipelineStateError
from cxxbind.core.schema import (
    Class,
    Enumeration,
    EnumItem,
    Field,
    Function,
    Library,
    Method,
    Namespace,
    Parameter,
    TranslationUnit,
)

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from cxxbind.core.type_database import TypeDatabase
    from cxxbind.pipeline.config import Options

logger = logging.getLogger(__name__)


class TranslationUnitPass:
    """Graph-mutating pass that visits every declaration of the library.

    Subclasses override the ``visit_*`` hooks they care about. Child lists are
    copied before iteration so a hook may detach the declaration it visits.
    """

    name = "pass"

    def __init__(self):
        self.library: Optional[Library] = None
        self.type_database: Optional["TypeDatabase"] = None

    def bind(self, library: Library, type_database: Optional["TypeDatabase"] = None) -> None:
        self.library = library
        self.type_database = type_database

    def visit_library(self, library: Library) -> None:
        for unit in list(library.translation_units):
            self.visit_translation_unit(unit)

    def visit_translation_unit(self, unit: TranslationUnit) -> None:
        self.visit_namespace(unit)

    def visit_namespace(self, namespace: Namespace) -> None:
        for child in list(namespace.namespaces):
            self.visit_namespace(child)
        for cls in list(namespace.classes):
            self.visit_class(cls)
        for enum in list(namespace.enums):
            self.visit_enum(enum)
        for function in list(namespace.functions):
            self.visit_function(function)

    def visit_class(self, cls: Class) -> None:
        for nested in list(cls.classes):
            self.visit_class(nested)
        for enum in list(cls.enums):
            self.visit_enum(enum)
        for field in list(cls.fields):
            self.visit_field(field)
        for method in list(cls.methods):
            self.visit_method(method)

    def visit_field(self, field: Field) -> None:
        pass

    def visit_method(self, method: Method) -> None:
        for parameter in list(method.parameters):
            self.visit_parameter(parameter)

    def visit_function(self, function: Function) -> None:
        for parameter in list(function.parameters):
            self.visit_parameter(parameter)

    def visit_parameter(self, parameter: Parameter) -> None:
        pass

    def visit_enum(self, enum: Enumeration) -> None:
        for item in list(enum.items):
            self.visit_enum_item(item)

    def visit_enum_item(self, item: EnumItem) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class FunctionPass(TranslationUnitPass):
    """Adapts a plain ``callable(library)`` to the pass interface"""

    def __init__(self, func: Callable[[Library], None], name: Optional[str] = None):
        super().__init__()
        self.func = func
        self.name = name or getattr(func, "__name__", "function_pass")

    def visit_library(self, library: Library) -> None:
        self.func(library)


PassLike = Union[TranslationUnitPass, Callable[[Library], None]]


class PassBuilder:
    """Ordered registry of passes; built-ins are registered before plugin passes"""

    def __init__(self, library: Library, type_database: Optional["TypeDatabase"] = None):
        self.library = library
        self.type_database = type_database
        self._passes: List[TranslationUnitPass] = []
        self._sealed = False

    def add_pass(self, pass_: PassLike) -> TranslationUnitPass:
        """Append a pass; it runs after every pass registered before it"""
        if self._sealed:
            raise PipelineStateError("Passes cannot be added once the transform has started")
        if not isinstance(pass_, TranslationUnitPass):
            if not callable(pass_):
                raise TypeError(f"Expected a pass or a callable, got {type(pass_).__name__}")
            pass_ = FunctionPass(pass_)
        pass_.bind(self.library, self.type_database)
        self._passes.append(pass_)
        logger.debug("Registered pass %s", pass_.name)
        return pass_

    # Built-in passes -----------------------------------------------------

    def resolve_incomplete_decls(self) -> TranslationUnitPass:
        from .resolve import ResolveIncompleteDeclsPass

        return self.add_pass(ResolveIncompleteDeclsPass())

    def clean_invalid_decl_names(self) -> TranslationUnitPass:
        from .names import CleanInvalidDeclNamesPass

        return self.add_pass(CleanInvalidDeclNamesPass())

    def check_duplicate_names(self) -> TranslationUnitPass:
        from .names import CheckDuplicateNamesPass

        return self.add_pass(CheckDuplicateNamesPass())

    def check_module_names(self) -> TranslationUnitPass:
        from .names import CheckModuleNamesPass

        return self.add_pass(CheckModuleNamesPass())

    # Registry view -------------------------------------------------------

    @property
    def passes(self) -> Sequence[TranslationUnitPass]:
        return tuple(self._passes)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def __iter__(self) -> Iterator[TranslationUnitPass]:
        return iter(tuple(self._passes))

    def __len__(self) -> int:
        return len(self._passes)


class Transform:
    """Runs every registered pass exactly once, in registration order"""

    def __init__(self, passes: PassBuilder, options: Optional["Options"] = None):
        self.passes = passes
        self.options = options

    def transform_library(self, library: Library) -> None:
        if self.passes.sealed:
            raise PipelineStateError("The pass list has already been executed")
        self.passes.seal()

        for pass_ in self.passes:
            logger.debug("Running pass %s", pass_.name)
            try:
                pass_.visit_library(library)
            except PassError:
                raise
            except Exception as exc:
                raise PassError(pass_.name, exc) from exc
