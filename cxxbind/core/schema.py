"""
Declaration graph for the binding pipeline.

The graph is owned by a single ``Library`` which acts as an arena: every
declaration gets a stable integer id when it is created and cross references
(parents, forward declaration links) are stored as ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar


class DeclarationKind(Enum):
    """Kinds of declarations held in the graph"""
    TRANSLATION_UNIT = "translation_unit"
    NAMESPACE = "namespace"
    CLASS = "class"
    FIELD = "field"
    METHOD = "method"
    PARAMETER = "parameter"
    ENUM = "enum"
    ENUM_ITEM = "enum_item"
    FUNCTION = "function"


class AccessSpecifier(Enum):
    """Member visibility levels"""
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


@dataclass
class SourceLocation:
    """Location in a header file"""
    file_path: str
    line: int
    column: int


@dataclass(eq=False)
class Declaration:
    """Base node for everything stored in the library arena"""
    id: int = -1
    name: str = ""
    kind: DeclarationKind = DeclarationKind.NAMESPACE
    definition_order: int = -1
    parent_id: Optional[int] = None
    location: Optional[SourceLocation] = None
    comment: str = ""
    ignored: bool = False
    original_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def rename(self, new_name: str) -> None:
        """Change the name, remembering the first name the parser saw"""
        if new_name == self.name:
            return
        if self.original_name is None:
            self.original_name = self.name
        self.name = new_name

    def children(self) -> Iterator["Declaration"]:
        """Direct child declarations, in storage order"""
        return iter(())

    def add_child(self, child: "Declaration") -> None:
        raise TypeError(f"{self.kind.value} declarations cannot contain {child.kind.value}")

    def remove_child(self, child: "Declaration") -> None:
        raise TypeError(f"{self.kind.value} declarations have no children")

    def to_dict(self) -> Dict[str, Any]:
        """Convert declaration to a plain dictionary"""
        result = {}
        for field_info in fields(self):
            value = getattr(self, field_info.name)

            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, SourceLocation):
                value = {
                    'file_path': value.file_path,
                    'line': value.line,
                    'column': value.column,
                }
            elif isinstance(value, list) and value and isinstance(value[0], Declaration):
                value = [child.to_dict() for child in value]

            if value is not None:
                result[field_info.name] = value

        return result


@dataclass(eq=False)
class Parameter(Declaration):
    """Function or method parameter"""
    type: str = ""
    index: int = 0

    def __post_init__(self):
        self.kind = DeclarationKind.PARAMETER


@dataclass(eq=False)
class _Callable(Declaration):
    return_type: str = "void"
    parameters: List[Parameter] = field(default_factory=list)
    is_variadic: bool = False

    def children(self) -> Iterator[Declaration]:
        return iter(list(self.parameters))

    def add_child(self, child: Declaration) -> None:
        if not isinstance(child, Parameter):
            super().add_child(child)
        self.parameters.append(child)

    def remove_child(self, child: Declaration) -> None:
        self.parameters.remove(child)


@dataclass(eq=False)
class Function(_Callable):
    """Free function declaration"""

    def __post_init__(self):
        self.kind = DeclarationKind.FUNCTION


@dataclass(eq=False)
class Method(_Callable):
    """Member function declaration"""
    access: AccessSpecifier = AccessSpecifier.PUBLIC
    is_static: bool = False
    is_virtual: bool = False
    is_const: bool = False
    is_constructor: bool = False
    is_destructor: bool = False

    def __post_init__(self):
        self.kind = DeclarationKind.METHOD


@dataclass(eq=False)
class Field(Declaration):
    """Data member of a class"""
    type: str = ""
    access: AccessSpecifier = AccessSpecifier.PUBLIC

    def __post_init__(self):
        self.kind = DeclarationKind.FIELD


@dataclass(eq=False)
class EnumItem(Declaration):
    """Enumerator"""
    value: Optional[int] = None
    expression: str = ""

    def __post_init__(self):
        self.kind = DeclarationKind.ENUM_ITEM


@dataclass(eq=False)
class Enumeration(Declaration):
    """Enum declaration"""
    items: List[EnumItem] = field(default_factory=list)
    underlying_type: str = "int"
    is_scoped: bool = False

    def __post_init__(self):
        self.kind = DeclarationKind.ENUM

    def children(self) -> Iterator[Declaration]:
        return iter(list(self.items))

    def add_child(self, child: Declaration) -> None:
        if not isinstance(child, EnumItem):
            super().add_child(child)
        self.items.append(child)

    def remove_child(self, child: Declaration) -> None:
        self.items.remove(child)


@dataclass(eq=False)
class Class(Declaration):
    """Class, struct or union declaration"""
    is_incomplete: bool = False
    is_struct: bool = False
    is_union: bool = False
    is_value_type: bool = False
    bases: List[str] = field(default_factory=list)
    fields: List[Field] = field(default_factory=list)
    methods: List[Method] = field(default_factory=list)
    classes: List["Class"] = field(default_factory=list)
    enums: List[Enumeration] = field(default_factory=list)
    definition_id: Optional[int] = None

    def __post_init__(self):
        self.kind = DeclarationKind.CLASS

    def children(self) -> Iterator[Declaration]:
        return iter([*self.classes, *self.enums, *self.fields, *self.methods])

    def add_child(self, child: Declaration) -> None:
        if isinstance(child, Field):
            self.fields.append(child)
        elif isinstance(child, Method):
            self.methods.append(child)
        elif isinstance(child, Class):
            self.classes.append(child)
        elif isinstance(child, Enumeration):
            self.enums.append(child)
        else:
            super().add_child(child)

    def remove_child(self, child: Declaration) -> None:
        for members in (self.fields, self.methods, self.classes, self.enums):
            if child in members:
                members.remove(child)
                return
        raise ValueError(f"{child.name!r} is not a member of {self.name!r}")


@dataclass(eq=False)
class Namespace(Declaration):
    """Scope holding nested namespaces and top-level declarations"""
    namespaces: List["Namespace"] = field(default_factory=list)
    classes: List[Class] = field(default_factory=list)
    enums: List[Enumeration] = field(default_factory=list)
    functions: List[Function] = field(default_factory=list)

    def __post_init__(self):
        self.kind = DeclarationKind.NAMESPACE

    def children(self) -> Iterator[Declaration]:
        return iter([*self.namespaces, *self.classes, *self.enums, *self.functions])

    def add_child(self, child: Declaration) -> None:
        if isinstance(child, Namespace):
            self.namespaces.append(child)
        elif isinstance(child, Class):
            self.classes.append(child)
        elif isinstance(child, Enumeration):
            self.enums.append(child)
        elif isinstance(child, Function):
            self.functions.append(child)
        else:
            super().add_child(child)

    def remove_child(self, child: Declaration) -> None:
        for members in (self.namespaces, self.classes, self.enums, self.functions):
            if child in members:
                members.remove(child)
                return
        raise ValueError(f"{child.name!r} is not declared in {self.name!r}")


@dataclass(eq=False)
class TranslationUnit(Namespace):
    """Root namespace of the declarations parsed from one header"""
    file_path: str = ""

    def __post_init__(self):
        self.kind = DeclarationKind.TRANSLATION_UNIT


D = TypeVar("D", bound=Declaration)


class Library:
    """Graph root: owns every declaration and the parsed translation units"""

    def __init__(self, namespace: str = "", library_name: str = ""):
        self.namespace = namespace
        self.library_name = library_name
        self.translation_units: List[TranslationUnit] = []
        self._declarations: Dict[int, Declaration] = {}
        self._next_id = 0
        self._next_order = 0

    def __len__(self) -> int:
        return len(self._declarations)

    def __contains__(self, decl_id: int) -> bool:
        return decl_id in self._declarations

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create(self, decl_cls: Type[D], parent: Optional[Declaration] = None, **kwargs: Any) -> D:
        """Allocate a declaration in the arena and attach it to ``parent``.

        Every call consumes the next DefinitionOrder, so declarations are
        numbered in the order the parsers encounter them across all headers.
        """
        decl = decl_cls(
            id=self._next_id,
            definition_order=self._next_order,
            parent_id=parent.id if parent is not None else None,
            **kwargs,
        )
        self._next_id += 1
        self._next_order += 1
        self._declarations[decl.id] = decl
        if parent is not None:
            parent.add_child(decl)
        return decl

    def add_translation_unit(self, unit: TranslationUnit) -> None:
        if unit.id not in self._declarations:
            raise ValueError(f"Translation unit {unit.file_path!r} was not created by this library")
        self.translation_units.append(unit)

    def discard(self, decl: Declaration) -> None:
        """Drop a declaration and its whole subtree from the arena"""
        for child in list(decl.children()):
            self.discard(child)
        self._declarations.pop(decl.id, None)

    def remove(self, decl: Declaration) -> None:
        """Detach a declaration from its scope; it stays addressable by id"""
        if decl.parent_id is None:
            if decl in self.translation_units:
                self.translation_units.remove(decl)
            return
        self.get(decl.parent_id).remove_child(decl)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, decl_id: int) -> Declaration:
        try:
            return self._declarations[decl_id]
        except KeyError:
            raise KeyError(f"No declaration with id {decl_id}") from None

    def resolve(self, decl_id: int) -> Declaration:
        """Follow forward declaration links to the complete definition"""
        decl = self.get(decl_id)
        seen = {decl.id}
        while isinstance(decl, Class) and decl.definition_id is not None:
            decl = self.get(decl.definition_id)
            if decl.id in seen:
                break
            seen.add(decl.id)
        return decl

    def parent(self, decl: Declaration) -> Optional[Declaration]:
        if decl.parent_id is None:
            return None
        return self.get(decl.parent_id)

    def qualified_name(self, decl: Declaration, original: bool = False) -> str:
        """``::``-joined name; translation units do not contribute a scope"""
        parts = []
        current: Optional[Declaration] = decl
        while current is not None:
            if current.kind is not DeclarationKind.TRANSLATION_UNIT:
                name = current.original_name if original and current.original_name is not None else current.name
                parts.append(name)
            current = self.parent(current)
        return "::".join(reversed(parts))

    def translation_unit_of(self, decl: Declaration) -> Optional[TranslationUnit]:
        current: Optional[Declaration] = decl
        while current is not None and not isinstance(current, TranslationUnit):
            current = self.parent(current)
        return current

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def namespaces(self) -> Iterator[Namespace]:
        """Every namespace depth-first, translation units included"""
        def _walk(namespace: Namespace) -> Iterator[Namespace]:
            yield namespace
            for child in namespace.namespaces:
                yield from _walk(child)

        for unit in self.translation_units:
            yield from _walk(unit)

    def classes(self) -> Iterator[Class]:
        """Every class reachable from a translation unit, nested ones included"""
        def _walk(classes: List[Class]) -> Iterator[Class]:
            for cls in classes:
                yield cls
                yield from _walk(cls.classes)

        for namespace in self.namespaces():
            yield from _walk(namespace.classes)

    def walk(self) -> Iterator[Declaration]:
        """Every attached declaration depth-first"""
        def _walk(decl: Declaration) -> Iterator[Declaration]:
            yield decl
            for child in decl.children():
                yield from _walk(child)

        for unit in self.translation_units:
            yield from _walk(unit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'namespace': self.namespace,
            'library_name': self.library_name,
            'translation_units': [unit.to_dict() for unit in self.translation_units],
        }
