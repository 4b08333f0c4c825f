"""
Type database

Maps native C/C++ type signatures to descriptors of the Python/ctypes types
the emitters produce. The table is filled once from the built-in type maps
and is read-only afterwards.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .errors import TypeDatabaseError
from .schema import Class, Declaration, Enumeration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeDescriptor:
    """Target-side description of a native type"""
    native: str
    python_type: str
    ctypes_type: str
    kind: str = "primitive"  # primitive, string, pointer, std, enum, declaration, opaque
    declaration_id: Optional[int] = None

    @property
    def is_void(self) -> bool:
        return self.ctypes_type == "None"


# native signature -> (python type, ctypes type, kind)
_BUILTIN_TYPE_MAPS: Dict[str, Tuple[str, str, str]] = {
    'void': ('None', 'None', 'primitive'),
    'bool': ('bool', 'ctypes.c_bool', 'primitive'),
    '_Bool': ('bool', 'ctypes.c_bool', 'primitive'),
    'char': ('bytes', 'ctypes.c_char', 'primitive'),
    'signed char': ('int', 'ctypes.c_byte', 'primitive'),
    'unsigned char': ('int', 'ctypes.c_ubyte', 'primitive'),
    'wchar_t': ('str', 'ctypes.c_wchar', 'primitive'),
    'short': ('int', 'ctypes.c_short', 'primitive'),
    'short int': ('int', 'ctypes.c_short', 'primitive'),
    'signed short': ('int', 'ctypes.c_short', 'primitive'),
    'unsigned short': ('int', 'ctypes.c_ushort', 'primitive'),
    'unsigned short int': ('int', 'ctypes.c_ushort', 'primitive'),
    'int': ('int', 'ctypes.c_int', 'primitive'),
    'signed': ('int', 'ctypes.c_int', 'primitive'),
    'signed int': ('int', 'ctypes.c_int', 'primitive'),
    'unsigned': ('int', 'ctypes.c_uint', 'primitive'),
    'unsigned int': ('int', 'ctypes.c_uint', 'primitive'),
    'long': ('int', 'ctypes.c_long', 'primitive'),
    'long int': ('int', 'ctypes.c_long', 'primitive'),
    'signed long': ('int', 'ctypes.c_long', 'primitive'),
    'unsigned long': ('int', 'ctypes.c_ulong', 'primitive'),
    'unsigned long int': ('int', 'ctypes.c_ulong', 'primitive'),
    'long long': ('int', 'ctypes.c_longlong', 'primitive'),
    'long long int': ('int', 'ctypes.c_longlong', 'primitive'),
    'unsigned long long': ('int', 'ctypes.c_ulonglong', 'primitive'),
    'unsigned long long int': ('int', 'ctypes.c_ulonglong', 'primitive'),
    'float': ('float', 'ctypes.c_float', 'primitive'),
    'double': ('float', 'ctypes.c_double', 'primitive'),
    'long double': ('float', 'ctypes.c_longdouble', 'primitive'),
    'size_t': ('int', 'ctypes.c_size_t', 'primitive'),
    'ssize_t': ('int', 'ctypes.c_ssize_t', 'primitive'),
    'ptrdiff_t': ('int', 'ctypes.c_ssize_t', 'primitive'),
    'intptr_t': ('int', 'ctypes.c_ssize_t', 'primitive'),
    'uintptr_t': ('int', 'ctypes.c_size_t', 'primitive'),
    'int8_t': ('int', 'ctypes.c_int8', 'primitive'),
    'int16_t': ('int', 'ctypes.c_int16', 'primitive'),
    'int32_t': ('int', 'ctypes.c_int32', 'primitive'),
    'int64_t': ('int', 'ctypes.c_int64', 'primitive'),
    'uint8_t': ('int', 'ctypes.c_uint8', 'primitive'),
    'uint16_t': ('int', 'ctypes.c_uint16', 'primitive'),
    'uint32_t': ('int', 'ctypes.c_uint32', 'primitive'),
    'uint64_t': ('int', 'ctypes.c_uint64', 'primitive'),
    'char*': ('bytes', 'ctypes.c_char_p', 'string'),
    'wchar_t*': ('str', 'ctypes.c_wchar_p', 'string'),
    'void*': ('int', 'ctypes.c_void_p', 'pointer'),
    # Standard library equivalences
    'std::size_t': ('int', 'ctypes.c_size_t', 'primitive'),
    'std::ptrdiff_t': ('int', 'ctypes.c_ssize_t', 'primitive'),
    'std::int8_t': ('int', 'ctypes.c_int8', 'primitive'),
    'std::int16_t': ('int', 'ctypes.c_int16', 'primitive'),
    'std::int32_t': ('int', 'ctypes.c_int32', 'primitive'),
    'std::int64_t': ('int', 'ctypes.c_int64', 'primitive'),
    'std::uint8_t': ('int', 'ctypes.c_uint8', 'primitive'),
    'std::uint16_t': ('int', 'ctypes.c_uint16', 'primitive'),
    'std::uint32_t': ('int', 'ctypes.c_uint32', 'primitive'),
    'std::uint64_t': ('int', 'ctypes.c_uint64', 'primitive'),
    'std::nullptr_t': ('None', 'ctypes.c_void_p', 'pointer'),
    'std::string': ('str', 'ctypes.c_char_p', 'std'),
    'std::wstring': ('str', 'ctypes.c_wchar_p', 'std'),
    'std::string_view': ('str', 'ctypes.c_char_p', 'std'),
    'std::vector': ('list', 'ctypes.c_void_p', 'std'),
    'std::map': ('dict', 'ctypes.c_void_p', 'std'),
    'std::unordered_map': ('dict', 'ctypes.c_void_p', 'std'),
    'std::shared_ptr': ('object', 'ctypes.c_void_p', 'std'),
    'std::unique_ptr': ('object', 'ctypes.c_void_p', 'std'),
}

_QUALIFIERS = re.compile(r'\b(const|volatile|restrict|__restrict|struct|class|union|enum|typename)\b')
_ARRAY = re.compile(r'^(.*?)\s*\[\s*(\w*)\s*\]$')
_TEMPLATE = re.compile(r'^([^<]+)<.*>$')


def normalize_signature(signature: str) -> str:
    """Canonical spelling of a native type used as the table key.

    Drops cv-qualifiers and elaborated type keywords, removes the spaces
    around ``*``/``&`` and collapses runs of whitespace.
    """
    text = _QUALIFIERS.sub(' ', signature)
    text = re.sub(r'\s+', ' ', text).strip()
    text = re.sub(r'\s*([*&])\s*', r'\1', text)
    text = re.sub(r'^::', '', text)
    return text


class TypeDatabase:
    """Read-only table of native type to target type descriptors"""

    def __init__(self):
        self._type_maps: Mapping[str, TypeDescriptor] = MappingProxyType({})
        self._initialized = False

    def setup_type_maps(self) -> None:
        """Populate the table from the built-in type maps; allowed once"""
        if self._initialized:
            raise TypeDatabaseError("Type maps are already set up")

        type_maps = {
            native: TypeDescriptor(native=native, python_type=python_type,
                                   ctypes_type=ctypes_type, kind=kind)
            for native, (python_type, ctypes_type, kind) in _BUILTIN_TYPE_MAPS.items()
        }
        self._type_maps = MappingProxyType(type_maps)
        self._initialized = True
        logger.debug("Type database initialised with %d type maps", len(type_maps))

    @property
    def initialized(self) -> bool:
        return self._initialized

    def register(self, native: str, descriptor: TypeDescriptor) -> None:
        raise TypeDatabaseError(
            f"Cannot register '{native}': the type database is read-only"
        )

    def __contains__(self, signature: str) -> bool:
        return normalize_signature(signature) in self._type_maps

    def __len__(self) -> int:
        return len(self._type_maps)

    def signatures(self) -> Iterator[str]:
        return iter(self._type_maps)

    def find(self, signature: str) -> Optional[TypeDescriptor]:
        """Exact table hit for a signature, without any fallback"""
        return self._type_maps.get(normalize_signature(signature))

    def lookup(
        self,
        signature: str,
        declarations: Optional[Mapping[str, Declaration]] = None,
    ) -> TypeDescriptor:
        """Describe ``signature``; never fails.

        ``declarations`` maps names (qualified and plain) to the declarations
        of the library being emitted. A signature missing from the table is
        passed through as a reference to the declaration of the same name.
        """
        native = normalize_signature(signature)

        descriptor = self._type_maps.get(native)
        if descriptor is not None:
            return descriptor

        if '(' in native:
            # Function pointer
            return TypeDescriptor(native, 'int', 'ctypes.c_void_p', 'pointer')

        if native.endswith('*') or native.endswith('&'):
            return self._lookup_pointer(native, declarations)

        match = _ARRAY.match(native)
        if match:
            inner = self.lookup(match.group(1), declarations)
            size = match.group(2) or '0'
            if inner.is_void:
                return TypeDescriptor(native, 'int', 'ctypes.c_void_p', 'pointer')
            return TypeDescriptor(native, 'list', f'({inner.ctypes_type} * {size})',
                                  inner.kind, inner.declaration_id)

        match = _TEMPLATE.match(native)
        if match:
            template = self._type_maps.get(match.group(1).strip())
            if template is not None:
                return replace(template, native=native)

        return self._pass_through(native, declarations)

    def _lookup_pointer(self, native: str, declarations) -> TypeDescriptor:
        base = native.rstrip('&').rstrip('*') if native.endswith('&') else native[:-1]
        inner = self.lookup(base, declarations)
        if inner.kind == 'declaration' and inner.declaration_id is not None:
            return TypeDescriptor(native, inner.python_type, f'ctypes.POINTER({inner.ctypes_type})',
                                  'pointer', inner.declaration_id)
        if inner.kind in ('primitive', 'enum') and not inner.is_void and inner.ctypes_type != 'ctypes.c_char':
            return TypeDescriptor(native, inner.python_type, f'ctypes.POINTER({inner.ctypes_type})',
                                  'pointer', inner.declaration_id)
        if inner.kind in ('pointer', 'string') and native.endswith('*'):
            return TypeDescriptor(native, 'int', f'ctypes.POINTER({inner.ctypes_type})', 'pointer')
        return TypeDescriptor(native, 'int', 'ctypes.c_void_p', 'pointer', inner.declaration_id)

    @staticmethod
    def _pass_through(native: str, declarations) -> TypeDescriptor:
        decl = None
        if declarations is not None:
            decl = declarations.get(native) or declarations.get(native.split('::')[-1])

        if isinstance(decl, Enumeration):
            return TypeDescriptor(native, decl.name, 'ctypes.c_int', 'enum', decl.id)
        if isinstance(decl, Class) and not decl.is_incomplete and not decl.ignored:
            return TypeDescriptor(native, decl.name, decl.name, 'declaration', decl.id)
        if decl is not None:
            return TypeDescriptor(native, decl.name, decl.name, 'opaque', decl.id)

        name = native.split('::')[-1]
        return TypeDescriptor(native, name, name, 'opaque')
