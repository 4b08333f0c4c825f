"""
ctypes binding generation module

Writes one Python module per run containing ctypes structures, IntEnum
enumerations and function prototypes bound to the native library.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Set

from cxxbind.core.errors import GenerationError
from cxxbind.core.schema import Class, Field, Function, Parameter

from .base import Generator
from .codegen import CodeGen

logger = logging.getLogger(__name__)

HEADER_COMMENT = 'Generated by cxxbind. Do not edit.'

_DECLARATOR_SUFFIX = re.compile(r'(?:[*&]|\[\w*\])*$')


class CtypesGenerator(Generator):
    """Generates a ctypes binding module"""

    name = 'ctypes'
    extension = '.py'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._exports: List[str] = []

    def generate(self) -> List[Path]:
        gen = CodeGen()
        classes = list(self.emitted_classes())

        self._gen_header(gen)
        self._gen_enums(gen)
        for cls in classes:
            self._gen_class(gen, cls)
        self._gen_fields(gen, classes)
        self._gen_functions(gen)
        self._gen_exports(gen)

        return [self.write(self.output_path, gen.output())]

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _gen_header(self, gen: CodeGen):
        gen.docstring(f'ctypes bindings for {self.options.namespace}.')
        gen.comment(HEADER_COMMENT)
        gen.blank()
        gen.lines('import ctypes', 'import ctypes.util', 'import enum')
        gen.blank()
        if self.options.library_name:
            gen.line(f'_library_path = ctypes.util.find_library({self.options.library_name!r})')
            gen.line('_lib = ctypes.CDLL(_library_path) if _library_path else None')
        else:
            gen.line('_lib = None')
        gen.blank(2)
        with gen.block('def _bind(name, restype, argtypes):'):
            with gen.block('if _lib is None:'):
                gen.line('return None')
            with gen.block('try:'):
                gen.line('func = getattr(_lib, name)')
            with gen.block('except AttributeError:'):
                gen.line('return None')
            gen.line('func.restype = restype')
            gen.line('func.argtypes = argtypes')
            gen.line('return func')

    def _gen_enums(self, gen: CodeGen):
        for enum in self.emitted_enums():
            gen.blank(2)
            self._provenance(gen, enum)
            with gen.block(f'class {enum.name}(enum.IntEnum):'):
                if enum.comment:
                    gen.docstring(enum.comment)
                emitted = 0
                for item in enum.items:
                    if item.value is None:
                        gen.comment(f'{item.name} = {item.expression} (not a constant expression)')
                        continue
                    gen.line(f'{item.name} = {item.value}')
                    emitted += 1
                if not emitted and not enum.comment:
                    gen.line('pass')
            self._exports.append(enum.name)

    def _gen_class(self, gen: CodeGen, cls: Class):
        base = 'ctypes.Union' if cls.is_union else 'ctypes.Structure'
        gen.blank(2)
        self._provenance(gen, cls)
        with gen.block(f'class {cls.name}({base}):'):
            if cls.comment:
                gen.docstring(cls.comment)
            else:
                gen.line('pass')
            if self.options.debug:
                for method in cls.methods:
                    gen.comment(f'method: {_signature(method.return_type, method.name, method.parameters, method.is_variadic)}')
        self._exports.append(cls.name)

    def _gen_fields(self, gen: CodeGen, classes: List[Class]):
        layouts = [cls for cls in classes if _has_layout(cls)]
        if not layouts:
            return
        gen.blank(2)
        for cls in self._layout_order(layouts):
            gen.blank()
            bases = [self.library.resolve(decl.id) for decl in self._base_classes(cls)]
            anonymous = [f'_base{index}' if index else '_base' for index in range(len(bases))]
            if anonymous:
                gen.line(f'{cls.name}._anonymous_ = {anonymous!r}')
            with gen.block(f'{cls.name}._fields_ = [', ']'):
                for name, base in zip(anonymous, bases):
                    gen.line(f'({name!r}, {base.name}),')
                for field in cls.fields:
                    if field.ignored:
                        continue
                    gen.line(f'({field.name!r}, {self._field_type(field)}),')

    def _gen_functions(self, gen: CodeGen):
        functions = [decl for decl in self.library.walk()
                     if isinstance(decl, Function) and not decl.ignored]
        if not functions:
            return
        gen.blank(2)
        for function in sorted(functions, key=lambda decl: decl.definition_order):
            gen.blank()
            self._provenance(gen, function)
            restype = self.lookup(function.return_type)
            argtypes = ', '.join(self.lookup(param.type).ctypes_type for param in function.parameters)
            symbol = function.original_name or function.name
            gen.line(f'{function.name} = _bind({symbol!r}, {restype.ctypes_type}, [{argtypes}])')
            self._exports.append(function.name)

    def _gen_exports(self, gen: CodeGen):
        duplicates = sorted({name for name in self._exports if self._exports.count(name) > 1})
        if duplicates:
            raise GenerationError(f"Names defined more than once in the module: {', '.join(duplicates)}")
        gen.blank(2)
        with gen.block('__all__ = [', ']'):
            for name in self._exports:
                gen.line(f'{name!r},')

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _field_type(self, field: Field) -> str:
        decl_id = field.metadata.get('type_declaration_id')
        if decl_id is not None and decl_id in self.library:
            decl = self.library.resolve(decl_id)
            suffix = _DECLARATOR_SUFFIX.search(field.type).group(0)
            descriptor = self.lookup(decl.name + suffix)
        else:
            descriptor = self.lookup(field.type)
        if descriptor.kind == 'opaque':
            return 'ctypes.c_void_p'
        return descriptor.ctypes_type

    def _base_classes(self, cls: Class) -> List[Class]:
        bases = []
        for name in cls.bases:
            decl = self.declarations().get(name.split('<')[0].strip())
            if isinstance(decl, Class) and _has_layout(self.library.resolve(decl.id)):
                bases.append(decl)
        return bases

    def _value_dependencies(self, cls: Class) -> Set[int]:
        """Classes that must have their ``_fields_`` before ``cls``"""
        deps = {self.library.resolve(base.id).id for base in self._base_classes(cls)}
        for field in cls.fields:
            if field.ignored:
                continue
            decl_id = field.metadata.get('type_declaration_id')
            if decl_id is not None and decl_id in self.library and not field.type.endswith(('*', '&')):
                deps.add(self.library.resolve(decl_id).id)
                continue
            descriptor = self.lookup(field.type)
            if descriptor.kind == 'declaration' and descriptor.declaration_id is not None:
                deps.add(descriptor.declaration_id)
        deps.discard(cls.id)
        return deps

    def _layout_order(self, classes: List[Class]) -> List[Class]:
        """DefinitionOrder, moved only as far as by-value members require"""
        by_id: Dict[int, Class] = {cls.id: cls for cls in classes}
        ordered: List[Class] = []
        done: Set[int] = set()
        visiting: Set[int] = set()

        def visit(cls: Class):
            if cls.id in done or cls.id in visiting:
                return
            visiting.add(cls.id)
            for dep_id in sorted(self._value_dependencies(cls), key=lambda i: by_id[i].definition_order
                                 if i in by_id else -1):
                dep = by_id.get(dep_id)
                if dep is not None:
                    visit(dep)
            visiting.discard(cls.id)
            done.add(cls.id)
            ordered.append(cls)

        for cls in classes:
            visit(cls)
        return ordered

    def _provenance(self, gen: CodeGen, decl):
        if not self.options.debug:
            return
        qualified = self.library.qualified_name(decl, original=True)
        location = decl.location
        if location is not None:
            gen.comment(f'{location.file_path}:{location.line} {qualified}')
        else:
            gen.comment(qualified)


def _has_layout(cls: Class) -> bool:
    """Whether the memory layout of ``cls`` is emitted or the class stays opaque

    Complete classes get ``_fields_`` whether they were declared with
    ``class``, ``struct`` or ``union``. Polymorphic classes hide a vtable
    pointer, so they stay opaque unless a transform marks them as value types.
    """
    if cls.metadata.get('opaque'):
        return False
    if cls.is_value_type:
        return True
    return not any(method.is_virtual for method in cls.methods)


def _signature(return_type: str, name: str, parameters: List[Parameter],
               variadic: bool = False) -> str:
    params = ', '.join(f'{param.type} {param.name}'.strip() for param in parameters)
    if variadic:
        params = f'{params}, ...' if params else '...'
    return f'{return_type} {name}({params})'
