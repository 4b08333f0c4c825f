#!/usr/bin/env python3
"""
C/C++ header parser using tree-sitter
Extracts namespaces, classes, fields, methods, enums and free functions
"""

import ast
import logging
import operator
import re
from typing import Iterable, List, Optional, Tuple

import tree_sitter_cpp as tscpp
from tree_sitter import Language, Node, Parser

from cxxbind.core.schema import (
    AccessSpecifier,
    Class,
    Declaration,
    EnumItem,
    Enumeration,
    Field,
    Function,
    Library,
    Method,
    Namespace,
    Parameter,
    SourceLocation,
    TranslationUnit,
)
from cxxbind.parsers.base import ParserOptions, resolve_header

logger = logging.getLogger(__name__)

CLASS_SPECIFIERS = {
    'class_specifier': 'class',
    'struct_specifier': 'struct',
    'union_specifier': 'union',
}
TYPE_SPECIFIERS = set(CLASS_SPECIFIERS) | {'enum_specifier'}

_INT_SUFFIX = re.compile(r'\b(0[xX][0-9A-Fa-f]+|\d+)[uUlL]+\b')


class TreeSitterCppParser:
    """Tree-sitter based C/C++ header parser"""

    def __init__(self):
        # Create parser with C++ language
        self.parser = Parser(Language(tscpp.language()))
        self.last_error: Optional[str] = None

    def parse(self, header: str, options: ParserOptions, library: Library) -> bool:
        """Parse ``header`` and append its translation unit to ``library``"""
        self.last_error = None

        path = resolve_header(header, options.include_dirs)
        if path is None:
            self.last_error = "file not found"
            return False

        try:
            source = path.read_bytes()
        except OSError as e:
            self.last_error = str(e)
            return False

        tree = self.parser.parse(source)
        error = _first_error(tree.root_node)
        if error is not None:
            line, column = error.start_point[0] + 1, error.start_point[1] + 1
            self.last_error = f"syntax error at {line}:{column}"
            return False

        unit = library.create(TranslationUnit, name=path.name, file_path=str(path))
        unit.metadata['defines'] = list(options.defines)
        try:
            _HeaderVisitor(library, str(path)).visit_items(tree.root_node.children, unit)
        except (ValueError, TypeError, KeyError, RecursionError) as e:
            logger.debug("Failed to build declarations for %s", path, exc_info=True)
            library.discard(unit)
            self.last_error = f"{type(e).__name__}: {e}"
            return False

        library.add_translation_unit(unit)
        if options.verbose:
            logger.debug("%s: %d declaration(s)", path, sum(1 for _ in _walk(unit)))
        return True


class _HeaderVisitor:
    """Builds declarations from one syntax tree"""

    def __init__(self, library: Library, file_path: str):
        self.library = library
        self.file_path = file_path

    # ------------------------------------------------------------------
    # Scope-level items
    # ------------------------------------------------------------------

    def visit_items(self, nodes: Iterable[Node], scope: Declaration) -> None:
        pending_comment = None
        for node in nodes:
            if node.type == 'comment':
                pending_comment = node
                continue
            comment = _comment_for(pending_comment, node)
            pending_comment = None
            self.visit_item(node, scope, comment)

    def visit_item(self, node: Node, scope: Declaration, comment: str = "") -> None:
        node_type = node.type

        if node_type == 'namespace_definition':
            self._namespace(node, scope)
        elif node_type in CLASS_SPECIFIERS:
            self._class(node, scope, comment)
        elif node_type == 'enum_specifier':
            self._enum(node, scope, comment)
        elif node_type in ('declaration', 'function_definition'):
            self._declaration(node, scope, comment)
        elif node_type == 'type_definition':
            self._typedef(node, scope, comment)
        elif node_type == 'linkage_specification':
            body = node.child_by_field_name('body')
            if body is None:
                return
            if body.type == 'declaration_list':
                self.visit_items(body.children, scope)
            else:
                self.visit_item(body, scope, comment)
        elif node_type == 'template_declaration':
            logger.debug("Skipping template declaration at %s:%d", self.file_path, node.start_point[0] + 1)
        elif node_type.startswith('preproc_') or node_type == 'declaration_list':
            self.visit_items(node.children, scope)

    def _namespace(self, node: Node, scope: Declaration) -> None:
        name_node = node.child_by_field_name('name')
        name = _text(name_node)
        target = scope
        for part in (name.split('::') if name else ['']):
            target = self._namespace_scope(target, part.strip(), node)

        body = node.child_by_field_name('body')
        if body is not None:
            self.visit_items(body.children, target)

    def _namespace_scope(self, scope: Declaration, name: str, node: Node) -> Declaration:
        if isinstance(scope, Namespace):
            for existing in scope.namespaces:
                if existing.name == name:
                    return existing
        return self.library.create(Namespace, scope, name=name, location=self._location(node))

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def _class(self, node: Node, scope: Declaration, comment: str = "",
               name_override: Optional[str] = None) -> Optional[Class]:
        name_node = node.child_by_field_name('name')
        if name_node is not None and name_node.type == 'template_type':
            logger.debug("Skipping template specialisation %s", _text(name_node))
            return None

        kind = CLASS_SPECIFIERS[node.type]
        body = node.child_by_field_name('body')
        name = _text(name_node) if name_node is not None else (name_override or "")

        cls = self.library.create(
            Class,
            scope,
            name=name,
            is_struct=kind == 'struct',
            is_union=kind == 'union',
            is_incomplete=body is None,
            location=self._location(node),
            comment=comment,
        )

        for child in node.children:
            if child.type == 'base_class_clause':
                cls.bases.extend(
                    _text(base) for base in child.named_children
                    if base.type in ('type_identifier', 'qualified_type_identifier', 'template_type')
                )

        if body is not None:
            access = AccessSpecifier.PRIVATE if kind == 'class' else AccessSpecifier.PUBLIC
            self._class_body(body.children, cls, access)
        return cls

    def _class_body(self, nodes: Iterable[Node], cls: Class, access: AccessSpecifier) -> None:
        pending_comment = None
        for node in nodes:
            node_type = node.type
            if node_type == 'comment':
                pending_comment = node
                continue
            comment = _comment_for(pending_comment, node)
            pending_comment = None

            if node_type == 'access_specifier':
                access = _access(node)
            elif node_type == 'field_declaration':
                self._field_declaration(node, cls, access, comment)
            elif node_type in ('declaration', 'function_definition'):
                self._declaration(node, cls, comment, access)
            elif node_type == 'type_definition':
                self._typedef(node, cls, comment)
            elif node_type.startswith('preproc_'):
                self._class_body(node.children, cls, access)

    def _field_declaration(self, node: Node, cls: Class, access: AccessSpecifier, comment: str) -> None:
        type_node = node.child_by_field_name('type')
        declarators = node.children_by_field_name('declarator')
        nested = self._nested_type(type_node, cls, comment, bool(declarators))
        if not declarators:
            return

        base_type = self._type_text(node, type_node, nested)
        for declarator in declarators:
            name, suffix, func, is_func_ptr = _unwrap(declarator)
            if func is not None and not is_func_ptr:
                self._callable(node, cls, comment, base_type + suffix, name, func, access)
                continue

            field_type = f"{base_type}(*)()" if is_func_ptr else base_type + suffix
            decl = self.library.create(
                Field,
                cls,
                name=name,
                type=field_type,
                access=access,
                location=self._location(declarator),
                comment=comment,
            )
            if nested is not None:
                decl.metadata['type_declaration_id'] = nested.id

    # ------------------------------------------------------------------
    # Declarations, functions and methods
    # ------------------------------------------------------------------

    def _declaration(self, node: Node, scope: Declaration, comment: str,
                     access: AccessSpecifier = AccessSpecifier.PUBLIC) -> None:
        type_node = node.child_by_field_name('type')
        declarators = node.children_by_field_name('declarator')
        nested = self._nested_type(type_node, scope, comment, bool(declarators))

        base_type = self._type_text(node, type_node, nested) if type_node is not None else ""
        for declarator in declarators:
            name, suffix, func, is_func_ptr = _unwrap(declarator)
            if func is None or is_func_ptr:
                # Variables are not part of the model
                continue
            if '::' in name and not isinstance(scope, Class):
                # Out-of-line member definition
                continue
            return_type = base_type + suffix if type_node is not None else ""
            self._callable(node, scope, comment, return_type, name, func, access)

    def _callable(self, node: Node, scope: Declaration, comment: str, return_type: str,
                  name: str, func: Node, access: AccessSpecifier) -> Declaration:
        if isinstance(scope, Class):
            is_destructor = name.startswith('~')
            is_constructor = not return_type and not is_destructor and name == scope.name
            decl = self.library.create(
                Method,
                scope,
                name=name,
                return_type=return_type or 'void',
                access=access,
                is_static=_has_keyword(node, 'static'),
                is_virtual=_has_keyword(node, 'virtual'),
                is_const=any(child.type == 'type_qualifier' and _text(child) == 'const'
                             for child in func.children),
                is_constructor=is_constructor,
                is_destructor=is_destructor,
                location=self._location(node),
                comment=comment,
            )
        else:
            decl = self.library.create(
                Function,
                scope,
                name=name,
                return_type=return_type or 'void',
                location=self._location(node),
                comment=comment,
            )

        self._parameters(func.child_by_field_name('parameters'), decl)
        return decl

    def _parameters(self, parameter_list: Optional[Node], owner: Declaration) -> None:
        if parameter_list is None:
            return

        params = [child for child in parameter_list.named_children
                  if child.type in ('parameter_declaration', 'optional_parameter_declaration')]
        if any(child.type in ('...', 'variadic_parameter_declaration') for child in parameter_list.children):
            owner.is_variadic = True

        if len(params) == 1 and params[0].child_by_field_name('declarator') is None \
                and _text(params[0].child_by_field_name('type')) == 'void':
            return

        for index, param in enumerate(params):
            type_node = param.child_by_field_name('type')
            declarator = param.child_by_field_name('declarator')
            name, suffix, func, is_func_ptr = _unwrap(declarator) if declarator is not None else ("", "", None, False)
            base_type = self._type_text(param, type_node, None)
            param_type = f"{base_type}(*)()" if is_func_ptr or func is not None else base_type + suffix
            self.library.create(
                Parameter,
                owner,
                name=name,
                type=param_type,
                index=index,
                location=self._location(param),
            )

    # ------------------------------------------------------------------
    # Typedefs and enums
    # ------------------------------------------------------------------

    def _typedef(self, node: Node, scope: Declaration, comment: str) -> None:
        type_node = node.child_by_field_name('type')
        if type_node is None or type_node.type not in TYPE_SPECIFIERS:
            return

        alias = None
        for declarator in node.children_by_field_name('declarator'):
            name, suffix, func, _ = _unwrap(declarator)
            if not suffix and func is None:
                alias = name
                break

        if type_node.type == 'enum_specifier':
            self._enum(type_node, scope, comment, name_override=alias)
        else:
            self._class(type_node, scope, comment, name_override=alias)

    def _enum(self, node: Node, scope: Declaration, comment: str = "",
              name_override: Optional[str] = None) -> Optional[Enumeration]:
        body = node.child_by_field_name('body')
        if body is None:
            return None

        name_node = node.child_by_field_name('name')
        base = node.child_by_field_name('base')
        enum = self.library.create(
            Enumeration,
            scope,
            name=_text(name_node) if name_node is not None else (name_override or ""),
            underlying_type=_text(base) if base is not None else 'int',
            is_scoped=any(child.type in ('class', 'struct') for child in node.children),
            location=self._location(node),
            comment=comment,
        )

        known = {}
        next_value: Optional[int] = 0
        for item in body.named_children:
            if item.type != 'enumerator':
                continue
            name = _text(item.child_by_field_name('name'))
            value_node = item.child_by_field_name('value')
            expression = _text(value_node) if value_node is not None else ""
            value = _enum_value(expression, known) if expression else next_value
            self.library.create(
                EnumItem,
                enum,
                name=name,
                value=value,
                expression=expression,
                location=self._location(item),
            )
            if value is not None:
                known[name] = value
            next_value = value + 1 if value is not None else None
        return enum

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _nested_type(self, type_node: Optional[Node], scope: Declaration, comment: str,
                     has_declarators: bool) -> Optional[Declaration]:
        """Create the class/enum a declaration defines inline, if any"""
        if type_node is None or type_node.type not in TYPE_SPECIFIERS:
            return None
        has_body = type_node.child_by_field_name('body') is not None
        if not has_body and has_declarators:
            return None
        if type_node.type == 'enum_specifier':
            return self._enum(type_node, scope, comment)
        return self._class(type_node, scope, comment)

    @staticmethod
    def _type_text(node: Node, type_node: Optional[Node], nested: Optional[Declaration]) -> str:
        if nested is not None:
            base = nested.name
        else:
            base = _text(type_node)
        qualifiers = [_text(child) for child in node.children
                      if child.type == 'type_qualifier' and _text(child) == 'const']
        if qualifiers:
            return f"const {base}"
        return base

    def _location(self, node: Node) -> SourceLocation:
        return SourceLocation(
            file_path=self.file_path,
            line=node.start_point[0] + 1,
            column=node.start_point[1] + 1,
        )


def _unwrap(node: Optional[Node]) -> Tuple[str, str, Optional[Node], bool]:
    """Split a declarator into (name, pointer/array suffix, function declarator, is function pointer)"""
    name = ""
    stars = ""
    arrays: List[str] = []
    func = None
    is_func_ptr = False

    while node is not None:
        node_type = node.type
        if node_type in ('pointer_declarator', 'abstract_pointer_declarator'):
            if func is not None:
                is_func_ptr = True
            else:
                stars += '*'
            node = node.child_by_field_name('declarator')
        elif node_type in ('reference_declarator', 'abstract_reference_declarator'):
            if func is None:
                stars += '&&' if any(child.type == '&&' for child in node.children) else '&'
            node = node.named_children[0] if node.named_children else None
        elif node_type in ('array_declarator', 'abstract_array_declarator'):
            size = node.child_by_field_name('size')
            arrays.insert(0, f"[{_text(size)}]")
            node = node.child_by_field_name('declarator')
        elif node_type in ('function_declarator', 'abstract_function_declarator'):
            if func is None:
                func = node
            node = node.child_by_field_name('declarator')
        elif node_type in ('parenthesized_declarator', 'abstract_parenthesized_declarator'):
            node = node.named_children[0] if node.named_children else None
        elif node_type == 'init_declarator':
            node = node.child_by_field_name('declarator')
        else:
            name = _text(node)
            break

    return name, stars + ''.join(arrays), func, is_func_ptr


def _text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode('utf-8', errors='replace').strip()


def _access(node: Node) -> AccessSpecifier:
    keyword = _text(node).rstrip(':').strip().split()[0].lower()
    return AccessSpecifier(keyword)


def _has_keyword(node: Node, keyword: str) -> bool:
    for child in node.children:
        if child.type == keyword:
            return True
        if child.type in ('storage_class_specifier', 'virtual_function_specifier', 'virtual') \
                and _text(child) == keyword:
            return True
    return False


def _first_error(node: Node) -> Optional[Node]:
    if not node.has_error:
        return None
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == 'ERROR' or current.is_missing:
            return current
        stack.extend(reversed([child for child in current.children if child.has_error or child.is_missing]))
    return node


def _comment_for(comment: Optional[Node], node: Node) -> str:
    """Text of ``comment`` when it sits directly above ``node``"""
    if comment is None or comment.end_point[0] + 1 < node.start_point[0]:
        return ""
    text = _text(comment)
    if text.startswith('//'):
        return text.lstrip('/').strip()
    text = text[2:-2] if text.startswith('/*') and text.endswith('*/') else text
    lines = [line.strip().lstrip('*').strip() for line in text.splitlines()]
    return '\n'.join(line for line in lines if line)


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.LShift: operator.lshift,
    ast.RShift: operator.rshift,
    ast.BitOr: operator.or_,
    ast.BitAnd: operator.and_,
    ast.BitXor: operator.xor,
}

# Wider shifts are not constant expressions of any enum base type
_MAX_SHIFT = 64

_UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Invert: operator.invert,
}


def _enum_value(expression: str, known: dict) -> Optional[int]:
    """Integer value of an enumerator initializer, or None when it is not constant"""
    text = expression.strip()
    text = re.sub(r"'(\\?.)'", lambda m: str(ord(m.group(1)[-1])), text)
    text = _INT_SUFFIX.sub(r'\1', text)
    text = re.sub(r'\b0([0-7]+)\b', r'0o\1', text)
    text = text.replace('::', '__').replace('/', '//')
    try:
        tree = ast.parse(text, mode='eval')
    except SyntaxError:
        return None
    scope = {name.replace('::', '__'): value for name, value in known.items()}
    return _evaluate(tree.body, scope)


def _evaluate(node: ast.AST, known: dict) -> Optional[int]:
    if isinstance(node, ast.Constant) and isinstance(node.value, int):
        return node.value
    if isinstance(node, ast.Name):
        return known.get(node.id)
    if isinstance(node, ast.Attribute):
        return known.get(node.attr)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        operand = _evaluate(node.operand, known)
        return None if operand is None else _UNARY_OPS[type(node.op)](operand)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _evaluate(node.left, known)
        right = _evaluate(node.right, known)
        if left is None or right is None:
            return None
        if isinstance(node.op, (ast.LShift, ast.RShift)) and right > _MAX_SHIFT:
            return None
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except (ZeroDivisionError, ValueError):
            return None
    return None


def _walk(decl: Declaration):
    yield decl
    for child in decl.children():
        yield from _walk(child)
