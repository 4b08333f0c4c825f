"""Declaration graph, type database and error types"""

from .errors import (
    CxxbindError,
    ConfigError,
    LoadError,
    ParseError,
    PassError,
    GenerationError,
    PipelineStateError,
    TypeDatabaseError,
)
from .schema import (
    AccessSpecifier,
    Class,
    Declaration,
    DeclarationKind,
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
from .type_database import TypeDatabase, TypeDescriptor, normalize_signature

__all__ = [
    'CxxbindError', 'ConfigError', 'LoadError', 'ParseError', 'PassError',
    'GenerationError', 'PipelineStateError', 'TypeDatabaseError',
    'AccessSpecifier', 'Class', 'Declaration', 'DeclarationKind', 'EnumItem',
    'Enumeration', 'Field', 'Function', 'Library', 'Method', 'Namespace',
    'Parameter', 'SourceLocation', 'TranslationUnit',
    'TypeDatabase', 'TypeDescriptor', 'normalize_signature',
]
