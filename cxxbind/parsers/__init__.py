"""Header parsers"""

from .base import HeaderParser, ParserOptions, resolve_header
from .cpp_parser import TreeSitterCppParser

__all__ = ["HeaderParser", "ParserOptions", "TreeSitterCppParser", "resolve_header"]
