"""
cxxbind - generate Python bindings from C/C++ headers.
"""

__version__ = "0.1.0"
