"""Exception hierarchy shared by the pipeline stages."""

from __future__ import annotations

from typing import Optional


class CxxbindError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(CxxbindError):
    """Missing or invalid options; raised before anything is parsed."""


class LoadError(CxxbindError):
    """The transform module could not be loaded or is ambiguous."""


class ParseError(CxxbindError):
    """A single header could not be parsed. Recoverable."""

    def __init__(self, header: str, reason: str = ""):
        message = f"Could not parse '{header}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.header = header
        self.reason = reason


class PassError(CxxbindError):
    """A transformation pass failed."""

    def __init__(self, pass_name: str, cause: Optional[BaseException] = None):
        message = f"Pass '{pass_name}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.pass_name = pass_name
        self.cause = cause


class GenerationError(CxxbindError):
    """The emitter could not produce its output."""


class PipelineStateError(CxxbindError):
    """A pipeline stage was invoked out of order."""


class TypeDatabaseError(CxxbindError):
    """The type database was modified after initialisation."""
