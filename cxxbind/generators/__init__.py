"""Emitters turning the processed library into output files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Type

from cxxbind.core.errors import CxxbindError, GenerationError
from cxxbind.core.schema import Library
from cxxbind.core.type_database import TypeDatabase

from .base import Generator
from .codegen import CodeGen
from .ctypes_generator import CtypesGenerator
from .json_generator import JsonGenerator

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from cxxbind.pipeline.config import Options

logger = logging.getLogger(__name__)

# Output templates keyed by ``--template`` name.
TEMPLATES: Dict[str, Type[Generator]] = {
    CtypesGenerator.name: CtypesGenerator,
    JsonGenerator.name: JsonGenerator,
}


def get_template(name: str) -> Type[Generator]:
    try:
        return TEMPLATES[name]
    except KeyError:
        available = ", ".join(sorted(TEMPLATES))
        raise GenerationError(f"Unknown template '{name}' (available: {available})") from None


def emit(library: Library, type_database: TypeDatabase, options: "Options") -> List[Path]:
    """Run the template selected by ``options.template``"""
    generator_cls = get_template(options.template)
    logger.info("Generating %s output for namespace '%s'", generator_cls.name, options.namespace)
    try:
        return generator_cls(library, type_database, options).generate()
    except CxxbindError:
        raise
    except Exception as exc:
        raise GenerationError(f"{generator_cls.name} generation failed: {exc}") from exc


__all__ = [
    "CodeGen",
    "CtypesGenerator",
    "Generator",
    "JsonGenerator",
    "TEMPLATES",
    "emit",
    "get_template",
]
