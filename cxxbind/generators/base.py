"""Emitter base class."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, List

from cxxbind.core.schema import Class, Declaration, Enumeration, Library
from cxxbind.core.type_database import TypeDatabase, TypeDescriptor

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from cxxbind.pipeline.config import Options

logger = logging.getLogger(__name__)


class Generator:
    """Turns the processed library into output files.

    Subclasses implement ``generate`` and return the paths they wrote.
    """

    name = "generator"
    extension = ""

    def __init__(self, library: Library, type_database: TypeDatabase, options: "Options"):
        self.library = library
        self.type_database = type_database
        self.options = options
        self._declarations: Dict[str, Declaration] = {}

    @property
    def output_path(self) -> Path:
        return Path(self.options.output_dir or ".") / f"{self.options.namespace}{self.extension}"

    def generate(self) -> List[Path]:
        raise NotImplementedError

    def write(self, path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.info("Wrote %s", path)
        return path

    # Type lookup ----------------------------------------------------------

    def declarations(self) -> Dict[str, Declaration]:
        """Name index of emitted classes and enums, qualified and plain"""
        if not self._declarations:
            for decl in self.library.walk():
                if not isinstance(decl, (Class, Enumeration)) or not decl.name:
                    continue
                for key in (self.library.qualified_name(decl), decl.name, decl.original_name or decl.name,
                            self.library.qualified_name(decl, original=True)):
                    self._declarations.setdefault(key, decl)
        return self._declarations

    def lookup(self, signature: str) -> TypeDescriptor:
        return self.type_database.lookup(signature, self.declarations())

    def emitted_classes(self) -> Iterator[Class]:
        """Classes that end up in the output, in DefinitionOrder"""
        classes = [cls for cls in self.library.classes()
                   if not (cls.ignored or cls.is_incomplete or not cls.name)]
        return iter(sorted(classes, key=lambda cls: cls.definition_order))

    def emitted_enums(self) -> Iterator[Enumeration]:
        enums = [decl for decl in self.library.walk()
                 if isinstance(decl, Enumeration) and decl.name and not decl.ignored]
        return iter(sorted(enums, key=lambda enum: enum.definition_order))
