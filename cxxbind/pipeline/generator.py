"""Parse, process and generate orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from cxxbind.core.errors import ParseError, PipelineStateError
from cxxbind.core.schema import Library
from cxxbind.core.type_database import TypeDatabase
from cxxbind.generators import emit
from cxxbind.parsers.base import HeaderParser, ParserOptions
from cxxbind.passes import PassBuilder, Transform, sort_library
from cxxbind.pipeline.config import Options
from cxxbind.plugins.base import LibraryHelpers, LibraryTransform

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Stages a run moves through; never backwards"""
    IDLE = "idle"
    PARSED = "parsed"
    PROCESSED = "processed"
    GENERATED = "generated"


@dataclass
class RunResult:
    """Outcome of a complete run."""

    parsed: List[str] = field(default_factory=list)
    failed: List[ParseError] = field(default_factory=list)
    outputs: List[Path] = field(default_factory=list)


class CodeGenerator:
    """Drives one run of the pipeline.

    Each stage may be called once and only after the previous one::

        generator = CodeGenerator(options, transform)
        generator.parse_code()
        generator.process_code()
        generator.generate_code()
    """

    def __init__(self, options: Options, transform: LibraryTransform, parser: Optional[HeaderParser] = None):
        self.options = options
        self.transform = transform
        if parser is None:
            from cxxbind.parsers.cpp_parser import TreeSitterCppParser

            parser = TreeSitterCppParser()
        self.parser = parser

        self.state = PipelineState.IDLE
        self.library: Optional[Library] = None
        self.type_database: Optional[TypeDatabase] = None
        self.passes: Optional[PassBuilder] = None
        self.parsed_headers: List[str] = []
        self.parse_failures: List[ParseError] = []
        self.outputs: List[Path] = []

    def _advance(self, expected: PipelineState, target: PipelineState) -> None:
        if self.state is not expected:
            raise PipelineStateError(
                f"Cannot move to '{target.value}' from '{self.state.value}' (expected '{expected.value}')"
            )
        self.state = target

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def parse_code(self) -> Library:
        """Parse the transform's headers, then the configured ones."""
        self._advance(PipelineState.IDLE, PipelineState.PARSED)

        self.library = Library(namespace=self.options.namespace or "", library_name=self.options.library_name or "")

        headers: List[str] = []
        self.transform.setup_headers(headers)
        parser_options = ParserOptions(
            include_dirs=list(self.options.include_dirs),
            defines=list(self.options.defines),
            verbose=self.options.verbose,
        )

        # Progress is only drawn on a terminal
        for header in tqdm([*headers, *self.options.headers], desc="Parsing headers", unit="header", disable=None):
            if self.parser.parse(header, parser_options, self.library):
                self.parsed_headers.append(header)
                logger.info("Parsed '%s'.", header)
            else:
                error = ParseError(header, self.parser.last_error or "")
                self.parse_failures.append(error)
                logger.warning("Could not parse '%s'.", header)
                if self.parser.last_error:
                    logger.debug("%s", error)

        logger.info(
            "Parsed %d of %d header(s)",
            len(self.parsed_headers), len(self.parsed_headers) + len(self.parse_failures),
        )
        return self.library

    def process_code(self) -> Library:
        """Sort declarations and run the built-in and transform passes."""
        self._advance(PipelineState.PARSED, PipelineState.PROCESSED)
        library = self.library

        self.type_database = TypeDatabase()
        self.type_database.setup_type_maps()

        sort_library(library)

        helpers = LibraryHelpers(library)
        self.transform.preprocess(helpers)

        self.passes = PassBuilder(library, self.type_database)
        self.passes.resolve_incomplete_decls()
        self.passes.clean_invalid_decl_names()
        self.passes.check_duplicate_names()
        self.passes.check_module_names()
        self.transform.setup_passes(self.passes)

        logger.info("Running %d pass(es)", len(self.passes))
        Transform(self.passes, self.options).transform_library(library)

        self.transform.postprocess(helpers)
        return library

    def generate_code(self) -> List[Path]:
        """Hand the processed library to the selected template."""
        self._advance(PipelineState.PROCESSED, PipelineState.GENERATED)

        if not self.library.translation_units:
            logger.info("No translation units parsed; nothing to generate")
            return []

        self.outputs = emit(self.library, self.type_database, self.options)
        return self.outputs

    def run(self) -> RunResult:
        self.parse_code()
        self.process_code()
        self.generate_code()
        return RunResult(
            parsed=list(self.parsed_headers),
            failed=list(self.parse_failures),
            outputs=list(self.outputs),
        )
