"""Shared fixtures for the cxxbind test-suite."""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

import pytest

from cxxbind.core.schema import Class, Library, TranslationUnit
from cxxbind.parsers.base import ParserOptions
from cxxbind.plugins.base import LibraryTransform


class FakeParser:
    """Header parser that builds translation units from callables"""

    def __init__(self, builders: Optional[Dict[str, Callable]] = None, failing: Optional[Set[str]] = None):
        self.builders = builders or {}
        self.failing = failing or set()
        self.calls: List[str] = []
        self.last_error: Optional[str] = None

    def parse(self, header: str, options: ParserOptions, library: Library) -> bool:
        self.calls.append(header)
        self.last_error = None
        if header in self.failing:
            self.last_error = "syntax error at 1:1"
            return False
        unit = library.create(TranslationUnit, name=Path(header).name, file_path=header)
        builder = self.builders.get(header)
        if builder is not None:
            builder(library, unit)
        library.add_translation_unit(unit)
        return True


class RecordingTransform(LibraryTransform):
    """Transform that records every hook invocation"""

    name = "recording"

    def __init__(self, extra_headers=None, passes=None):
        self.extra_headers = list(extra_headers or [])
        self.extra_passes = list(passes or [])
        self.calls: List[str] = []

    def setup_headers(self, headers):
        self.calls.append("setup_headers")
        headers.extend(self.extra_headers)

    def preprocess(self, helpers):
        self.calls.append("preprocess")

    def setup_passes(self, passes):
        self.calls.append("setup_passes")
        for pass_ in self.extra_passes:
            passes.add_pass(pass_)

    def postprocess(self, helpers):
        self.calls.append("postprocess")


def add_struct(library: Library, scope, name: str, *fields, **kwargs) -> Class:
    from cxxbind.core.schema import Field

    cls = library.create(Class, scope, name=name, is_struct=True, **kwargs)
    for field_name, field_type in fields:
        library.create(Field, cls, name=field_name, type=field_type)
    return cls


@pytest.fixture
def library() -> Library:
    return Library(namespace="demo", library_name="demo")


@pytest.fixture
def unit(library) -> TranslationUnit:
    tu = library.create(TranslationUnit, name="demo.h", file_path="demo.h")
    library.add_translation_unit(tu)
    return tu


@pytest.fixture
def write_header(tmp_path) -> Callable[[str, str], Path]:
    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return _write
