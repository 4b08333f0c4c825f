"""Parser collaborator interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from cxxbind.core.schema import Library


@dataclass
class ParserOptions:
    """Options shared by every header of a run"""
    include_dirs: List[str] = field(default_factory=list)
    defines: List[str] = field(default_factory=list)
    verbose: bool = False


class HeaderParser(Protocol):
    """Parses one header into the library.

    On success exactly one translation unit is appended to ``library`` and
    ``True`` is returned. On failure nothing is appended, ``False`` is
    returned and ``last_error`` describes the problem.
    """

    last_error: Optional[str]

    def parse(self, header: str, options: ParserOptions, library: Library) -> bool:
        ...


def resolve_header(header: str, include_dirs: Sequence[str]) -> Optional[Path]:
    """Find ``header`` as given, then relative to each include directory in order"""
    path = Path(header)
    if path.is_file():
        return path
    if not path.is_absolute():
        for include_dir in include_dirs:
            candidate = Path(include_dir) / header
            if candidate.is_file():
                return candidate
    return None
