"""Links forward declarations to their complete definitions."""

from __future__ import annotations

import logging
from typing import Dict, List

from cxxbind.core.schema import Class, Library

from .base import TranslationUnitPass

logger = logging.getLogger(__name__)


class ResolveIncompleteDeclsPass(TranslationUnitPass):
    """Merge every forward declaration into the definition of the same qualified name.

    Resolved forward declarations are detached from their scope and point at
    the definition through ``definition_id``. Classes without a definition
    anywhere in the library stay incomplete; emitters leave them out.
    """

    name = "resolve_incomplete_decls"

    def __init__(self):
        super().__init__()
        self.resolved: List[Class] = []
        self.unresolved: List[Class] = []

    def visit_library(self, library: Library) -> None:
        definitions: Dict[str, Class] = {}
        for cls in library.classes():
            if not cls.is_incomplete:
                definitions.setdefault(library.qualified_name(cls), cls)

        for cls in list(library.classes()):
            if not cls.is_incomplete:
                continue

            qualified_name = library.qualified_name(cls)
            definition = definitions.get(qualified_name)
            if definition is None:
                logger.debug("No definition found for incomplete class %s", qualified_name)
                self.unresolved.append(cls)
                continue

            cls.definition_id = definition.id
            cls.is_incomplete = False
            if cls.comment and not definition.comment:
                definition.comment = cls.comment
            library.remove(cls)
            self.resolved.append(cls)

        logger.info(
            "Resolved %d incomplete declaration(s), %d left incomplete",
            len(self.resolved),
            len(self.unresolved),
        )
