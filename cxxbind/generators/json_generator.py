"""Declaration graph dump."""

import json
from pathlib import Path
from typing import Any, Dict, List

from .base import Generator


class JsonGenerator(Generator):
    """Writes the processed library as JSON"""

    name = 'json'
    extension = '.json'

    def generate(self) -> List[Path]:
        data: Dict[str, Any] = self.library.to_dict()
        data['namespace'] = self.options.namespace
        data['types'] = {
            decl.name: self.lookup(decl.name).ctypes_type
            for decl in self.emitted_classes()
        }
        text = json.dumps(data, indent=2 if self.options.debug else None, sort_keys=False)
        return [self.write(self.output_path, text + '\n')]
