"""Configuration helpers for the binding pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from cxxbind.core.errors import ConfigError

DEFAULT_TEMPLATE = "ctypes"
DEFAULT_NAMESPACE = "bindings"

_LIST_KEYS = ("defines", "include_dirs", "headers")
_PATH_LIST_KEYS = ("include_dirs", "headers")


@dataclass
class Options:
    """Everything a run needs besides the transform itself."""

    defines: List[str] = field(default_factory=list)
    include_dirs: List[str] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    namespace: Optional[str] = None
    output_dir: Optional[str] = None
    library_name: Optional[str] = None
    template: str = DEFAULT_TEMPLATE
    assembly: str = ""
    debug: bool = False
    verbose: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "Options":
        """Build options from a mapping; relative paths resolve against ``base_dir``."""
        known = {name for name in cls.__dataclass_fields__}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        values: Dict[str, Any] = dict(data)
        for key in _LIST_KEYS:
            raw = values.get(key)
            if raw is None:
                continue
            if isinstance(raw, str):
                raw = [raw]
            if not isinstance(raw, list):
                raise ConfigError(f"'{key}' must be a list")
            values[key] = [str(item) for item in raw]

        if base_dir is not None:
            for key in _PATH_LIST_KEYS:
                if key in values:
                    values[key] = [_resolve(base_dir, item) for item in values[key]]
            for key in ("output_dir", "assembly"):
                raw = values.get(key)
                if raw and _looks_like_path(str(raw)):
                    values[key] = _resolve(base_dir, str(raw))

        return cls(**values)

    def merge(self, overrides: Dict[str, Any]) -> "Options":
        """Return a copy with ``overrides`` applied.

        ``None`` values are ignored, list values extend the existing lists and
        ``True`` flags switch the corresponding option on.
        """
        data = self.to_dict()
        for key, value in overrides.items():
            if key not in data:
                raise ConfigError(f"Unknown option '{key}'")
            if value is None:
                continue
            if key in _LIST_KEYS:
                data[key] = list(data[key]) + list(value)
            elif isinstance(value, bool):
                data[key] = data[key] or value
            else:
                data[key] = value
        return Options(**data)

    def validate(self) -> "Options":
        """Check required values and fill in derived defaults."""
        if not self.assembly or not str(self.assembly).strip():
            raise ConfigError("no assembly provided")
        if not self.template:
            raise ConfigError("no template provided")
        if not self.namespace:
            self.namespace = self.library_name or DEFAULT_NAMESPACE
        if not self.output_dir:
            self.output_dir = "."
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the options to a basic dictionary (useful for debugging)."""
        return {
            "defines": list(self.defines),
            "include_dirs": list(self.include_dirs),
            "headers": list(self.headers),
            "namespace": self.namespace,
            "output_dir": self.output_dir,
            "library_name": self.library_name,
            "template": self.template,
            "assembly": self.assembly,
            "debug": self.debug,
            "verbose": self.verbose,
        }


def _resolve(base_dir: Path, raw: str) -> str:
    path = Path(raw)
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _looks_like_path(raw: str) -> bool:
    return raw.endswith(".py") or "/" in raw or "\\" in raw


def load_options(path: Path | str) -> Options:
    """Load options from a JSON or YAML file."""

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    raw_text = config_path.read_text()
    suffix = config_path.suffix.lower()

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text) or {}
        elif suffix == ".json":
            data = json.loads(raw_text or "{}")
        else:
            raise ConfigError(
                f"Unsupported configuration format '{suffix}'. Use .yaml, .yml, or .json."
            )
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a JSON/YAML object at the top level.")

    base_dir = config_path.parent.resolve()
    return Options.from_dict(data, base_dir)
