"""Library transform contract, registration table and loader."""

from __future__ import annotations

from typing import Dict

from .base import LibraryHelpers, LibraryTransform, NullTransform
from .registry import (
    PluginRegistry,
    TransformRegistry,
    default_registry,
    register_transform,
    split_selector,
)

# Built-in transforms keyed by configuration name.
_BUILTIN_TRANSFORMS: Dict[str, type[LibraryTransform]] = {
    "none": NullTransform,
}


def create_registry() -> PluginRegistry:
    return PluginRegistry(available_transforms=_BUILTIN_TRANSFORMS)


def load_transform(spec: str) -> LibraryTransform:
    """Resolve ``--assembly`` to a transform instance (raises ``LoadError``)"""
    return create_registry().load(spec)


__all__ = [
    "LibraryHelpers",
    "LibraryTransform",
    "NullTransform",
    "PluginRegistry",
    "TransformRegistry",
    "create_registry",
    "default_registry",
    "load_transform",
    "register_transform",
    "split_selector",
]
