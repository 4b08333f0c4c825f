"""Registration table and loader for library transforms."""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple, Type, TypeVar

from cxxbind.core.errors import LoadError

from .base import LibraryTransform, NullTransform

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Type[LibraryTransform])


class TransformRegistry:
    """Name to constructor table of the transforms known to the process."""

    def __init__(self, builtins: Optional[Mapping[str, Type[LibraryTransform]]] = None):
        self._transforms: Dict[str, Type[LibraryTransform]] = {}
        for name, transform_cls in (builtins or {}).items():
            self.register(name, transform_cls)

    def register(self, name: str, transform_cls: Type[LibraryTransform]) -> None:
        if not (isinstance(transform_cls, type) and issubclass(transform_cls, LibraryTransform)):
            raise TypeError(f"{transform_cls!r} is not a LibraryTransform subclass")
        existing = self._transforms.get(name)
        if existing is not None and existing is not transform_cls:
            if _same_definition(existing, transform_cls):
                logger.debug("Re-registering transform '%s' from a reloaded module", name)
            else:
                raise LoadError(
                    f"Transform name '{name}' is already registered by {existing.__module__}.{existing.__qualname__}"
                )
        self._transforms[name] = transform_cls
        logger.debug("Registered transform '%s' (%s)", name, transform_cls.__qualname__)

    def get(self, name: str) -> Optional[Type[LibraryTransform]]:
        return self._transforms.get(name)

    def names(self) -> Iterator[str]:
        return iter(self._transforms)

    def defined_in(self, module_name: str) -> Dict[str, Type[LibraryTransform]]:
        """Transforms registered by the module called ``module_name``"""
        return {
            name: transform_cls
            for name, transform_cls in self._transforms.items()
            if transform_cls.__module__ == module_name
        }

    def __contains__(self, name: str) -> bool:
        return name in self._transforms

    def __len__(self) -> int:
        return len(self._transforms)


def _same_definition(first: type, second: type) -> bool:
    return first.__module__ == second.__module__ and first.__qualname__ == second.__qualname__


default_registry = TransformRegistry()


def register_transform(name: Optional[str] = None, registry: Optional[TransformRegistry] = None) -> Callable[[T], T]:
    """Class decorator adding a transform to the registration table.

    ::

        @register_transform("mylib")
        class MyLibTransform(LibraryTransform):
            def setup_headers(self, headers):
                headers.append("mylib/config.h")
    """
    def decorator(transform_cls: T) -> T:
        target = registry if registry is not None else default_registry
        target.register(name or transform_cls.__name__, transform_cls)
        return transform_cls

    return decorator


def split_selector(spec: str) -> Tuple[str, Optional[str]]:
    """Split ``module:name``; drive letters and plain paths are left alone"""
    target, sep, selector = spec.rpartition(":")
    if not sep or len(target) <= 1 or not selector or "/" in selector or "\\" in selector:
        return spec, None
    return target, selector


class PluginRegistry:
    """Locate and instantiate exactly one library transform."""

    def __init__(
        self,
        available_transforms: Optional[Mapping[str, Type[LibraryTransform]]] = None,
        registry: Optional[TransformRegistry] = None,
    ):
        self.registry = registry if registry is not None else default_registry
        for name, transform_cls in (available_transforms or {}).items():
            self.registry.register(name, transform_cls)
        self._loaded: Dict[str, ModuleType] = {}

    def load(self, spec: str) -> LibraryTransform:
        """Instantiate the transform named by ``spec``.

        ``spec`` is a registered transform name, a path to a Python file or a
        dotted module name, optionally followed by ``:name`` to choose one of
        the transforms a module registers.
        """
        if not spec or not spec.strip():
            raise LoadError("no assembly provided")

        target, selector = split_selector(spec.strip())
        if selector is None and target in self.registry:
            return self._instantiate(target, self.registry.get(target))

        module = self._load_module(target)
        candidates = self.registry.defined_in(module.__name__)

        if selector is not None:
            transform_cls = candidates.get(selector)
            if transform_cls is None:
                raise LoadError(f"'{target}' does not register a transform named '{selector}'")
            return self._instantiate(selector, transform_cls)

        if not candidates:
            logger.warning("No library transform registered by '%s'; continuing without one", target)
            return NullTransform()

        if len(candidates) > 1:
            names = ", ".join(sorted(candidates))
            raise LoadError(
                f"'{target}' registers several transforms ({names}); select one with '{target}:<name>'"
            )

        name, transform_cls = next(iter(candidates.items()))
        logger.info("Found library transform: %s", transform_cls.__name__)
        return self._instantiate(name, transform_cls)

    # Helpers ---------------------------------------------------------------

    def _load_module(self, target: str) -> ModuleType:
        if target in self._loaded:
            return self._loaded[target]

        if _is_path(target):
            module = self._load_file(Path(target))
        else:
            try:
                module = importlib.import_module(target)
            except Exception as exc:
                raise LoadError(f"assembly '{target}' could not be loaded: {exc}") from exc

        self._loaded[target] = module
        return module

    @staticmethod
    def _load_file(path: Path) -> ModuleType:
        full_path = path.expanduser().resolve()
        if not full_path.is_file():
            raise LoadError(f"assembly '{path}' could not be loaded: file not found")

        digest = hashlib.md5(str(full_path).encode()).hexdigest()[:8]
        module_name = f"cxxbind_transform_{full_path.stem}_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, full_path)
        if spec is None or spec.loader is None:
            raise LoadError(f"assembly '{path}' could not be loaded: not a Python module")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise LoadError(f"assembly '{path}' could not be loaded: {exc}") from exc
        return module

    @staticmethod
    def _instantiate(name: str, transform_cls: Type[LibraryTransform]) -> LibraryTransform:
        try:
            transform = transform_cls()
        except Exception as exc:
            raise LoadError(f"Transform '{name}' could not be constructed: {exc}") from exc
        logger.debug("Loaded transform %s", name)
        return transform


def _is_path(target: str) -> bool:
    return target.endswith(".py") or "/" in target or "\\" in target or Path(target).is_file()
