# File: modelgen/loader.py
"""
modelgen - Import Hook
========================
Makes generated classes importable by name::

    from app.models import User, UserTable

``ModelFinder`` sits at the front of ``sys.meta_path``.  For the model
namespace, its base sub-namespace and their parent packages it lets the
regular finders locate a real package first; when there is none it supplies
an empty package instead.  Model namespace modules get a module-level
``__getattr__`` which asks the ``ClassResolver`` for unknown names, so the
class is generated (or loaded from the cache) on first access.

Names the resolver declines raise ``AttributeError`` as usual, which turns
``from app.models import Missing`` into the normal ``ImportError``.
"""

from __future__ import annotations

import importlib.abc
import importlib.machinery
import importlib.util
import logging
import sys
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from modelgen.resolver import ClassResolver

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.loader")

_HOOK_MARKER: str = "__modelgen_hook__"


class _EmptyPackageLoader(importlib.abc.Loader):
    """Loader for model namespaces that have no package on disk."""

    def __init__(self, finder: "ModelFinder") -> None:
        self._finder = finder

    def create_module(self, spec: importlib.machinery.ModuleSpec) -> Optional[ModuleType]:
        return None

    def exec_module(self, module: ModuleType) -> None:
        self._finder.created.add(module.__name__)
        if self._finder.is_model_namespace(module.__name__):
            self._finder.install_hook(module)
        logger.debug("Created empty package %s.", module.__name__)


class _HookingLoader(importlib.abc.Loader):
    """Wraps the loader of a real model namespace package."""

    def __init__(self, wrapped: Any, finder: "ModelFinder") -> None:
        self._wrapped = wrapped
        self._finder = finder

    def create_module(self, spec: importlib.machinery.ModuleSpec) -> Optional[ModuleType]:
        create = getattr(self._wrapped, "create_module", None)
        return create(spec) if create is not None else None

    def exec_module(self, module: ModuleType) -> None:
        self._wrapped.exec_module(module)
        self._finder.install_hook(module)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._wrapped, name)


class ModelFinder(importlib.abc.MetaPathFinder):
    """
    Meta path finder serving the model namespaces of one resolver.

    Usage::

        finder = ModelFinder(resolver)
        finder.install()
        from app.models import User
        finder.uninstall()
    """

    def __init__(self, resolver: ClassResolver) -> None:
        self._resolver: ClassResolver = resolver
        self._previous_hooks: Dict[str, Optional[Callable[[str], Any]]] = {}
        self.created: Set[str] = set()

    # -----------------------------------------------------------------
    # Namespaces
    # -----------------------------------------------------------------

    def is_model_namespace(self, name: str) -> bool:
        return self._resolver.handles_namespace(name)

    def _is_managed(self, name: str) -> bool:
        return any(
            ns == name or ns.startswith(name + ".") for ns in self._resolver.namespaces
        )

    # -----------------------------------------------------------------
    # MetaPathFinder
    # -----------------------------------------------------------------

    def find_spec(
        self,
        fullname: str,
        path: Optional[Sequence[str]],
        target: Optional[ModuleType] = None,
    ) -> Optional[importlib.machinery.ModuleSpec]:
        if not self._is_managed(fullname):
            return None

        for finder in list(sys.meta_path):
            if finder is self:
                continue
            find_spec = getattr(finder, "find_spec", None)
            if find_spec is None:
                continue
            spec = find_spec(fullname, path, target)
            if spec is None:
                continue
            if self.is_model_namespace(fullname) and spec.loader is not None:
                spec.loader = _HookingLoader(spec.loader, self)
            return spec

        return importlib.util.spec_from_loader(
            fullname, _EmptyPackageLoader(self), is_package=True
        )

    # -----------------------------------------------------------------
    # Module hook
    # -----------------------------------------------------------------

    def install_hook(self, module: ModuleType) -> None:
        """Give *module* a ``__getattr__`` that resolves generated classes."""
        name: str = module.__name__
        if name in self._previous_hooks:
            return

        previous: Optional[Callable[[str], Any]] = module.__dict__.get("__getattr__")
        resolver: ClassResolver = self._resolver

        def __getattr__(attr: str) -> Any:
            if not attr.startswith("_"):
                model_class: Optional[type] = resolver.resolve(f"{name}.{attr}").model_class
                if model_class is not None:
                    setattr(module, attr, model_class)
                    return model_class
            if previous is not None:
                return previous(attr)
            raise AttributeError(f"module {name!r} has no attribute {attr!r}")

        setattr(__getattr__, _HOOK_MARKER, True)
        module.__getattr__ = __getattr__  # type: ignore[attr-defined]
        self._previous_hooks[name] = previous
        logger.debug("Installed class hook on %s.", name)

    def _remove_hook(self, name: str, previous: Optional[Callable[[str], Any]]) -> None:
        module: Optional[ModuleType] = sys.modules.get(name)
        if module is None:
            return
        current = module.__dict__.get("__getattr__")
        if current is None or not getattr(current, _HOOK_MARKER, False):
            return
        if previous is None:
            del module.__getattr__
        else:
            module.__getattr__ = previous  # type: ignore[attr-defined]

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    @property
    def installed(self) -> bool:
        return self in sys.meta_path

    def install(self) -> None:
        """Put the finder on ``sys.meta_path`` and hook already imported namespaces."""
        if not self.installed:
            sys.meta_path.insert(0, self)
        for ns in self._resolver.namespaces:
            module: Optional[ModuleType] = sys.modules.get(ns)
            if module is not None:
                self.install_hook(module)
        logger.debug("Model finder installed for %s.", ", ".join(self._resolver.namespaces))

    def uninstall(self) -> None:
        """Undo ``install``: remove the finder, the hooks and the empty packages."""
        if self.installed:
            sys.meta_path.remove(self)

        for name, previous in self._previous_hooks.items():
            self._remove_hook(name, previous)
        self._previous_hooks.clear()

        # Deepest first so parents are still around while children are detached.
        for name in sorted(self.created, key=lambda n: n.count("."), reverse=True):
            created: Optional[ModuleType] = sys.modules.pop(name, None)
            parent_name, _, child = name.rpartition(".")
            parent: Optional[ModuleType] = sys.modules.get(parent_name) if parent_name else None
            if created is not None and parent is not None and parent.__dict__.get(child) is created:
                delattr(parent, child)
        self.created.clear()
        logger.debug("Model finder uninstalled.")


__all__: List[str] = ["ModelFinder"]
