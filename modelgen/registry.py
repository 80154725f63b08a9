# File: modelgen/registry.py
"""
modelgen - Model Registry
===========================
Process state shared by one ``ModelGenerator``:

1. **Base-class overrides** — which class a generated gateway or record
   extends, per role and per connection identity, with a built-in default.
2. **Activated classes** — every generated class made available so far,
   keyed by qualified name.  Activation is terminal: once a name is in the
   registry it is never resolved again.

A registry is created explicitly and torn down with ``close()``.
"""

from __future__ import annotations

import logging
import sys
from types import ModuleType
from typing import Dict, List, Optional, Tuple, Union

from modelgen.models import ArtifactKind
from modelgen.utils import split_class

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.registry")

RoleInput = Union[ArtifactKind, str]


def _builtin_default(role: ArtifactKind) -> type:
    if role is ArtifactKind.TABLE:
        from modelgen.table import Table

        return Table
    from modelgen.record import Record

    return Record


class ModelRegistry:
    """Base-class lookup and the set of activated generated classes."""

    def __init__(self) -> None:
        self._overrides: Dict[Tuple[ArtifactKind, Optional[str]], type] = {}
        self._activated: Dict[str, type] = {}

    # -- Base classes -------------------------------------------------------

    def register_default_class(
        self,
        role: RoleInput,
        cls: type,
        connection: Optional[str] = None,
    ) -> None:
        """
        Use *cls* as the base of generated classes of *role*.

        With *connection* the override only applies to classes generated
        from that schema source; without it, it applies to all sources.
        """
        role = ArtifactKind(role)
        expected: type = _builtin_default(role)
        if not (isinstance(cls, type) and issubclass(cls, expected)):
            raise TypeError(
                f"Base class for {role.value} must subclass {expected.__name__}, got {cls!r}."
            )
        if "<locals>" in cls.__qualname__:
            raise TypeError(f"Base class {cls.__qualname__} is not importable by name.")
        self._overrides[(role, connection)] = cls
        logger.debug(
            "Registered %s base class %s for connection %s.",
            role.value,
            cls.__qualname__,
            connection or "*",
        )

    def get_default_class(self, role: RoleInput, connection: Optional[str] = None) -> type:
        """Resolve the base class for *role*: connection override, global override, built-in."""
        role = ArtifactKind(role)
        for key in ((role, connection), (role, None)):
            if key in self._overrides:
                return self._overrides[key]
        return _builtin_default(role)

    # -- Activated classes --------------------------------------------------

    def is_activated(self, qualified_name: str) -> bool:
        return qualified_name in self._activated

    def get_activated(self, qualified_name: str) -> Optional[type]:
        return self._activated.get(qualified_name)

    @property
    def activated_names(self) -> List[str]:
        return list(self._activated)

    def activate(self, qualified_name: str, cls: type) -> type:
        """
        Record *cls* as the class for *qualified_name*.

        If the namespace module is imported the class is also set on it, so
        later attribute lookups never reach the import hook.  A name that is
        already active keeps its first class.
        """
        existing: Optional[type] = self._activated.get(qualified_name)
        if existing is not None:
            return existing

        namespace, class_name = split_class(qualified_name)
        cls.__module__ = namespace or cls.__module__
        self._activated[qualified_name] = cls

        module: Optional[ModuleType] = sys.modules.get(namespace)
        if module is not None:
            setattr(module, class_name, cls)

        logger.debug("Activated %s.", qualified_name)
        return cls

    def close(self) -> None:
        """Forget all overrides and detach activated classes from their modules."""
        for qualified_name in self._activated:
            namespace, class_name = split_class(qualified_name)
            module: Optional[ModuleType] = sys.modules.get(namespace)
            if module is not None and getattr(module, class_name, None) is self._activated[qualified_name]:
                delattr(module, class_name)
        self._activated.clear()
        self._overrides.clear()
        logger.debug("Registry closed.")

    def __repr__(self) -> str:
        return f"<ModelRegistry {len(self._activated)} active, {len(self._overrides)} overrides>"


__all__: List[str] = ["ModelRegistry"]
