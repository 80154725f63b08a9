# File: modelgen/store.py
"""
modelgen - Artifact Store
===========================
Maps qualified class names to files under the cache root, persists
generated modules and activates them.

Responsible for:
    1. Deterministic paths: ``<root>/<namespace segments>/<ClassName>.py``.
    2. Cache validation by the ``@checksum`` line of the module docstring,
       compared for exact equality with the expected fingerprint.
    3. Atomic writes (write-to-temp then rename); a stale file is simply
       overwritten by the next write.
    4. Activation: executing the module and registering the class.

Without a cache root nothing is read or written and every class is
compiled in memory (transient activation).
"""

from __future__ import annotations

import importlib.util
import logging
import re
import types
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from modelgen.errors import PersistenceFailure
from modelgen.models import ArtifactKind, GeneratedArtifact
from modelgen.registry import ModelRegistry
from modelgen.utils import read_file, split_class, uncamelcase, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.store")

_CHECKSUM_LINE_RE: re.Pattern[str] = re.compile(
    r"^[ \t]*@checksum[ \t]+([0-9a-f]+)[ \t]*$", re.MULTILINE
)


def embedded_fingerprint(source_text: str) -> Optional[str]:
    """Return the fingerprint on the first ``@checksum`` line, if any."""
    match = _CHECKSUM_LINE_RE.search(source_text)
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ActivatedArtifact:
    """A generated class that is ready for use."""

    artifact: GeneratedArtifact
    model_class: type
    path: Optional[Path]
    persisted: bool


# ---------------------------------------------------------------------------
# ArtifactStore
# ---------------------------------------------------------------------------


class ArtifactStore:
    """
    File cache of generated modules.

    Usage::

        store = ArtifactStore(registry, Path(".cache/models"))
        hit = store.try_load("app.models.User", fingerprint)
        if hit is None:
            store.persist_and_activate(artifact)

    Thread-safety: NOT thread-safe.  Concurrent processes may write the same
    file; the rename keeps every version complete and the last one wins.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        cache_root: Optional[Path] = None,
        *,
        extension: str = ".py",
    ) -> None:
        self._registry: ModelRegistry = registry
        self._cache_root: Optional[Path] = cache_root
        self._extension: str = extension

    @property
    def cache_root(self) -> Optional[Path]:
        return self._cache_root

    @property
    def enabled(self) -> bool:
        return self._cache_root is not None

    def path_for(self, qualified_name: str) -> Optional[Path]:
        """
        Cache file of *qualified_name*, or ``None`` when caching is off.

        Every dot of the qualified name becomes a directory separator, so
        ``app.models.User`` and ``app.models.base.User`` never share a file.
        """
        if self._cache_root is None:
            return None
        return self._cache_root.joinpath(*qualified_name.split(".")).with_suffix(self._extension)

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def try_load(
        self,
        qualified_name: str,
        expected_fingerprint: str,
    ) -> Optional[ActivatedArtifact]:
        """
        Activate the cached class if its file matches *expected_fingerprint*.

        Returns ``None`` on a miss: caching off, no file, unreadable file or
        a different fingerprint.  Stale files are left in place.
        """
        path: Optional[Path] = self.path_for(qualified_name)
        if path is None or not path.is_file():
            return None

        try:
            source_text: str = read_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Can't read cached %s (%s); regenerating.", path, exc)
            return None

        found: Optional[str] = embedded_fingerprint(source_text)
        if found != expected_fingerprint:
            logger.debug(
                "Stale cache for %s: %s != %s.",
                qualified_name,
                found,
                expected_fingerprint,
            )
            return None

        class_name: str = split_class(qualified_name)[1]
        is_table: bool = class_name.endswith("Table")
        artifact = GeneratedArtifact(
            qualified_name=qualified_name,
            kind=ArtifactKind.TABLE if is_table else ArtifactKind.RECORD,
            table_name=uncamelcase(class_name[:-5] if is_table else class_name) or class_name,
            source_text=source_text,
            fingerprint=expected_fingerprint,
        )
        try:
            model_class: type = self._activate_file(artifact, path)
        except SyntaxError as exc:
            logger.warning("Cached %s doesn't compile (%s); regenerating.", path, exc)
            return None
        logger.debug("Cache hit for %s (%s).", qualified_name, path)
        return ActivatedArtifact(artifact, model_class, path, True)

    def persist_and_activate(self, artifact: GeneratedArtifact) -> Optional[ActivatedArtifact]:
        """
        Write *artifact* to its cache file and activate it from there.

        Returns ``None`` when caching is off; the caller must activate the
        artifact transiently.

        Raises:
            PersistenceFailure: If the file can't be written.
        """
        path: Optional[Path] = self.path_for(artifact.qualified_name)
        if path is None:
            return None

        try:
            size: int = write_file(path, artifact.source_text)
        except OSError as exc:
            raise PersistenceFailure(str(path), exc) from exc

        model_class: type = self._activate_file(artifact, path)
        logger.info("Generated %s → %s (%d bytes).", artifact.qualified_name, path, size)
        return ActivatedArtifact(artifact, model_class, path, True)

    def activate_transient(self, artifact: GeneratedArtifact) -> ActivatedArtifact:
        """Compile and activate *artifact* in memory without touching the disk."""
        module = types.ModuleType(artifact.qualified_name)
        code = compile(artifact.source_text, f"<modelgen {artifact.qualified_name}>", "exec")
        exec(code, module.__dict__)
        model_class: type = self._register(artifact, module)
        logger.info("Generated %s in memory.", artifact.qualified_name)
        return ActivatedArtifact(artifact, model_class, None, False)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _activate_file(self, artifact: GeneratedArtifact, path: Path) -> type:
        spec = importlib.util.spec_from_file_location(artifact.qualified_name, path)
        if spec is None:
            raise ImportError(f"Can't load generated module from {path}")
        module = importlib.util.module_from_spec(spec)
        # Execute the text that was validated, never a cached .pyc of an older version.
        code = compile(artifact.source_text, str(path), "exec")
        exec(code, module.__dict__)
        return self._register(artifact, module)

    def _register(self, artifact: GeneratedArtifact, module: types.ModuleType) -> type:
        try:
            model_class: type = getattr(module, artifact.class_name)
        except AttributeError:
            raise ImportError(
                f"Generated module {artifact.qualified_name} does not define {artifact.class_name}"
            ) from None
        return self._registry.activate(artifact.qualified_name, model_class)


__all__: List[str] = [
    "ActivatedArtifact",
    "ArtifactStore",
    "embedded_fingerprint",
]
