# File: modelgen/generator.py
"""
modelgen - Model Generator (Orchestrator)
===========================================

Connects the pipeline stages behind one object:

    SchemaSource → ChecksumService → ClassResolver → CodeSynthesizer
                                                   → ArtifactStore

Workflow::

    1. Build a ``ModelGenerator`` from a schema source and a config.
    2. ``enable()`` installs the import hook; generated classes can now be
       imported from the model namespace.
    3. ``warm_cache()`` optionally generates every class up front and
       returns a ``WarmCacheReport``.
    4. ``close()`` (or leaving the ``with`` block) undoes all of it.

Error handling strategy:
    - Per-table problems (unsynthesizable fields, table names without an
      exact class-name round trip, `_table` names whose record class reads
      as a gateway) are collected by the warm-cache pass.
    - Cache write failures fall back to in-memory classes.
    - ``ConnectionUnavailable`` always propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from modelgen.casting import import_object
from modelgen.checksum import ChecksumService
from modelgen.errors import UnsynthesizableField
from modelgen.loader import ModelFinder
from modelgen.models import GeneratorConfig, TableSchema
from modelgen.registry import ModelRegistry
from modelgen.resolver import TABLE_SUFFIX, ClassResolver, Resolution, decompose_class_name
from modelgen.schema import SchemaSource, load_table_schema
from modelgen.store import ArtifactStore
from modelgen.templates import CodeSynthesizer
from modelgen.utils import Timer, camelcase, is_valid_table_name, join_class, load_document

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.generator")


# ---------------------------------------------------------------------------
# Warm-cache report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class WarmCacheReport:
    """
    Outcome of ``WarmCache.warm_all()``.

    ``failures`` has one entry per failing table, holding every problem
    found for that table.
    """

    namespace: str = ""
    cache_path: str = ""
    tables: List[str] = field(default_factory=list)
    materialized: List[str] = field(default_factory=list)
    failures: Dict[str, List[str]] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failures

    def add_failure(self, table: str, message: str) -> None:
        self.failures.setdefault(table, []).append(message)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  modelgen — Warm Cache Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Namespace:        {self.namespace}")
        lines.append(f"  Cache:            {self.cache_path or '(in memory)'}")
        lines.append(f"  Tables:           {len(self.tables)}")
        lines.append(f"  Classes ready:    {len(self.materialized)}")
        lines.append(f"  Total time:       {self.elapsed_seconds:.3f}s")

        if self.failures:
            lines.append(f"{'─'*60}")
            lines.append(f"  Failed Tables ({len(self.failures)}):")
            for table, messages in self.failures.items():
                lines.append(f"    ✗ {table}")
                for message in messages:
                    lines.append(f"        {message}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# WarmCache
# ---------------------------------------------------------------------------


class WarmCache:
    """Generates the record and the gateway of every table."""

    def __init__(self, source: SchemaSource, resolver: ClassResolver) -> None:
        self._source: SchemaSource = source
        self._resolver: ClassResolver = resolver

    def warm_all(self) -> WarmCacheReport:
        """
        Resolve ``<Name>`` and ``<Name>Table`` for every table.

        A failing table never stops the pass.

        Raises:
            ConnectionUnavailable: If the schema source can't be reached.
        """
        namespace: str = self._resolver.model_namespace
        report = WarmCacheReport(namespace=namespace)

        with Timer("warm cache") as timer:
            for table in self._source.list_all_tables():
                report.tables.append(table)
                if not is_valid_table_name(table):
                    report.add_failure(
                        table, "table name can't be mapped to a class name and back"
                    )
                    continue

                class_name: str = camelcase(table)
                for name in (class_name, class_name + TABLE_SUFFIX):
                    qualified_name: str = join_class(namespace, name)
                    owner: str = decompose_class_name(name)[1]
                    if owner != table:
                        # `time_table` gives record `TimeTable`, the gateway name of `time`
                        report.add_failure(
                            table,
                            f"{qualified_name} is the gateway class name of table "
                            f"'{owner}'; the record of '{table}' can't be resolved",
                        )
                        continue
                    try:
                        resolution: Resolution = self._resolver.resolve(qualified_name)
                    except UnsynthesizableField as exc:
                        report.add_failure(table, str(exc))
                        continue
                    if resolution:
                        report.materialized.append(qualified_name)
                    else:
                        report.add_failure(
                            table, f"{qualified_name} not resolved ({resolution.outcome.value})"
                        )

        report.elapsed_seconds = timer.elapsed
        logger.info(
            "Warm cache: %d tables, %d classes, %d failed tables.",
            len(report.tables),
            len(report.materialized),
            len(report.failures),
        )
        return report


# ---------------------------------------------------------------------------
# Config loader
# ---------------------------------------------------------------------------


def load_config_file(path: Path) -> GeneratorConfig:
    """
    Load a ``GeneratorConfig`` from a JSON or YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or fails validation.
    """
    data: Dict[str, Any] = load_document(path)
    try:
        return GeneratorConfig.model_validate(data)
    except Exception as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc


# ---------------------------------------------------------------------------
# ModelGenerator facade
# ---------------------------------------------------------------------------


class ModelGenerator:
    """
    Generates table gateway and record classes for one schema source.

    Usage::

        source = SQLAlchemySchemaSource("sqlite:///app.db", namespace="app.models")
        with ModelGenerator(source, GeneratorConfig(cache_path=Path(".cache"))) as gen:
            gen.enable()
            from app.models import User, UserTable

    Each generator owns its registry; nothing is shared between generators.
    """

    def __init__(
        self,
        source: SchemaSource,
        config: Optional[GeneratorConfig] = None,
        *,
        registry: Optional[ModelRegistry] = None,
    ) -> None:
        self.config: GeneratorConfig = config or GeneratorConfig()
        self.source: SchemaSource = source

        namespace: str = self.config.model_namespace or source.model_namespace()
        if not namespace:
            raise ValueError("A model namespace is required (config or schema source).")
        self.model_namespace: str = namespace

        self.registry: ModelRegistry = registry or ModelRegistry()
        for role, dotted_path in self.config.base_classes.items():
            self.registry.register_default_class(role, import_object(dotted_path), source.identity)

        self.checksums = ChecksumService(source)
        self.synthesizer = CodeSynthesizer(
            self.registry, model_namespace=namespace, connection=source.identity
        )
        self.store = ArtifactStore(
            self.registry, self.config.cache_path, extension=self.config.source_extension
        )
        self.resolver = ClassResolver(
            source,
            self.checksums,
            self.synthesizer,
            self.store,
            self.registry,
            model_namespace=namespace,
            base_namespace=self.config.base_namespace,
        )
        self._finder = ModelFinder(self.resolver)
        self._warm_cache = WarmCache(source, self.resolver)

        logger.debug(
            "ModelGenerator initialised: namespace=%s, cache=%s, source=%s.",
            namespace,
            self.config.cache_path,
            source.identity,
        )

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._finder.installed

    def enable(self) -> "ModelGenerator":
        """Make generated classes importable from the model namespace."""
        self._finder.install()
        logger.info("Model generation enabled for %s.", self.model_namespace)
        return self

    def disable(self) -> None:
        self._finder.uninstall()
        logger.info("Model generation disabled for %s.", self.model_namespace)

    def close(self) -> None:
        """Disable the hook and forget every activated class."""
        self.disable()
        self.registry.close()

    def __enter__(self) -> "ModelGenerator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -----------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------

    def resolve(self, qualified_name: str) -> Resolution:
        return self.resolver.resolve(qualified_name)

    def fingerprint(self, table: str) -> str:
        return self.checksums.fingerprint(table)

    def generate_table(self, table: str, namespace: Optional[str] = None) -> str:
        """Source of the gateway class of *table*, without activating it."""
        schema: TableSchema = load_table_schema(self.source, table)
        artifact = self.synthesizer.synthesize_table_gateway(
            schema, camelcase(table) + TABLE_SUFFIX, namespace or self.model_namespace
        )
        return artifact.source_text

    def generate_record(self, table: str, namespace: Optional[str] = None) -> str:
        """Source of the record class of *table*, without activating it."""
        schema: TableSchema = load_table_schema(self.source, table)
        artifact = self.synthesizer.synthesize_record(
            schema, camelcase(table), namespace or self.model_namespace
        )
        return artifact.source_text

    def warm_cache(self) -> WarmCacheReport:
        report: WarmCacheReport = self._warm_cache.warm_all()
        report.cache_path = str(self.config.cache_path or "")
        return report

    def __repr__(self) -> str:
        return f"<ModelGenerator {self.model_namespace} ({self.source.identity})>"


__all__: List[str] = [
    "ModelGenerator",
    "WarmCache",
    "WarmCacheReport",
    "load_config_file",
]
