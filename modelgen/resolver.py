# File: modelgen/resolver.py
"""
modelgen - Class Resolver
===========================
Decides, for one unresolved class name, whether it is a generated model
class and makes it available.

Resolution steps::

    namespace check → name decomposition → table lookup → fingerprint
        → cache lookup (hit: done)
        → synthesize → persist (or compile in memory) → done

Declining is not an error: it means the name is not a model class and the
caller should report it the usual way (``AttributeError`` / ``ImportError``).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from modelgen.checksum import ChecksumService
from modelgen.errors import PersistenceFailure, SchemaNotFound
from modelgen.models import ArtifactKind, GeneratedArtifact, TableSchema
from modelgen.registry import ModelRegistry
from modelgen.schema import SchemaSource, load_table_schema
from modelgen.store import ActivatedArtifact, ArtifactStore
from modelgen.templates import CodeSynthesizer
from modelgen.utils import camelcase, split_class, uncamelcase

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.resolver")

TABLE_SUFFIX: str = "Table"


class ResolutionOutcome(str, enum.Enum):
    DECLINED_NAMESPACE = "declined_namespace"
    DECLINED_NO_TABLE = "declined_no_table"
    ALREADY_ACTIVE = "already_active"
    CACHE_HIT = "cache_hit"
    SYNTHESIZED_PERSISTED = "synthesized_persisted"
    SYNTHESIZED_TRANSIENT = "synthesized_transient"

    @property
    def declined(self) -> bool:
        return self in (ResolutionOutcome.DECLINED_NAMESPACE, ResolutionOutcome.DECLINED_NO_TABLE)


@dataclass(frozen=True, slots=True)
class Resolution:
    """What happened to one class name.  Truthy when a class is available."""

    qualified_name: str
    outcome: ResolutionOutcome
    model_class: Optional[type] = None
    table_name: Optional[str] = None
    kind: Optional[ArtifactKind] = None

    def __bool__(self) -> bool:
        return self.model_class is not None


def decompose_class_name(class_name: str) -> Tuple[ArtifactKind, str]:
    """
    Split a class name into artifact kind and table name.

    Examples:
        >>> decompose_class_name("UserProfileTable")
        (<ArtifactKind.TABLE: 'table'>, 'user_profile')
        >>> decompose_class_name("UserProfile")
        (<ArtifactKind.RECORD: 'record'>, 'user_profile')
    """
    if class_name.endswith(TABLE_SUFFIX):
        return ArtifactKind.TABLE, uncamelcase(class_name[: -len(TABLE_SUFFIX)])
    return ArtifactKind.RECORD, uncamelcase(class_name)


class ClassResolver:
    """
    Resolves class names in the model namespace to generated classes.

    Usage::

        resolver = ClassResolver(source, checksums, synthesizer, store, registry,
                                 model_namespace="app.models")
        resolution = resolver.resolve("app.models.User")
        if resolution:
            User = resolution.model_class
    """

    def __init__(
        self,
        source: SchemaSource,
        checksums: ChecksumService,
        synthesizer: CodeSynthesizer,
        store: ArtifactStore,
        registry: ModelRegistry,
        *,
        model_namespace: str,
        base_namespace: str = "base",
    ) -> None:
        self._source: SchemaSource = source
        self._checksums: ChecksumService = checksums
        self._synthesizer: CodeSynthesizer = synthesizer
        self._store: ArtifactStore = store
        self._registry: ModelRegistry = registry
        self.model_namespace: str = model_namespace
        self.base_namespace: str = base_namespace

    @property
    def namespaces(self) -> List[str]:
        """The namespaces this resolver answers for."""
        return [self.model_namespace, f"{self.model_namespace}.{self.base_namespace}"]

    def handles_namespace(self, namespace: str) -> bool:
        return namespace in self.namespaces

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def resolve(self, qualified_name: str) -> Resolution:
        """
        Make *qualified_name* available if it names a generated model class.

        Raises:
            ConnectionUnavailable: If the schema source can't be reached.
            UnsynthesizableField: If the table has a field that can't be
                expressed as a record attribute.
        """
        active: Optional[type] = self._registry.get_activated(qualified_name)
        if active is not None:
            return Resolution(qualified_name, ResolutionOutcome.ALREADY_ACTIVE, active)

        namespace, class_name = split_class(qualified_name)
        if not self.handles_namespace(namespace):
            logger.debug("Declining %s: namespace %r is not a model namespace.", qualified_name, namespace)
            return Resolution(qualified_name, ResolutionOutcome.DECLINED_NAMESPACE)

        kind, table = decompose_class_name(class_name)
        stem: str = class_name[: -len(TABLE_SUFFIX)] if kind is ArtifactKind.TABLE else class_name
        if not table or camelcase(table) != stem or not self._source.table_exists(table):
            logger.debug("Declining %s: no table %r.", qualified_name, table)
            return Resolution(qualified_name, ResolutionOutcome.DECLINED_NO_TABLE, kind=kind)

        try:
            schema: TableSchema = load_table_schema(self._source, table)
        except SchemaNotFound:
            logger.debug("Declining %s: table %r disappeared.", qualified_name, table)
            return Resolution(qualified_name, ResolutionOutcome.DECLINED_NO_TABLE, kind=kind)
        fingerprint: str = self._checksums.fingerprint_of(schema)

        hit: Optional[ActivatedArtifact] = self._store.try_load(qualified_name, fingerprint)
        if hit is not None:
            return Resolution(qualified_name, ResolutionOutcome.CACHE_HIT, hit.model_class, table, kind)

        artifact: GeneratedArtifact = self._synthesize(kind, schema, class_name, namespace)
        activated: Optional[ActivatedArtifact] = None
        try:
            activated = self._store.persist_and_activate(artifact)
        except PersistenceFailure as exc:
            logger.warning("%s; using %s without caching it.", exc, qualified_name)

        if activated is not None:
            outcome: ResolutionOutcome = ResolutionOutcome.SYNTHESIZED_PERSISTED
        else:
            activated = self._store.activate_transient(artifact)
            outcome = ResolutionOutcome.SYNTHESIZED_TRANSIENT
        return Resolution(qualified_name, outcome, activated.model_class, table, kind)

    # -----------------------------------------------------------------

    def _synthesize(
        self,
        kind: ArtifactKind,
        schema: TableSchema,
        class_name: str,
        namespace: str,
    ) -> GeneratedArtifact:
        if kind is ArtifactKind.TABLE:
            return self._synthesizer.synthesize_table_gateway(schema, class_name, namespace)
        return self._synthesizer.synthesize_record(schema, class_name, namespace)


__all__: List[str] = [
    "ClassResolver",
    "Resolution",
    "ResolutionOutcome",
    "decompose_class_name",
]
