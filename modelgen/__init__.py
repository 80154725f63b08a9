# File: modelgen/__init__.py
"""
modelgen — Table Gateway & Record Class Generator
===================================================

Generates two classes per database table from its live schema (primary
key, field defaults and field types):

    - a **table gateway** (``UserTable``) exposing the table metadata, and
    - a **record** (``User``) with one typed attribute per field.

Generated classes are written as Python modules to a cache directory and
reused until the table schema changes; a schema fingerprint embedded in
each module decides when to regenerate.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌────────────────┐
    │  CLI / hook  │────▶│ ModelGenerator │────▶│ ClassResolver  │
    │ (cli, loader)│     │ (generator.py) │     │ (resolver.py)  │
    └──────────────┘     └────────────────┘     └───────┬────────┘
                                                        │
                 ┌──────────────┬───────────────┬───────┴──────┐
                 ▼              ▼               ▼              ▼
           ┌──────────┐  ┌────────────┐  ┌───────────┐  ┌──────────┐
           │  schema  │  │  checksum  │  │ templates │  │  store   │
           └──────────┘  └────────────┘  └───────────┘  └──────────┘

Usage::

    from modelgen import GeneratorConfig, InMemorySchemaSource, ModelGenerator

    source = InMemorySchemaSource.from_file(Path("schema.yaml"))
    with ModelGenerator(source, GeneratorConfig(cache_path=Path(".cache"))) as gen:
        gen.enable()
        from app.models import User, UserTable

Public API:
    - ModelGenerator        — Facade: import hook, warm cache, lifecycle
    - GeneratorConfig       — Settings model
    - InMemorySchemaSource  — Dict / YAML backed schema source
    - SQLAlchemySchemaSource — Reflection of a live database
    - Table, Record         — Base classes of generated classes
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from modelgen.casting import cast_value
from modelgen.checksum import ChecksumService, fingerprint_schema
from modelgen.errors import (
    ConnectionUnavailable,
    ModelGenError,
    PersistenceFailure,
    SchemaNotFound,
    UnsynthesizableField,
)
from modelgen.generator import ModelGenerator, WarmCache, WarmCacheReport, load_config_file
from modelgen.loader import ModelFinder
from modelgen.models import ArtifactKind, GeneratedArtifact, GeneratorConfig, TableSchema
from modelgen.record import Record
from modelgen.registry import ModelRegistry
from modelgen.resolver import ClassResolver, Resolution, ResolutionOutcome
from modelgen.schema import InMemorySchemaSource, SchemaSource, SQLAlchemySchemaSource
from modelgen.store import ActivatedArtifact, ArtifactStore
from modelgen.table import Table
from modelgen.templates import CodeSynthesizer
from modelgen.utils import camelcase, uncamelcase

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Facade
    "ModelGenerator",
    "WarmCache",
    "WarmCacheReport",
    "load_config_file",
    # Models
    "ArtifactKind",
    "GeneratedArtifact",
    "GeneratorConfig",
    "TableSchema",
    # Schema sources
    "SchemaSource",
    "InMemorySchemaSource",
    "SQLAlchemySchemaSource",
    # Pipeline
    "ChecksumService",
    "fingerprint_schema",
    "CodeSynthesizer",
    "ArtifactStore",
    "ActivatedArtifact",
    "ClassResolver",
    "Resolution",
    "ResolutionOutcome",
    "ModelFinder",
    "ModelRegistry",
    # Runtime bases
    "Table",
    "Record",
    "cast_value",
    # Errors
    "ModelGenError",
    "SchemaNotFound",
    "UnsynthesizableField",
    "PersistenceFailure",
    "ConnectionUnavailable",
    # Utilities
    "camelcase",
    "uncamelcase",
]
