# File: modelgen/models.py
"""
modelgen - Core Data Models
=============================
Pydantic V2 models for schema metadata, generated artifacts and
configuration.  These are the values passed between the pipeline stages:

    SchemaSource → TableSchema → CodeSynthesizer → GeneratedArtifact
                                                    → ArtifactStore

``TableSchema`` is always read fresh from the schema source; nothing in
this package keeps one around between resolutions.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.models")

_NAMESPACE_RE: re.Pattern[str] = re.compile(
    r"^(?:[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)?$"
)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ArtifactKind(str, Enum):
    """The two classes generated for every table."""

    TABLE = "table"
    RECORD = "record"


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


class TableSchema(BaseModel):
    """
    Metadata of one table as reported by the schema source.

    ``field_defaults`` and ``field_types`` are ordered mappings keyed by the
    same field names.  ``primary_key`` is an ordered list, so composite keys
    keep their column order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Table name.")
    primary_key: List[str] = Field(default_factory=list, description="Primary key fields.")
    field_defaults: Dict[str, Any] = Field(
        default_factory=dict, description="Field name → default value (None if absent)."
    )
    field_types: Dict[str, str] = Field(
        default_factory=dict, description="Field name → primitive tag or value-object path."
    )

    @model_validator(mode="after")
    def _same_fields(self) -> "TableSchema":
        if set(self.field_defaults) != set(self.field_types):
            missing: List[str] = sorted(set(self.field_defaults) ^ set(self.field_types))
            raise ValueError(
                f"Table '{self.name}': defaults and types disagree on fields {missing}."
            )
        return self

    @property
    def field_names(self) -> List[str]:
        return list(self.field_types)

    def __repr__(self) -> str:
        return f"<TableSchema {self.name} ({len(self.field_types)} fields)>"


# ---------------------------------------------------------------------------
# Generated artifacts
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """Source code of one generated class plus the fingerprint it embeds."""

    model_config = ConfigDict(frozen=True, extra="forbid", use_enum_values=False)

    qualified_name: str = Field(..., min_length=1)
    kind: ArtifactKind
    table_name: str = Field(..., min_length=1)
    source_text: str
    fingerprint: str = Field(..., pattern=r"^[0-9a-f]{64}$")

    @property
    def namespace(self) -> str:
        return self.qualified_name.rpartition(".")[0]

    @property
    def class_name(self) -> str:
        return self.qualified_name.rpartition(".")[2]

    def __repr__(self) -> str:
        return f"<GeneratedArtifact {self.kind.value} {self.qualified_name} @{self.fingerprint[:8]}>"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class GeneratorConfig(BaseModel):
    """
    Settings for a ``ModelGenerator``.

    ``cache_path`` unset means generated classes are compiled in memory on
    every run and never written to disk.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    cache_path: Optional[Path] = Field(
        default=None, description="Root directory of the generated-class cache."
    )
    model_namespace: Optional[str] = Field(
        default=None,
        description="Namespace of generated classes (defaults to the schema source's).",
    )
    base_namespace: str = Field(
        default="base",
        min_length=1,
        description="Sub-namespace whose classes are meant to be extended by hand.",
    )
    source_extension: str = Field(default=".py", pattern=r"^\.[A-Za-z0-9]+$")
    base_classes: Dict[str, str] = Field(
        default_factory=dict,
        description="Role ('table' or 'record') → dotted path of a custom base class.",
    )

    @field_validator("model_namespace")
    @classmethod
    def _valid_namespace(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _NAMESPACE_RE.match(v):
            raise ValueError(f"Invalid model namespace: {v!r}")
        return v

    @field_validator("base_namespace")
    @classmethod
    def _valid_base_namespace(cls, v: str) -> str:
        if not _NAMESPACE_RE.match(v) or "." in v:
            raise ValueError(f"Base namespace must be a single identifier: {v!r}")
        return v

    @field_validator("base_classes")
    @classmethod
    def _known_roles(cls, v: Dict[str, str]) -> Dict[str, str]:
        unknown: List[str] = [role for role in v if role not in {k.value for k in ArtifactKind}]
        if unknown:
            raise ValueError(f"Unknown base class roles: {unknown}")
        return v


__all__: List[str] = [
    "ArtifactKind",
    "TableSchema",
    "GeneratedArtifact",
    "GeneratorConfig",
]

logger.debug("modelgen.models loaded.")
