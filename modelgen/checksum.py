# File: modelgen/checksum.py
"""
modelgen - Schema Fingerprints
================================
A fingerprint is the SHA-256 digest of a canonical serialization of a
table's ``(primary key, field defaults, field types)`` triple.

The serialization keeps mapping order (fields are emitted as ordered pairs)
and keeps value types apart (``1``, ``1.0``, ``"1"`` and ``True`` all
serialize differently), so any change to a field name, default, type or to
the primary-key order produces a different fingerprint.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List

from modelgen.models import TableSchema
from modelgen.schema import SchemaSource, load_table_schema
from modelgen.utils import sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.checksum")


def _canonical(value: Any) -> Any:
    """Convert *value* to a JSON-safe structure tagged with its Python type."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return {"float": repr(value)}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, dict):
        return {"dict": [[str(k), _canonical(v)] for k, v in value.items()]}
    cls: type = type(value)
    return {f"{cls.__module__}.{cls.__qualname__}": str(value)}


def canonical_serialization(schema: TableSchema) -> str:
    """Order-preserving serialization of the fingerprinted triple."""
    payload: List[Any] = [
        list(schema.primary_key),
        [[field, _canonical(value)] for field, value in schema.field_defaults.items()],
        [[field, type_name] for field, type_name in schema.field_types.items()],
    ]
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def fingerprint_schema(schema: TableSchema) -> str:
    """Return the fingerprint of an already loaded schema."""
    return sha256_hex(canonical_serialization(schema))


class ChecksumService:
    """Computes fingerprints of tables straight from the schema source."""

    def __init__(self, source: SchemaSource) -> None:
        self._source: SchemaSource = source

    def fingerprint(self, table: str) -> str:
        """
        Fingerprint the current schema of *table*.

        Raises:
            SchemaNotFound: If the table does not exist.
        """
        return self.fingerprint_of(load_table_schema(self._source, table))

    def fingerprint_of(self, schema: TableSchema) -> str:
        """Fingerprint a schema that was already read from the source."""
        digest: str = fingerprint_schema(schema)
        logger.debug("Fingerprint of '%s': %s", schema.name, digest)
        return digest


__all__: List[str] = [
    "ChecksumService",
    "canonical_serialization",
    "fingerprint_schema",
]
