# File: modelgen/errors.py
"""
modelgen - Error Types
========================
Exceptions raised by the generation pipeline.

``SchemaNotFound`` and ``UnsynthesizableField`` are per-table problems:
the resolver turns the former into a decline and the warm-cache pass
collects the latter.  ``PersistenceFailure`` is recovered locally by
transient activation.  ``ConnectionUnavailable`` is always fatal.
"""

from __future__ import annotations

from typing import List, Optional


class ModelGenError(Exception):
    """Base error for model generation."""

    pass


class SchemaNotFound(ModelGenError):
    """The requested table does not exist in the schema source."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table not found: {table!r}")
        self.table = table


class UnsynthesizableField(ModelGenError):
    """A field cannot be expressed as an attribute of a generated class."""

    def __init__(self, table: str, field: str, reason: str) -> None:
        super().__init__(
            f"Can't create a property for field {field!r} of table {table!r}: {reason}"
        )
        self.table = table
        self.field = field
        self.reason = reason


class PersistenceFailure(ModelGenError):
    """Writing a generated artifact to the cache directory failed."""

    def __init__(self, path: str, cause: Optional[BaseException] = None) -> None:
        detail: str = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to write generated class to {path}{detail}")
        self.path = path
        self.cause = cause


class ConnectionUnavailable(ModelGenError):
    """The schema source could not be reached."""

    def __init__(self, identity: str, cause: Optional[BaseException] = None) -> None:
        detail: str = f": {cause}" if cause is not None else ""
        super().__init__(f"Schema source unavailable ({identity}){detail}")
        self.identity = identity
        self.cause = cause


__all__: List[str] = [
    "ModelGenError",
    "SchemaNotFound",
    "UnsynthesizableField",
    "PersistenceFailure",
    "ConnectionUnavailable",
]
