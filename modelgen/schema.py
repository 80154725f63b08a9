# File: modelgen/schema.py
"""
modelgen - Schema Sources
===========================
The narrow interface through which the generator learns about tables, and
two implementations of it.

``SchemaSource`` is what the checksum service, the synthesizer and the
resolver consume: primary key, field defaults and field types of one table,
table existence, the list of all tables and the model namespace.

Implementations:
    - ``InMemorySchemaSource`` — dict-backed, built from a mapping or a
      YAML/JSON schema file.
    - ``SQLAlchemySchemaSource`` — live reflection of a database through
      ``sqlalchemy.inspect``.

Schema file format (YAML)::

    namespace: app.models
    tables:
      users:
        primary_key: [id]
        fields:
          id: {type: int, default: null}
          name: {type: string, default: ""}
          active: bool          # shorthand: type only, no default
"""

from __future__ import annotations

import contextlib
import logging
import re
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from sqlalchemy import create_engine, inspect, types as sqltypes
from sqlalchemy.engine import Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import InterfaceError, NoSuchTableError, OperationalError

from modelgen.errors import ConnectionUnavailable, SchemaNotFound
from modelgen.models import TableSchema
from modelgen.utils import load_document

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.schema")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SchemaSource(Protocol):
    """Schema introspection needed by the generator."""

    @property
    def identity(self) -> str:
        """Identifies the connection, used to pick per-connection base classes."""
        ...

    def primary_key_of(self, table: str) -> List[str]: ...

    def field_defaults_of(self, table: str) -> Dict[str, Any]: ...

    def field_types_of(self, table: str) -> Dict[str, str]: ...

    def table_exists(self, table: str) -> bool: ...

    def list_all_tables(self) -> List[str]: ...

    def model_namespace(self) -> str: ...


def load_table_schema(source: SchemaSource, table: str) -> TableSchema:
    """
    Read the metadata of *table* from *source*.

    Raises:
        SchemaNotFound: If the table does not exist.
        ConnectionUnavailable: If the source can't be reached.
    """
    if not table or not source.table_exists(table):
        raise SchemaNotFound(table)

    return TableSchema(
        name=table,
        primary_key=list(source.primary_key_of(table)),
        field_defaults=dict(source.field_defaults_of(table)),
        field_types=dict(source.field_types_of(table)),
    )


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------


class InMemorySchemaSource:
    """
    Schema source backed by plain dictionaries.

    Tables can be added, replaced and dropped at runtime, which makes this
    source handy for tests and for describing a schema in a YAML file.
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, Mapping[str, Any]]] = None,
        namespace: str = "",
        identity: str = "memory",
    ) -> None:
        self._namespace: str = namespace
        self._identity: str = identity
        self._tables: Dict[str, TableSchema] = {}
        for name, definition in (tables or {}).items():
            self.define_table(name, definition)

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], identity: str = "memory") -> "InMemorySchemaSource":
        """Build a source from a parsed schema document."""
        tables: Any = data.get("tables", {})
        if not isinstance(tables, Mapping):
            raise ValueError("'tables' must be a mapping of table name → definition.")
        return cls(tables=tables, namespace=str(data.get("namespace") or ""), identity=identity)

    @classmethod
    def from_file(cls, path: Path) -> "InMemorySchemaSource":
        """
        Load a schema document from a YAML or JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file can't be parsed.
        """
        return cls.from_mapping(load_document(path), identity=f"file:{path.name}")

    def define_table(self, name: str, definition: Mapping[str, Any]) -> None:
        """Add or replace a table."""
        primary_key: Any = definition.get("primary_key", [])
        if isinstance(primary_key, str):
            primary_key = [primary_key]

        defaults: Dict[str, Any] = {}
        types: Dict[str, str] = {}
        for field, spec in (definition.get("fields") or {}).items():
            field = str(field)
            if isinstance(spec, Mapping):
                types[field] = str(spec.get("type", "string"))
                defaults[field] = spec.get("default")
            else:
                types[field] = str(spec)
                defaults[field] = None

        self._tables[name] = TableSchema(
            name=name,
            primary_key=list(primary_key),
            field_defaults=defaults,
            field_types=types,
        )
        logger.debug("Defined in-memory table '%s' (%d fields).", name, len(types))

    def drop_table(self, name: str) -> None:
        self._tables.pop(name, None)

    # -- SchemaSource -------------------------------------------------------

    @property
    def identity(self) -> str:
        return self._identity

    def _get(self, table: str) -> TableSchema:
        try:
            return self._tables[table]
        except KeyError:
            raise SchemaNotFound(table) from None

    def primary_key_of(self, table: str) -> List[str]:
        return list(self._get(table).primary_key)

    def field_defaults_of(self, table: str) -> Dict[str, Any]:
        return dict(self._get(table).field_defaults)

    def field_types_of(self, table: str) -> Dict[str, str]:
        return dict(self._get(table).field_types)

    def table_exists(self, table: str) -> bool:
        return table in self._tables

    def list_all_tables(self) -> List[str]:
        return list(self._tables)

    def model_namespace(self) -> str:
        return self._namespace

    def __repr__(self) -> str:
        return f"<InMemorySchemaSource {self._identity} ({len(self._tables)} tables)>"


# ---------------------------------------------------------------------------
# SQLAlchemy reflection source
# ---------------------------------------------------------------------------

_CAST_SUFFIX_RE: re.Pattern[str] = re.compile(r"^(.*?)::[\w\s\"\[\]]+$", re.DOTALL)
_INT_RE: re.Pattern[str] = re.compile(r"^[+-]?\d+$")
_FLOAT_RE: re.Pattern[str] = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")


def parse_server_default(text: Optional[str]) -> Any:
    """
    Turn a reflected server default into a Python literal.

    Examples:
        - ``"'abc'"`` → ``'abc'``
        - ``"'it''s'::character varying"`` → ``"it's"``
        - ``"42"`` → ``42``; ``"0.5"`` → ``0.5``; ``"true"`` → ``True``
        - ``"NULL"``, ``"CURRENT_TIMESTAMP"``, ``"nextval(...)"`` → ``None``
    """
    if text is None:
        return None

    value: str = str(text).strip()
    while len(value) >= 2 and value.startswith("(") and value.endswith(")"):
        value = value[1:-1].strip()

    match = _CAST_SUFFIX_RE.match(value)
    if match:
        value = match.group(1).strip()

    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        quote: str = value[0]
        return value[1:-1].replace(quote * 2, quote)

    lowered: str = value.lower()
    if lowered == "null":
        return None
    if lowered in ("true", "false"):
        return lowered == "true"
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)

    logger.debug("Server default %r is an expression; treating as no default.", text)
    return None


def type_tag_for(sql_type: sqltypes.TypeEngine) -> str:
    """Map a reflected SQLAlchemy type to a field type tag."""
    if isinstance(sql_type, sqltypes.Boolean):
        return "bool"
    if isinstance(sql_type, sqltypes.Integer):
        return "int"
    if isinstance(sql_type, sqltypes.Float):
        return "float"
    if isinstance(sql_type, sqltypes.Numeric):
        return "decimal.Decimal"
    if isinstance(sql_type, sqltypes.Uuid):
        return "uuid.UUID"
    if isinstance(sql_type, (sqltypes.ARRAY, sqltypes.JSON)):
        return "array"
    return "string"


class SQLAlchemySchemaSource:
    """
    Schema source reflecting a live database.

    A fresh ``Inspector`` is created for every call so schema changes are
    picked up immediately.

    Usage::

        source = SQLAlchemySchemaSource("sqlite:///app.db", namespace="app.models")
        source.list_all_tables()
    """

    def __init__(
        self,
        bind: Union[str, Engine],
        namespace: str = "",
        *,
        schema: Optional[str] = None,
    ) -> None:
        self._engine: Engine = create_engine(bind) if isinstance(bind, str) else bind
        self._namespace: str = namespace
        self._schema: Optional[str] = schema
        self._identity: str = self._engine.url.render_as_string(hide_password=True)
        if schema:
            self._identity = f"{self._identity}#{schema}"

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def identity(self) -> str:
        return self._identity

    @contextlib.contextmanager
    def _inspect(self, table: Optional[str] = None) -> Iterator[Inspector]:
        try:
            yield inspect(self._engine)
        except NoSuchTableError as exc:
            raise SchemaNotFound(table or str(exc)) from exc
        except (OperationalError, InterfaceError) as exc:
            raise ConnectionUnavailable(self._identity, exc) from exc

    def primary_key_of(self, table: str) -> List[str]:
        with self._inspect(table) as inspector:
            constraint: Dict[str, Any] = inspector.get_pk_constraint(table, schema=self._schema)
        return list(constraint.get("constrained_columns") or [])

    def _columns(self, table: str) -> List[Dict[str, Any]]:
        with self._inspect(table) as inspector:
            columns: List[Dict[str, Any]] = list(inspector.get_columns(table, schema=self._schema))
        if not columns:
            raise SchemaNotFound(table)
        return columns

    def field_defaults_of(self, table: str) -> Dict[str, Any]:
        return {col["name"]: parse_server_default(col.get("default")) for col in self._columns(table)}

    def field_types_of(self, table: str) -> Dict[str, str]:
        return {col["name"]: type_tag_for(col["type"]) for col in self._columns(table)}

    def table_exists(self, table: str) -> bool:
        with self._inspect(table) as inspector:
            return bool(inspector.has_table(table, schema=self._schema))

    def list_all_tables(self) -> List[str]:
        with self._inspect() as inspector:
            return list(inspector.get_table_names(schema=self._schema))

    def model_namespace(self) -> str:
        return self._namespace

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()

    def __repr__(self) -> str:
        return f"<SQLAlchemySchemaSource {self._identity}>"


__all__: List[str] = [
    "SchemaSource",
    "load_table_schema",
    "InMemorySchemaSource",
    "SQLAlchemySchemaSource",
    "parse_server_default",
    "type_tag_for",
]

logger.debug("modelgen.schema loaded.")
