# File: modelgen/templates.py
"""
modelgen - Code Synthesizer
=============================
Turns a ``TableSchema`` into the Python source of two classes:

    1. a **table gateway** (``UserTable``) whose metadata accessors return
       literals captured at generation time, and
    2. a **record** (``User``) with one annotated attribute per field and a
       ``cast()`` method coercing each field to its declared type.

Both are complete modules.  The module docstring carries a dedicated
``@checksum <hex>`` line holding the schema fingerprint the code was
generated from; the artifact store compares it against the live schema.

**Contract:**
    - Synthesis is a pure function of ``(schema, class name, namespace)``
      and the base class configured in the registry.
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Invalid input raises before any text is produced, so nothing partial
      can reach the cache.
"""

from __future__ import annotations

import datetime
import decimal
import keyword
import logging
import math
import re
import uuid
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from modelgen.casting import (
    annotation_for,
    canonical_type,
    is_internal_type,
    is_value_object_path,
    try_cast_default,
)
from modelgen.checksum import fingerprint_schema
from modelgen.errors import UnsynthesizableField
from modelgen.models import ArtifactKind, GeneratedArtifact, TableSchema
from modelgen.registry import ModelRegistry
from modelgen.utils import count_lines, join_class

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "
_TRIPLE_INDENT: str = "            "

CHECKSUM_TAG: str = "@checksum"

_NON_WORD_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9_]")

# Attribute names used by the record base class or the generated imports
_RESERVED_FIELDS: FrozenSet[str] = frozenset(
    {
        "cast", "to_dict", "db_table", "_dbtable", "_set_db_table",
        "_base_module", "_datetime", "_decimal", "_uuid",
    }
)

# Stdlib modules a rendered value may need, imported under these aliases
_VALUE_MODULES: Dict[type, str] = {
    datetime.date: "import datetime as _datetime",
    datetime.time: "import datetime as _datetime",
    datetime.timedelta: "import datetime as _datetime",
    decimal.Decimal: "import decimal as _decimal",
    uuid.UUID: "import uuid as _uuid",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _literal(value: Any) -> str:
    """
    Render *value* as a Python expression.

    Dates, times, decimals and UUIDs are rebuilt through their constructors
    (see ``_value_imports``).  Other values without a literal form are
    rendered as their string, so the generated module always compiles.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return repr(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return f'float("{value}")'
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_literal(k)}: {_literal(v)}" for k, v in value.items()) + "}"
    if isinstance(value, datetime.datetime):
        return f"_datetime.datetime.fromisoformat({value.isoformat()!r})"
    if isinstance(value, datetime.date):
        return f"_datetime.date.fromisoformat({value.isoformat()!r})"
    if isinstance(value, datetime.time):
        return f"_datetime.time.fromisoformat({value.isoformat()!r})"
    if isinstance(value, datetime.timedelta):
        return (
            f"_datetime.timedelta(days={value.days}, seconds={value.seconds}, "
            f"microseconds={value.microseconds})"
        )
    if isinstance(value, decimal.Decimal):
        return f"_decimal.Decimal({str(value)!r})"
    if isinstance(value, uuid.UUID):
        return f"_uuid.UUID({str(value)!r})"
    return repr(str(value))


def _value_imports(values: Iterable[Any]) -> List[str]:
    """Import lines needed by ``_literal`` to render *values*."""
    found: Set[str] = set()
    pending: List[Any] = list(values)
    while pending:
        value: Any = pending.pop()
        if isinstance(value, (list, tuple)):
            pending.extend(value)
        elif isinstance(value, dict):
            pending.extend(value.keys())
            pending.extend(value.values())
        else:
            for value_type, line in _VALUE_MODULES.items():
                if isinstance(value, value_type):
                    found.add(line)
    return sorted(found)


def _dict_block(mapping: Dict[str, Any], level: str) -> List[str]:
    """``return {...}`` with one entry per line."""
    if not mapping:
        return [f"{level}return {{}}"]
    lines: List[str] = [f"{level}return {{"]
    for key, value in mapping.items():
        lines.append(f"{level}{_INDENT}{_literal(key)}: {_literal(value)},")
    lines.append(f"{level}}}")
    return lines


def _docstring_text(text: str) -> str:
    # Single line, no quote runs: keeps the checksum line the only marker.
    escaped: str = text.encode("unicode_escape").decode("ascii")
    return escaped.replace('"', '\\"')


def check_field_name(table: str, field: str) -> None:
    """
    Raise ``UnsynthesizableField`` unless *field* can be a record attribute.
    """
    if not field:
        raise UnsynthesizableField(table, field, "empty field name")
    bad = _NON_WORD_RE.search(field)
    if bad:
        raise UnsynthesizableField(table, field, f"invalid character {bad.group(0)!r}")
    if field[0].isdigit():
        raise UnsynthesizableField(table, field, "name starts with a digit")
    if keyword.iskeyword(field):
        raise UnsynthesizableField(table, field, "name is a Python keyword")
    if field in _RESERVED_FIELDS or (field.startswith("__") and field.endswith("__")):
        raise UnsynthesizableField(table, field, "name is reserved by the record class")


def check_field_type(table: str, field: str, type_name: str) -> None:
    if not (is_internal_type(type_name) or is_value_object_path(type_name)):
        raise UnsynthesizableField(table, field, f"unknown type {type_name!r}")


def _check_class_name(class_name: str) -> None:
    if not class_name.isidentifier() or keyword.iskeyword(class_name):
        raise ValueError(f"Invalid class name: {class_name!r}")


# ---------------------------------------------------------------------------
# CodeSynthesizer
# ---------------------------------------------------------------------------


class CodeSynthesizer:
    """
    Generates gateway and record modules.

    ``model_namespace`` is where record classes are looked up by generated
    gateways; ``connection`` selects per-connection base classes in the
    registry.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        *,
        model_namespace: Optional[str] = None,
        connection: Optional[str] = None,
    ) -> None:
        self._registry: ModelRegistry = registry
        self._model_namespace: Optional[str] = model_namespace
        self._connection: Optional[str] = connection

    # -----------------------------------------------------------------
    # Shared pieces
    # -----------------------------------------------------------------

    def _base_class(self, role: ArtifactKind) -> type:
        return self._registry.get_default_class(role, self._connection)

    @staticmethod
    def _module_header(
        summary: str,
        fingerprint: str,
        base: type,
        typing_names: List[str],
        extra_imports: Optional[List[str]] = None,
    ) -> List[str]:
        lines: List[str] = [
            '"""',
            summary,
            "",
            "This file is generated automatically and may be overwritten.",
            "",
            f"{CHECKSUM_TAG} {fingerprint}",
            '"""',
            "",
            "from __future__ import annotations",
            "",
            f"from typing import {', '.join(sorted(typing_names))}",
            "",
            f"import {base.__module__} as _base_module",
        ]
        lines.extend(extra_imports or [])
        return lines

    # ===================================================================
    # 1. Table gateway
    # ===================================================================

    def synthesize_table_gateway(
        self,
        schema: TableSchema,
        class_name: str,
        namespace: str,
    ) -> GeneratedArtifact:
        """
        Generate the gateway module for *schema*.

        The accessors return the primary key (always a list, so composite
        keys keep their order), the defaults and the types verbatim.
        """
        _check_class_name(class_name)
        fingerprint: str = fingerprint_schema(schema)
        base: type = self._base_class(ArtifactKind.TABLE)

        record_name: str = class_name[: -len("Table")] if class_name.endswith("Table") else class_name
        record_class: str = join_class(self._model_namespace or namespace, record_name or class_name)
        summary: str = f"Table gateway for `{_docstring_text(schema.name)}`."

        lines: List[str] = self._module_header(
            summary,
            fingerprint,
            base,
            ["Any", "Dict", "List"],
            _value_imports(schema.field_defaults.values()),
        )
        lines.append("")
        lines.append(f"__all__ = [{class_name!r}]")
        lines.append("")
        lines.append("")
        lines.append(f"class {class_name}(_base_module.{base.__qualname__}):")
        lines.append(f'{_INDENT}"""{summary}"""')
        lines.append("")
        lines.append(f"{_INDENT}table_name = {schema.name!r}")
        lines.append(f"{_INDENT}record_class = {record_class!r}")
        lines.append("")
        lines.append(f"{_INDENT}def get_primary_key(self) -> List[str]:")
        lines.append(f"{_DOUBLE_INDENT}return {_literal(list(schema.primary_key))}")
        lines.append("")
        lines.append(f"{_INDENT}def get_field_defaults(self) -> Dict[str, Any]:")
        lines.extend(_dict_block(schema.field_defaults, _DOUBLE_INDENT))
        lines.append("")
        lines.append(f"{_INDENT}def get_field_types(self) -> Dict[str, str]:")
        lines.extend(_dict_block(schema.field_types, _DOUBLE_INDENT))
        lines.append("")

        return self._artifact(ArtifactKind.TABLE, schema, namespace, class_name, lines, fingerprint)

    # ===================================================================
    # 2. Record
    # ===================================================================

    def synthesize_record(
        self,
        schema: TableSchema,
        class_name: str,
        namespace: str,
    ) -> GeneratedArtifact:
        """
        Generate the record module for *schema*.

        Primitive fields get the schema default, coerced to the field type,
        as class-level initializer.  Value-object fields have no literal form
        and start as ``None``.  ``cast()`` coerces every non-``None`` value
        through ``cast_value``, which leaves values that already have the
        value-object type alone.

        Raises:
            UnsynthesizableField: If a field name or type can't be expressed.
        """
        _check_class_name(class_name)
        for field, type_name in schema.field_types.items():
            check_field_name(schema.name, field)
            check_field_type(schema.name, field, type_name)

        fingerprint: str = fingerprint_schema(schema)
        base: type = self._base_class(ArtifactKind.RECORD)
        summary: str = f"Record of table `{_docstring_text(schema.name)}`."

        defaults: Dict[str, Any] = {}
        for field, type_name in schema.field_types.items():
            if is_internal_type(type_name):
                defaults[field] = try_cast_default(
                    schema.field_defaults.get(field), canonical_type(type_name)
                )
            else:
                defaults[field] = None

        lines: List[str] = self._module_header(
            summary,
            fingerprint,
            base,
            ["Any", "List", "Optional"],
            _value_imports(defaults.values()) + ["", "from modelgen.casting import cast_value"],
        )
        lines.append("")
        lines.append(f"__all__ = [{class_name!r}]")
        lines.append("")
        lines.append("")
        lines.append(f"class {class_name}(_base_module.{base.__qualname__}):")
        lines.append(f'{_INDENT}"""{summary}"""')
        lines.append("")

        fields: List[str] = schema.field_names
        fields_literal: str = ", ".join(repr(f) for f in fields) + ("," if len(fields) == 1 else "")
        lines.append(f"{_INDENT}__fields__ = ({fields_literal})")

        # --- Properties ---
        if fields:
            lines.append("")
        for field in fields:
            type_name: str = schema.field_types[field]
            annotation: str = f"Optional[{annotation_for(type_name)}]"
            lines.append(f"{_INDENT}{field}: {annotation} = {_literal(defaults[field])}")

        # --- cast() ---
        lines.append("")
        lines.append(f'{_INDENT}def cast(self) -> "{class_name}":')
        lines.append(f'{_DOUBLE_INDENT}"""Cast all fields to their declared types."""')
        for field in fields:
            type_name = schema.field_types[field]
            tag: str = canonical_type(type_name) if is_internal_type(type_name) else type_name
            lines.append(f"{_DOUBLE_INDENT}if self.{field} is not None:")
            lines.append(f"{_TRIPLE_INDENT}self.{field} = cast_value(self.{field}, {tag!r})")
        lines.append(f"{_DOUBLE_INDENT}return self")

        # --- Back-reference ---
        lines.append("")
        lines.append(f"{_INDENT}def _set_db_table(self, table: Any) -> None:")
        lines.append(f'{_DOUBLE_INDENT}"""Attach the table gateway; only the first one is kept."""')
        lines.append(f"{_DOUBLE_INDENT}if self._dbtable is None:")
        lines.append(f"{_TRIPLE_INDENT}self._dbtable = table")
        lines.append("")

        return self._artifact(ArtifactKind.RECORD, schema, namespace, class_name, lines, fingerprint)

    # -----------------------------------------------------------------

    @staticmethod
    def _artifact(
        kind: ArtifactKind,
        schema: TableSchema,
        namespace: str,
        class_name: str,
        lines: List[str],
        fingerprint: str,
    ) -> GeneratedArtifact:
        content: str = "\n".join(lines)
        qualified_name: str = join_class(namespace, class_name)
        logger.debug(
            "Synthesized %s %s for '%s': %d lines.",
            kind.value,
            qualified_name,
            schema.name,
            count_lines(content),
        )
        return GeneratedArtifact(
            qualified_name=qualified_name,
            kind=kind,
            table_name=schema.name,
            source_text=content,
            fingerprint=fingerprint,
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CHECKSUM_TAG",
    "CodeSynthesizer",
    "check_field_name",
    "check_field_type",
]

logger.debug("modelgen.templates loaded.")
