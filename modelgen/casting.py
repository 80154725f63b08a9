# File: modelgen/casting.py
"""
modelgen - Field Type Coercion
================================
Type tags used by schema sources and the routines that coerce values to
them.

A field type is either a *primitive tag* (``bool``, ``int``, ``float``,
``string``, ``array`` and their aliases) or the dotted import path of a
*value-object* class whose constructor takes a single argument
(``decimal.Decimal``, ``uuid.UUID``, ...).

Generated record classes call ``cast_value`` from their ``cast()`` method,
so the coercion rules live in exactly one place.
"""

from __future__ import annotations

import importlib
import logging
import re
from typing import Any, Dict, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.casting")

# ---------------------------------------------------------------------------
# Type tables
# ---------------------------------------------------------------------------

# Primitive tag → canonical tag
_PRIMITIVE_ALIASES: Dict[str, str] = {
    "bool": "bool",
    "boolean": "bool",
    "int": "int",
    "integer": "int",
    "float": "float",
    "double": "float",
    "string": "string",
    "str": "string",
    "array": "array",
    "list": "array",
}

# Canonical tag → annotation used in generated code
_ANNOTATIONS: Dict[str, str] = {
    "bool": "bool",
    "int": "int",
    "float": "float",
    "string": "str",
    "array": "List[Any]",
}

_FALSE_STRINGS = frozenset({"", "0", "false", "f", "no", "n", "off"})

_DOTTED_PATH_RE: re.Pattern[str] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)+$"
)


def is_internal_type(type_name: str) -> bool:
    """Check if *type_name* is a primitive tag rather than a value-object class."""
    return type_name in _PRIMITIVE_ALIASES


def canonical_type(type_name: str) -> str:
    """Return the canonical primitive tag (``integer`` → ``int``)."""
    try:
        return _PRIMITIVE_ALIASES[type_name]
    except KeyError:
        raise ValueError(f"Not a primitive type: {type_name!r}") from None


def annotation_for(type_name: str) -> str:
    """Return the annotation text for a field type in generated code."""
    if is_internal_type(type_name):
        return _ANNOTATIONS[canonical_type(type_name)]
    return type_name


def is_value_object_path(type_name: str) -> bool:
    """True if *type_name* looks like ``package.module.Class``."""
    return _DOTTED_PATH_RE.match(type_name) is not None


def import_object(dotted_path: str) -> Any:
    """
    Import ``package.module.Name`` and return ``Name``.

    Nested attributes are supported (``package.module.Outer.Inner``); the
    longest importable module prefix is used.
    """
    parts: List[str] = dotted_path.split(".")
    for split_at in range(len(parts) - 1, 0, -1):
        module_name: str = ".".join(parts[:split_at])
        try:
            obj: Any = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            if exc.name is not None and not module_name.startswith(exc.name):
                raise
            continue
        for attr in parts[split_at:]:
            obj = getattr(obj, attr)
        return obj
    raise ImportError(f"Cannot import {dotted_path!r}")


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        text: str = value.strip()
        try:
            return int(text)
        except ValueError:
            return int(float(text))
    return int(value)


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def _to_array(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    if isinstance(value, dict):
        return list(value.values())
    return [value]


_CASTS = {
    "bool": _to_bool,
    "int": _to_int,
    "float": float,
    "string": _to_string,
    "array": _to_array,
}


def cast_value(value: Any, type_name: str) -> Any:
    """
    Coerce *value* to the field type *type_name*.

    ``None`` always stays ``None``.  Primitive tags use lenient,
    database-friendly rules (``"0"`` is false, ``"12"`` is 12).  Value-object
    types are constructed from the value unless it already is an instance.

    Raises:
        ValueError / TypeError: If the value can't be coerced.
        OverflowError: If an infinite number is cast to ``int``.
    """
    if value is None:
        return None

    if is_internal_type(type_name):
        return _CASTS[canonical_type(type_name)](value)

    value_type: Any = import_object(type_name)
    if isinstance(value, value_type):
        return value
    return value_type(value)


def try_cast_default(value: Any, type_name: str) -> Optional[Any]:
    """
    Coerce a schema default to a primitive type for use as a literal.

    Defaults that can't be coerced (SQL expressions such as
    ``CURRENT_TIMESTAMP`` on an integer field) yield ``None``.
    """
    try:
        return cast_value(value, type_name)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Default %r can't be cast to %s; using None.", value, type_name
        )
        return None


__all__: List[str] = [
    "is_internal_type",
    "canonical_type",
    "annotation_for",
    "is_value_object_path",
    "import_object",
    "cast_value",
    "try_cast_default",
]
