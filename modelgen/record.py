# File: modelgen/record.py
"""
modelgen - Record Base Class
==============================
Built-in base of every generated record class.

A generated record declares its fields as annotated class attributes,
lists them in ``__fields__`` and overrides ``cast()``.  Construction applies
keyword values and then calls ``cast()``, so every instance holds values of
the declared field types.
"""

from __future__ import annotations

import copy
from typing import Any, ClassVar, Dict, Optional, Tuple


class Record:
    """One row of a table, with typed fields."""

    __fields__: ClassVar[Tuple[str, ...]] = ()

    _dbtable: Optional[Any] = None

    def __init__(self, **values: Any) -> None:
        unknown = [name for name in values if name not in self.__fields__]
        if unknown:
            raise TypeError(
                f"{type(self).__name__} got unexpected field(s): {', '.join(sorted(unknown))}"
            )

        # Class-level defaults are shared; give each instance its own copy.
        for name in self.__fields__:
            default: Any = getattr(type(self), name, None)
            if isinstance(default, (list, dict, set)):
                setattr(self, name, copy.deepcopy(default))

        for name, value in values.items():
            setattr(self, name, value)

        self.cast()

    def cast(self) -> "Record":
        """Coerce field values to their declared types."""
        return self

    def _set_db_table(self, table: Any) -> None:
        """Attach the table gateway. Only the first gateway is kept."""
        if self._dbtable is None:
            self._dbtable = table

    @property
    def db_table(self) -> Optional[Any]:
        return self._dbtable

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name, None) for name in self.__fields__}

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()  # type: ignore[attr-defined]

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields: str = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"<{type(self).__name__} {fields}>"
