# File: modelgen/table.py
"""
modelgen - Table Gateway Base Class
=====================================
Built-in base of every generated table gateway.

The base asks the schema source for table metadata on every call; a
generated gateway overrides the three accessors with literals captured at
generation time.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, ClassVar, Dict, List, Optional

from modelgen.casting import cast_value
from modelgen.record import Record
from modelgen.schema import SchemaSource
from modelgen.utils import camelcase, join_class, split_class

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.table")


class Table:
    """
    Gateway to one database table.

    Usage::

        users = UserTable()
        user = users.create(name="Arnold")
        assert user.db_table is users
    """

    table_name: ClassVar[str] = ""
    record_class: ClassVar[str] = ""

    def __init__(
        self,
        name: Optional[str] = None,
        source: Optional[SchemaSource] = None,
    ) -> None:
        self.name: str = name or self.table_name
        if not self.name:
            raise ValueError(f"{type(self).__name__} needs a table name.")
        self._source: Optional[SchemaSource] = source

    @property
    def source(self) -> SchemaSource:
        if self._source is None:
            raise RuntimeError(f"Table '{self.name}' has no schema source.")
        return self._source

    # -- Metadata -----------------------------------------------------------

    def get_primary_key(self) -> List[str]:
        """Primary key fields, in key order."""
        return self.source.primary_key_of(self.name)

    def get_field_defaults(self) -> Dict[str, Any]:
        return self.source.field_defaults_of(self.name)

    def get_field_types(self) -> Dict[str, str]:
        return self.source.field_types_of(self.name)

    # -- Records ------------------------------------------------------------

    def get_record_class(self) -> type:
        """
        Return the record class of this table.

        The class is looked up as an attribute of its namespace module, which
        lets the import hook generate it on first use.
        """
        qualified_name: str = self.record_class
        if not qualified_name:
            qualified_name = join_class(self.source.model_namespace(), camelcase(self.name))
            logger.debug("Record class of '%s' derived as %s.", self.name, qualified_name)

        namespace, class_name = split_class(qualified_name)
        module = importlib.import_module(namespace)
        cls: Any = getattr(module, class_name)
        if not (isinstance(cls, type) and issubclass(cls, Record)):
            raise TypeError(f"{qualified_name} is not a record class.")
        return cls

    def create(self, **values: Any) -> Record:
        """Instantiate a record attached to this gateway."""
        record: Record = self.get_record_class()(**values)
        record._set_db_table(self)
        return record

    @staticmethod
    def cast_value(value: Any, type_name: str) -> Any:
        return cast_value(value, type_name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
