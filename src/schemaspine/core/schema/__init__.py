"""Schema object model -- passive descriptors of desired schema state.

Migration authors build these value objects and pass them to adapter
operations (``create_table``, ``add_column``, ``add_index``, ...). Adapters
also return them from introspection (``get_columns``, ``get_table``).

Modules
-------
column      ColumnType, Column, RawSql
index       Index, ForeignKey, ForeignKeyAction
table       Table, TableOptions and the lookup/option structs

Tags:
    schema-spine, schema, descriptors, dataclasses

Doc-Types:
    package-overview
"""

from .column import Column, ColumnType, RawSql
from .index import ForeignKey, ForeignKeyAction, Index, column_list
from .table import ColumnLookup, DatabaseOptions, IndexLookup, Table, TableOptions

__all__ = [
    "Column",
    "ColumnType",
    "RawSql",
    "Index",
    "ForeignKey",
    "ForeignKeyAction",
    "column_list",
    "Table",
    "TableOptions",
    "ColumnLookup",
    "IndexLookup",
    "DatabaseOptions",
]
