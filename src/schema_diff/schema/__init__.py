"""Schema snapshots and live introspection.

Usage:
    from schema_diff.schema import SchemaSnapshot, TableDescriptor, ColumnDescriptor
    from schema_diff.schema import PostgresIntrospector, MySQLIntrospector
"""

from schema_diff.schema.introspector import PostgresIntrospector, SchemaIntrospector
from schema_diff.schema.models import (
    ColumnDescriptor,
    ColumnKey,
    Engine,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SchemaSnapshot,
    TableDescriptor,
    ViewDescriptor,
)
from schema_diff.schema.mysql import MySQLIntrospector

__all__ = [
    "SchemaIntrospector",
    "PostgresIntrospector",
    "MySQLIntrospector",
    "Engine",
    "ColumnKey",
    "ColumnDescriptor",
    "IndexDescriptor",
    "ForeignKeyDescriptor",
    "TableDescriptor",
    "ViewDescriptor",
    "SchemaSnapshot",
]
