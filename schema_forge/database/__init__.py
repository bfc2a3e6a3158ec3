"""
Database adapters and schema management
"""

from .models import (
    ColumnDescriptor,
    ConnectionDescriptor,
    DatabaseKind,
    ForeignKeyRef,
    RowSet,
    SchemaModel,
    TableDescriptor,
)
from .adapters import (
    DatabaseAdapter,
    MSSQLAdapter,
    MySQLAdapter,
    PostgreSQLAdapter,
    SQLAlchemyAdapter,
    SQLiteAdapter,
)
from .factory import DatabaseFactory, parse_connection_url
from .cache import SchemaCache

__all__ = [
    'ColumnDescriptor',
    'ConnectionDescriptor',
    'DatabaseKind',
    'ForeignKeyRef',
    'RowSet',
    'SchemaModel',
    'TableDescriptor',
    'DatabaseAdapter',
    'SQLAlchemyAdapter',
    'PostgreSQLAdapter',
    'MySQLAdapter',
    'SQLiteAdapter',
    'MSSQLAdapter',
    'DatabaseFactory',
    'parse_connection_url',
    'SchemaCache',
]
