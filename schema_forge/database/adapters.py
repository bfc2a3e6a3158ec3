"""
Database adapters for different database types
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import DatabaseConnectionError, IntrospectionError, NotConnected, QueryExecutionError
from .models import (
    ColumnDescriptor,
    ConnectionDescriptor,
    DatabaseKind,
    ForeignKeyRef,
    RowSet,
    SchemaModel,
    TableDescriptor,
)

logger = logging.getLogger(__name__)


class DatabaseAdapter(ABC):
    """Abstract base class for database adapters"""

    kind: DatabaseKind

    @abstractmethod
    def connect(self) -> Any:
        """Connect to database"""
        pass

    @abstractmethod
    def analyze_schema(self) -> SchemaModel:
        """Analyze database schema"""
        pass

    @abstractmethod
    def execute_query(self, query: str) -> RowSet:
        """Execute a query"""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass


class SQLAlchemyAdapter(DatabaseAdapter):
    """Adapter backed by a SQLAlchemy engine.

    Subclasses pick the driver, the default schema and which catalog
    entries are internal to the engine; everything else goes through
    ``sqlalchemy.inspect`` so the resulting model has the same shape for
    every database kind.
    """

    driver: str = ""
    system_table_prefixes: Tuple[str, ...] = ()

    def __init__(self, descriptor: ConnectionDescriptor, engine_options: Optional[Dict[str, Any]] = None):
        self.descriptor = descriptor
        self.engine_options = engine_options or {}
        self.engine: Optional[Engine] = None

    def sqlalchemy_url(self) -> URL:
        d = self.descriptor
        return URL.create(
            self.driver,
            username=d.username,
            password=d.password,
            host=d.host,
            port=d.port,
            database=d.database,
            query=dict(d.query),
        )

    def default_schema(self) -> Optional[str]:
        return None

    def inspect_schema(self) -> Optional[str]:
        """Schema name handed to the inspector (None means the connection default)"""
        return self.descriptor.schema or self.default_schema()

    def connect(self) -> Engine:
        """Create the engine and make sure the database answers"""
        try:
            engine = create_engine(self.sqlalchemy_url(), **self.engine_options)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseConnectionError(self.descriptor.safe_url, str(e)) from e

        self.engine = engine
        logger.info(f"Connected to {self.kind.display_name} at {self.descriptor.safe_url}")
        return engine

    @property
    def is_connected(self) -> bool:
        return self.engine is not None

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise NotConnected()
        return self.engine

    def _is_system_table(self, name: str) -> bool:
        return any(name.lower().startswith(prefix) for prefix in self.system_table_prefixes)

    def analyze_schema(self) -> SchemaModel:
        """Read tables, views, columns and keys in one pass over the catalog"""
        engine = self._require_engine()
        schema = self.inspect_schema()

        try:
            inspector = inspect(engine)
            table_names = sorted(
                name for name in inspector.get_table_names(schema=schema)
                if not self._is_system_table(name)
            )
            view_names = sorted(
                name for name in inspector.get_view_names(schema=schema)
                if not self._is_system_table(name)
            )

            tables = []
            for table_name in table_names:
                tables.append(self._describe(inspector, table_name, "table", schema))
            for view_name in view_names:
                if view_name in table_names:
                    continue
                tables.append(self._describe(inspector, view_name, "view", schema))
        except SQLAlchemyError as e:
            raise IntrospectionError(f"Failed to index schema: {e}") from e
        except ValueError as e:
            raise IntrospectionError(f"Unsupported catalog contents: {e}") from e

        model = SchemaModel(
            db_kind=self.kind,
            tables=tuple(tables),
            database_name=self.database_name(),
            schema_name=schema,
        )
        logger.info(
            f"Indexed {len(model.tables_only())} tables and {len(model.views())} views "
            f"({model.column_count} columns)"
        )
        return model

    def _describe(self, inspector, table_name: str, kind: str, schema: Optional[str]) -> TableDescriptor:
        columns = []
        for col in inspector.get_columns(table_name, schema=schema):
            default = col.get('default')
            columns.append(ColumnDescriptor(
                name=col['name'],
                type=str(col['type']),
                nullable=bool(col.get('nullable', True)),
                default=str(default) if default is not None else None,
                comment=col.get('comment') or None,
            ))

        primary_keys: List[str] = []
        foreign_keys: List[ForeignKeyRef] = []
        if kind == "table":
            pk_constraint = inspector.get_pk_constraint(table_name, schema=schema)
            primary_keys = list(pk_constraint.get('constrained_columns') or []) if pk_constraint else []

            for fk in inspector.get_foreign_keys(table_name, schema=schema):
                referred = fk.get('referred_columns') or []
                for i, column in enumerate(fk.get('constrained_columns') or []):
                    foreign_keys.append(ForeignKeyRef(
                        column=column,
                        referenced_table=fk['referred_table'],
                        referenced_column=referred[i] if i < len(referred) else None,
                    ))

        return TableDescriptor(
            name=table_name,
            kind=kind,
            columns=tuple(columns),
            primary_keys=tuple(primary_keys),
            foreign_keys=tuple(foreign_keys),
        )

    def database_name(self) -> Optional[str]:
        return self.descriptor.database

    def execute_query(self, query: str) -> RowSet:
        """Run the statement as-is and commit"""
        engine = self._require_engine()

        try:
            with engine.connect() as conn:
                result = conn.execution_options(no_parameters=True).exec_driver_sql(query)
                if result.returns_rows:
                    columns = list(result.keys())
                    rows = [tuple(row) for row in result.fetchall()]
                    conn.commit()
                    return RowSet(columns=columns, rows=rows)
                affected = result.rowcount
                conn.commit()
                return RowSet(affected_rows=affected)
        except SQLAlchemyError as e:
            raise QueryExecutionError(query, str(getattr(e, 'orig', None) or e)) from e

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None


class PostgreSQLAdapter(SQLAlchemyAdapter):
    """PostgreSQL database adapter"""
    kind = DatabaseKind.POSTGRESQL
    driver = "postgresql+psycopg2"

    def default_schema(self) -> Optional[str]:
        return "public"


class MySQLAdapter(SQLAlchemyAdapter):
    """MySQL database adapter"""
    kind = DatabaseKind.MYSQL
    driver = "mysql+pymysql"

    def inspect_schema(self) -> Optional[str]:
        # MySQL schemas are databases; the connected one is the default
        schema = self.descriptor.schema
        if not schema or schema == self.descriptor.database:
            return None
        return schema


class SQLiteAdapter(SQLAlchemyAdapter):
    """SQLite database adapter"""
    kind = DatabaseKind.SQLITE
    driver = "sqlite+pysqlite"
    system_table_prefixes = ("sqlite_",)

    def sqlalchemy_url(self) -> URL:
        return URL.create(self.driver, database=self.descriptor.database)

    def inspect_schema(self) -> Optional[str]:
        schema = self.descriptor.schema
        return None if not schema or schema == "main" else schema

    def database_name(self) -> Optional[str]:
        if not self.descriptor.database:
            return None
        return os.path.basename(self.descriptor.database)


class MSSQLAdapter(SQLAlchemyAdapter):
    """Microsoft SQL Server adapter"""
    kind = DatabaseKind.MSSQL
    driver = "mssql+pyodbc"
    system_table_prefixes = ("sysdiagrams", "spt_", "msreplication_")

    def sqlalchemy_url(self) -> URL:
        url = super().sqlalchemy_url()
        if "driver" not in url.query:
            url = url.update_query_dict({"driver": "ODBC Driver 18 for SQL Server"})
        return url

    def default_schema(self) -> Optional[str]:
        return "dbo"
