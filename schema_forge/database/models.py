"""
Data models for database connections and schema representation
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DatabaseKind(Enum):
    """Supported database engines"""
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MSSQL = "mssql"

    @property
    def display_name(self) -> str:
        return {
            DatabaseKind.POSTGRESQL: "PostgreSQL",
            DatabaseKind.MYSQL: "MySQL",
            DatabaseKind.SQLITE: "SQLite",
            DatabaseKind.MSSQL: "Microsoft SQL Server",
        }[self]

    @property
    def default_port(self) -> Optional[int]:
        return {
            DatabaseKind.POSTGRESQL: 5432,
            DatabaseKind.MYSQL: 3306,
            DatabaseKind.SQLITE: None,
            DatabaseKind.MSSQL: 1433,
        }[self]


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Where and how to connect; replaced wholesale on reconnect"""
    kind: DatabaseKind
    url: str = field(repr=False)
    database: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    schema: Optional[str] = None
    query: Tuple[Tuple[str, str], ...] = ()

    @property
    def safe_url(self) -> str:
        """URL with the password masked, for display and logs"""
        if self.password:
            return self.url.replace(f":{self.password}@", ":***@", 1)
        return self.url


@dataclass(frozen=True)
class ColumnDescriptor:
    """A column of a table or view"""
    name: str
    type: str
    nullable: bool = True
    default: Optional[str] = None
    comment: Optional[str] = None

    def describe(self, primary_keys: Tuple[str, ...] = ()) -> str:
        desc = f"{self.name}: {self.type}"
        if self.name in primary_keys:
            desc += " PRIMARY KEY"
        if not self.nullable:
            desc += " NOT NULL"
        if self.default is not None:
            desc += f" DEFAULT {self.default}"
        if self.comment:
            desc += f" -- {self.comment}"
        return desc


@dataclass(frozen=True)
class ForeignKeyRef:
    """column -> referenced_table.referenced_column"""
    column: str
    referenced_table: str
    referenced_column: Optional[str]


@dataclass(frozen=True)
class TableDescriptor:
    """Information about a database table or view"""
    name: str
    kind: str = "table"
    columns: Tuple[ColumnDescriptor, ...] = ()
    primary_keys: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKeyRef, ...] = ()
    comment: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ("table", "view"):
            raise ValueError(f"Unknown table kind: {self.kind}")
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column '{column.name}' in table '{self.name}'")
            seen.add(column.name)

    @property
    def is_view(self) -> bool:
        return self.kind == "view"

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def format_schema(self) -> str:
        """Render the table as a text block for prompts and the /schema command"""
        prefix = "View" if self.is_view else "Table"
        lines = [f"{prefix}: {self.name}"]
        if self.comment:
            lines.append(f"  -- {self.comment}")
        if self.primary_keys:
            lines.append(f"  Primary Key: {', '.join(self.primary_keys)}")
        lines.append("  Columns:")
        for column in self.columns:
            lines.append(f"    - {column.describe(self.primary_keys)}")
        if self.foreign_keys:
            lines.append("  Foreign Keys:")
            for fk in self.foreign_keys:
                target = fk.referenced_table
                if fk.referenced_column:
                    target += f".{fk.referenced_column}"
                lines.append(f"    - {fk.column} -> {target}")
        return "\n".join(lines)


@dataclass(frozen=True)
class SchemaModel:
    """Complete database schema information, immutable once built"""
    db_kind: DatabaseKind
    tables: Tuple[TableDescriptor, ...] = ()
    database_name: Optional[str] = None
    schema_name: Optional[str] = None
    indexed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def __post_init__(self):
        seen = set()
        for table in self.tables:
            if table.name in seen:
                raise ValueError(f"Duplicate table '{table.name}' in schema")
            seen.add(table.name)

    def get_table(self, name: str) -> Optional[TableDescriptor]:
        for table in self.tables:
            if table.name == name:
                return table
        lowered = name.lower()
        for table in self.tables:
            if table.name.lower() == lowered:
                return table
        return None

    def table_names(self) -> List[str]:
        return [table.name for table in self.tables]

    def views(self) -> List[TableDescriptor]:
        return [table for table in self.tables if table.is_view]

    def tables_only(self) -> List[TableDescriptor]:
        return [table for table in self.tables if not table.is_view]

    @property
    def column_count(self) -> int:
        return sum(len(table.columns) for table in self.tables)

    @property
    def relationships(self) -> List[Dict[str, Any]]:
        relationships = []
        for table in self.tables:
            for fk in table.foreign_keys:
                relationships.append({
                    'from_table': table.name,
                    'from_column': fk.column,
                    'to_table': fk.referenced_table,
                    'to_column': fk.referenced_column,
                    'type': 'foreign_key'
                })
        return relationships

    def to_prompt_context(self) -> str:
        header = [f"Database Type: {self.db_kind.display_name}"]
        if self.database_name:
            header.append(f"Database: {self.database_name}")
        if self.schema_name:
            header.append(f"Schema: {self.schema_name}")
        blocks = [table.format_schema() for table in self.tables]
        if not blocks:
            blocks = ["(no tables)"]
        return "\n".join(header) + "\n\n" + "\n\n".join(blocks)


@dataclass
class RowSet:
    """Result of executing a statement"""
    columns: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    affected_rows: Optional[int] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def has_result_set(self) -> bool:
        return bool(self.columns)
