"""
Database factory for creating appropriate database adapters
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ..errors import InvalidConnectionUrl
from .adapters import DatabaseAdapter, MSSQLAdapter, MySQLAdapter, PostgreSQLAdapter, SQLiteAdapter
from .models import ConnectionDescriptor, DatabaseKind


SCHEME_KINDS = {
    'postgresql': DatabaseKind.POSTGRESQL,
    'postgres': DatabaseKind.POSTGRESQL,
    'mysql': DatabaseKind.MYSQL,
    'mariadb': DatabaseKind.MYSQL,
    'sqlite': DatabaseKind.SQLITE,
    'mssql': DatabaseKind.MSSQL,
    'sqlserver': DatabaseKind.MSSQL,
}

SQLITE_SUFFIXES = ('.db', '.sqlite', '.sqlite3')

SUPPORTED_SCHEMES = "postgresql://, postgres://, mysql://, sqlite://, mssql://, sqlserver://"


def _parse_sqlite(url: str) -> ConnectionDescriptor:
    """sqlite:///relative.db, sqlite:////abs/path.db, sqlite:path.db or a bare file path"""
    lowered = url.lower()
    if lowered.startswith('sqlite://'):
        path = url[len('sqlite://'):]
        # sqlite:///x.db is relative, sqlite:////x.db absolute
        if path.startswith('/'):
            path = path[1:]
    elif lowered.startswith('sqlite:'):
        path = url[len('sqlite:'):]
    else:
        path = url

    path = path.split('?', 1)[0]
    if not path:
        raise InvalidConnectionUrl(f"Missing database file in SQLite URL: {url}")
    return ConnectionDescriptor(kind=DatabaseKind.SQLITE, url=url, database=path, schema='main')


def parse_connection_url(url: str) -> ConnectionDescriptor:
    """Turn a /connect URL into a ConnectionDescriptor"""
    url = (url or '').strip()
    if not url:
        raise InvalidConnectionUrl("Empty database URL")

    lowered = url.lower()
    scheme = lowered.split(':', 1)[0] if ':' in lowered else ''
    scheme = scheme.split('+', 1)[0]

    if scheme == 'sqlite' or (scheme not in SCHEME_KINDS and lowered.endswith(SQLITE_SUFFIXES)):
        return _parse_sqlite(url)

    kind = SCHEME_KINDS.get(scheme)
    if kind is None or '://' not in url:
        raise InvalidConnectionUrl(
            f"Invalid database URL: {url}. Supported: {SUPPORTED_SCHEMES}"
        )

    try:
        parsed = make_url(url)
    except ArgumentError as e:
        raise InvalidConnectionUrl(f"Invalid database URL: {url} ({e})") from e

    query = dict(parsed.query)
    schema = query.pop('schema', None) or query.pop('currentSchema', None)
    if isinstance(schema, tuple):
        schema = schema[0]
    if schema is None:
        schema = {
            DatabaseKind.POSTGRESQL: 'public',
            DatabaseKind.MYSQL: parsed.database,
            DatabaseKind.MSSQL: 'dbo',
        }.get(kind)

    if not parsed.database and kind != DatabaseKind.MSSQL:
        raise InvalidConnectionUrl(f"Missing database name in URL: {url}")

    return ConnectionDescriptor(
        kind=kind,
        url=url,
        database=parsed.database,
        host=parsed.host or 'localhost',
        port=parsed.port or kind.default_port,
        username=parsed.username,
        password=parsed.password,
        schema=schema,
        query=tuple(sorted((k, v if isinstance(v, str) else v[0]) for k, v in query.items())),
    )


class DatabaseFactory:
    """Factory class to create appropriate database connector"""

    _adapters = {
        DatabaseKind.POSTGRESQL: PostgreSQLAdapter,
        DatabaseKind.MYSQL: MySQLAdapter,
        DatabaseKind.SQLITE: SQLiteAdapter,
        DatabaseKind.MSSQL: MSSQLAdapter,
    }

    @staticmethod
    def create_connector(descriptor: ConnectionDescriptor,
                         engine_options: Optional[Dict[str, Any]] = None) -> DatabaseAdapter:
        """Create database adapter based on kind"""
        adapter_cls = DatabaseFactory._adapters.get(descriptor.kind)
        if adapter_cls is None:
            raise InvalidConnectionUrl(f"Unsupported database type: {descriptor.kind}")
        return adapter_cls(descriptor, engine_options)

    @staticmethod
    def from_url(url: str, engine_options: Optional[Dict[str, Any]] = None) -> DatabaseAdapter:
        return DatabaseFactory.create_connector(parse_connection_url(url), engine_options)

    @staticmethod
    def get_supported_types() -> List[str]:
        """Get list of supported database types"""
        return [kind.value for kind in DatabaseFactory._adapters]
