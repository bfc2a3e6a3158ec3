"""Shared fixtures for Schema Forge tests."""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from schema_forge.agents.main_agent import Session
from schema_forge.config import ConfigStore, Settings
from schema_forge.database.models import (
    ColumnDescriptor,
    DatabaseKind,
    ForeignKeyRef,
    SchemaModel,
    TableDescriptor,
)
from schema_forge.utils.retry import RetryExecutor


@pytest.fixture()
def sqlite_db(tmp_path: Path) -> Path:
    """Create a temporary SQLite database with users, orders and a view."""
    db_path = tmp_path / "shop.db"
    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            signup_date DATE
        )
    """)
    cursor.execute("""
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id),
            total REAL,
            created_at TEXT
        )
    """)
    cursor.execute("""
        CREATE VIEW user_totals AS
        SELECT u.name AS name, SUM(o.total) AS total
        FROM users u JOIN orders o ON o.user_id = u.id
        GROUP BY u.name
    """)

    cursor.executemany(
        "INSERT INTO users (name, signup_date) VALUES (?, ?)",
        [
            ("Alice", "2024-01-02"),
            ("Bob", "2024-03-15"),
            ("Carol", "2024-03-18"),
        ],
    )
    cursor.executemany(
        "INSERT INTO orders (user_id, total, created_at) VALUES (?, ?, ?)",
        [
            (1, 10.5, "2024-01-05"),
            (1, 4.5, "2024-02-01"),
            (2, 99.0, "2024-03-16"),
        ],
    )
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture()
def sqlite_url(sqlite_db: Path) -> str:
    return f"sqlite:///{sqlite_db}"


@pytest.fixture()
def shop_schema() -> SchemaModel:
    """A small hand-built schema, no database needed."""
    users = TableDescriptor(
        name="users",
        columns=(
            ColumnDescriptor("id", "INTEGER", nullable=False),
            ColumnDescriptor("name", "TEXT", nullable=False),
            ColumnDescriptor("signup_date", "DATE"),
        ),
        primary_keys=("id",),
    )
    orders = TableDescriptor(
        name="orders",
        columns=(
            ColumnDescriptor("id", "INTEGER", nullable=False),
            ColumnDescriptor("user_id", "INTEGER", nullable=False),
            ColumnDescriptor("total", "REAL"),
        ),
        primary_keys=("id",),
        foreign_keys=(ForeignKeyRef("user_id", "users", "id"),),
    )
    return SchemaModel(db_kind=DatabaseKind.SQLITE, tables=(orders, users), database_name="shop.db")


class FakeProvider:
    """Stands in for an LLMProvider; replays queued responses or errors."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or ["```sql\nSELECT COUNT(*) FROM users;\n```"])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def close(self):
        self.closed = True

    def generate(self, prompt, model_name, api_key, system=None):
        self.calls.append({
            "prompt": prompt,
            "model": model_name,
            "api_key": api_key,
            "system": system,
        })
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


class FakeProviderFactory:
    def __init__(self, provider: FakeProvider):
        self.provider = provider
        self.requested = []

    def __call__(self, kind, **kwargs):
        self.requested.append(kind)
        return self.provider


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def provider_factory(fake_provider: FakeProvider) -> FakeProviderFactory:
    return FakeProviderFactory(fake_provider)


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def executor(sleeps: List[float]) -> RetryExecutor:
    return RetryExecutor(max_attempts=4, base_delay=1.0, max_delay=30.0, sleep=sleeps.append)


@pytest.fixture()
def config_store() -> ConfigStore:
    return ConfigStore()


@pytest.fixture()
def session(config_store: ConfigStore, provider_factory: FakeProviderFactory, executor: RetryExecutor) -> Session:
    session = Session(
        config_store=config_store,
        settings=Settings(max_attempts=4),
        provider_factory=provider_factory,
        executor=executor,
    )
    yield session
    session.disconnect()


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, headers: Optional[Dict[str, str]] = None,
                 text: str = ""):
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.text = text
        self.reason = ""

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeHTTPSession:
    """Records POSTs and returns a canned response (or raises)."""

    def __init__(self, response: Any = None):
        self.response = response if response is not None else FakeResponse(200, {})
        self.requests: List[Dict[str, Any]] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if isinstance(self.response, BaseException):
            raise self.response
        return self.response
