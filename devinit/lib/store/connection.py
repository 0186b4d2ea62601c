import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any, TypeVar

from devinit.errors import SchemaError
from devinit.lib import paths
from devinit.lib.store import migrations, schema
from devinit.lib.store.sqlite import connect

T = TypeVar("T")

Row = sqlite3.Row

_connections = threading.local()


def from_row(row: dict[str, Any] | Any, dataclass_type: type[T]) -> T:
    """Convert dict-like row to dataclass instance.

    Matches row keys to dataclass field names. Works with sqlite3.Row or dict.
    """
    field_names = {f.name for f in fields(dataclass_type)}
    row_dict = dict(row) if not isinstance(row, dict) else row
    kwargs = {key: row_dict[key] for key in field_names if key in row_dict}
    return dataclass_type(**kwargs)


def ensure() -> sqlite3.Connection:
    """Open devinit.db with schema and migrations applied.

    Returns a connection cached per database path via threading.local().
    """
    db_path = paths.db_path()
    cache_key = str(db_path)

    conn = getattr(_connections, cache_key, None)
    if conn is not None:
        return conn

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SchemaError(f"Cannot create data directory {db_path.parent}: {e}") from e

    try:
        conn = connect(db_path)
    except sqlite3.Error as e:
        raise SchemaError(f"Cannot open store {db_path}: {e}") from e

    try:
        migrations.ensure_schema(conn, schema.SCHEMA, schema.BASE_TABLES, schema.MIGRATIONS)
    except sqlite3.DatabaseError as e:
        conn.close()
        raise SchemaError(f"Store {db_path} is unreadable: {e}") from e
    except SchemaError:
        conn.close()
        raise

    setattr(_connections, cache_key, conn)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection | None = None) -> Iterator[sqlite3.Connection]:
    """Run the block inside BEGIN IMMEDIATE, committing on success.

    IMMEDIATE takes the write lock up front so a check and the write that
    depends on it cannot interleave with another writer.
    """
    conn = conn or ensure()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def schema_version() -> int:
    return migrations.schema_version(ensure())


def close_all() -> None:
    """Close all cached connections."""
    if hasattr(_connections, "__dict__"):
        for conn in _connections.__dict__.values():
            conn.close()
        _connections.__dict__.clear()


def _reset_for_testing() -> None:
    close_all()
