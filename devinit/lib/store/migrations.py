"""Schema bootstrap and versioned migrations with data loss safeguards."""

import logging
import sqlite3
from collections.abc import Callable, Iterable

from devinit.errors import SchemaError

logger = logging.getLogger(__name__)

Migration = tuple[str, str | Callable[[sqlite3.Connection], None]]


def tables(conn: sqlite3.Connection) -> set[str]:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name != 'sqlite_sequence'"
    )
    return {row[0] for row in cursor.fetchall()}


def schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def ensure_schema(
    conn: sqlite3.Connection,
    schema: str,
    required: Iterable[str],
    migs: list[Migration] | None = None,
) -> None:
    """Create base tables if any are missing, then apply pending migrations."""
    missing = set(required) - tables(conn)
    if missing:
        logger.info(f"Creating base schema (missing tables: {', '.join(sorted(missing))})")
        try:
            conn.executescript(f"BEGIN;\n{schema}\nCOMMIT;")
        except sqlite3.Error as e:
            _rollback(conn)
            raise SchemaError(f"Base schema creation failed: {e}") from e
    if migs:
        migrate(conn, migs)


def migrate(conn: sqlite3.Connection, migs: list[Migration]) -> None:
    """Apply every migration whose version is above PRAGMA user_version.

    Migration N (1-based position in migs) runs in its own transaction that
    also sets user_version to N, so a failed step leaves the version at N-1
    and is retried on the next open rather than skipped.
    """
    current = schema_version(conn)
    if current > len(migs):
        raise SchemaError(
            f"Store schema version {current} is newer than this devinit ({len(migs)})"
        )

    for version, (name, migration) in enumerate(migs, start=1):
        if version <= current:
            continue
        try:
            before = {t: _get_table_count(conn, t) for t in tables(conn)}

            if callable(migration):
                conn.execute("BEGIN")
                migration(conn)
            else:
                conn.executescript(f"BEGIN;\n{migration}")

            for table, count_before in before.items():
                _check_migration_safety(conn, table, count_before)

            conn.execute(f"PRAGMA user_version = {version}")
            conn.execute("COMMIT")
            logger.info(f"Applied migration {version} '{name}'")
        except (sqlite3.Error, ValueError) as e:
            _rollback(conn)
            logger.error(f"Migration {version} '{name}' failed: {e}")
            raise SchemaError(f"Migration {version} '{name}' failed: {e}") from e


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


def _get_table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for table, returns 0 if table doesn't exist."""
    try:
        result = conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()
        return result[0] if result else 0
    except sqlite3.OperationalError:
        return 0


def _check_migration_safety(
    conn: sqlite3.Connection, table: str, before: int, allow_loss: int = 0
) -> None:
    """Verify row count after migration, raise if data loss exceeds threshold.

    Raises:
        ValueError: If data loss detected exceeds allow_loss
    """
    after = _get_table_count(conn, table)
    lost = before - after

    if lost > allow_loss:
        raise ValueError(f"{table}: {lost} rows lost (before: {before}, after: {after})")

    if lost > 0:
        logger.warning(f"Migration {table}: {lost} rows removed (allow_loss={allow_loss})")
