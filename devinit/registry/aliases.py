"""Alias index: globally unique lookup keys, one primary per project."""

import logging
import sqlite3
from collections import Counter
from collections.abc import Sequence

from devinit.errors import ConflictError, InvalidAliasError, NotFoundError, PrimaryGuardViolation
from devinit.lib import store
from devinit.lib.store import from_row
from devinit.registry.models import Alias

logger = logging.getLogger(__name__)


def _validate_alias(alias: str) -> None:
    if not alias:
        raise InvalidAliasError("Alias cannot be empty")
    if any(ch.isspace() for ch in alias):
        raise InvalidAliasError(f"Alias cannot contain whitespace: '{alias}'")


def _project_exists(conn: sqlite3.Connection, project_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM projects WHERE id = ?", (project_id,)).fetchone()
    return row is not None


def _alias_count(conn: sqlite3.Connection, project_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM aliases WHERE project_id = ?", (project_id,)
    ).fetchone()
    return row[0]


def _taken(conn: sqlite3.Connection, names: Sequence[str]) -> list[str]:
    placeholders = ", ".join("?" for _ in names)
    rows = conn.execute(
        f"SELECT alias FROM aliases WHERE alias IN ({placeholders})", tuple(names)
    ).fetchall()
    return sorted(row["alias"] for row in rows)


def _insert(conn: sqlite3.Connection, project_id: int, alias: str, is_primary: bool) -> None:
    try:
        conn.execute(
            "INSERT INTO aliases (project_id, alias, is_primary) VALUES (?, ?, ?)",
            (project_id, alias, int(is_primary)),
        )
    except sqlite3.IntegrityError as e:
        raise ConflictError(f"Alias '{alias}' already exists") from e


def insert_batch(conn: sqlite3.Connection, project_id: int, aliases: Sequence[str]) -> None:
    """Check and insert aliases on an open transaction.

    Callers own the transaction; an exception here must roll it back.
    """
    if not aliases:
        return
    for alias in aliases:
        _validate_alias(alias)

    duplicates = sorted(a for a, n in Counter(aliases).items() if n > 1)
    if duplicates:
        raise ConflictError(f"Duplicate aliases in request: {', '.join(duplicates)}")

    if not _project_exists(conn, project_id):
        raise NotFoundError(f"Project {project_id} does not exist")

    taken = _taken(conn, aliases)
    if taken:
        raise ConflictError(f"Aliases already exist: {', '.join(taken)}")

    first_is_primary = _alias_count(conn, project_id) == 0
    for index, alias in enumerate(aliases):
        _insert(conn, project_id, alias, first_is_primary and index == 0)


def resolve(alias_or_name: str) -> int:
    """Return the project id for an alias, falling back to the display name.

    Only exact matches count. A display name shared by several projects
    resolves to the oldest one.
    """
    with store.ensure() as conn:
        row = conn.execute(
            "SELECT project_id FROM aliases WHERE alias = ?", (alias_or_name,)
        ).fetchone()
        if row:
            return row["project_id"]

        row = conn.execute(
            "SELECT id FROM projects WHERE name = ? ORDER BY id LIMIT 1", (alias_or_name,)
        ).fetchone()
        if row:
            return row["id"]

    raise NotFoundError(f"No project or alias named '{alias_or_name}'")


def exists(alias: str) -> bool:
    with store.ensure() as conn:
        row = conn.execute("SELECT 1 FROM aliases WHERE alias = ?", (alias,)).fetchone()
        return row is not None


def add_primary(project_id: int, alias: str) -> None:
    """Add the first alias of a project, flagged primary."""
    _validate_alias(alias)
    with store.transaction() as conn:
        if not _project_exists(conn, project_id):
            raise NotFoundError(f"Project {project_id} does not exist")
        if _alias_count(conn, project_id):
            raise ConflictError(f"Project {project_id} already has a primary alias")
        if _taken(conn, [alias]):
            raise ConflictError(f"Alias '{alias}' already exists")
        _insert(conn, project_id, alias, True)


def add_secondary(project_id: int, alias: str) -> None:
    """Add a non-primary alias.

    A project with no aliases yet gets this one as its primary.
    """
    _validate_alias(alias)
    with store.transaction() as conn:
        if not _project_exists(conn, project_id):
            raise NotFoundError(f"Project {project_id} does not exist")
        if _taken(conn, [alias]):
            raise ConflictError(f"Alias '{alias}' already exists")
        is_primary = _alias_count(conn, project_id) == 0
        if is_primary:
            logger.debug(f"Project {project_id} had no aliases; '{alias}' becomes primary")
        _insert(conn, project_id, alias, is_primary)


def add_batch(project_id: int, aliases: Sequence[str]) -> None:
    """Insert all aliases or none.

    The first alias becomes primary when the project has none yet.
    """
    aliases = list(aliases)
    with store.transaction() as conn:
        insert_batch(conn, project_id, aliases)


def remove(alias: str) -> None:
    with store.transaction() as conn:
        row = conn.execute(
            "SELECT project_id, is_primary FROM aliases WHERE alias = ?", (alias,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Alias '{alias}' not found")

        if row["is_primary"] and _alias_count(conn, row["project_id"]) > 1:
            raise PrimaryGuardViolation(
                f"Cannot remove primary alias '{alias}' while the project has other aliases"
            )

        conn.execute("DELETE FROM aliases WHERE alias = ?", (alias,))


def list_all() -> list[Alias]:
    with store.ensure() as conn:
        rows = conn.execute("SELECT project_id, alias, is_primary FROM aliases").fetchall()
        return [from_row(row, Alias) for row in rows]


def for_project(project_id: int) -> list[Alias]:
    """Aliases of one project, primary first."""
    with store.ensure() as conn:
        rows = conn.execute(
            "SELECT project_id, alias, is_primary FROM aliases WHERE project_id = ? "
            "ORDER BY is_primary DESC, alias",
            (project_id,),
        ).fetchall()
        return [from_row(row, Alias) for row in rows]


def primary(project_id: int) -> str | None:
    with store.ensure() as conn:
        row = conn.execute(
            "SELECT alias FROM aliases WHERE project_id = ? AND is_primary = 1", (project_id,)
        ).fetchone()
        return row["alias"] if row else None
