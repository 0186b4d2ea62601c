"""Project repository: CRUD over named manifests."""

import logging
from collections import Counter
from collections.abc import Iterable, Sequence

from devinit.errors import NotFoundError
from devinit.lib import store
from devinit.lib.store import from_row
from devinit.registry import aliases as alias_index
from devinit.registry.models import Project

logger = logging.getLogger(__name__)


def add(name: str, manifest: str) -> int:
    """Store a project. The manifest is kept verbatim and not validated."""
    with store.transaction() as conn:
        cursor = conn.execute(
            "INSERT INTO projects (name, manifest) VALUES (?, ?)", (name, manifest)
        )
        project_id = cursor.lastrowid
    logger.info(f"Added project {project_id} '{name}'")
    return project_id


def create(name: str, manifest: str, aliases: Sequence[str] = ()) -> int:
    """Store a project together with its aliases in one transaction.

    A rejected alias leaves no project behind.
    """
    with store.transaction() as conn:
        cursor = conn.execute(
            "INSERT INTO projects (name, manifest) VALUES (?, ?)", (name, manifest)
        )
        project_id = cursor.lastrowid
        alias_index.insert_batch(conn, project_id, list(aliases))
    logger.info(f"Added project {project_id} '{name}' with {len(aliases)} aliases")
    return project_id


def get(names: Iterable[str]) -> Project:
    """Return the project matched by every candidate name or alias.

    Each distinct candidate must match the project, by alias or display
    name. Among qualifying projects, the one matched by alias for the most
    candidates wins, so a lone alias picks the same project as
    aliases.resolve. Ties go to the oldest project.
    """
    candidates = sorted(set(names))
    if not candidates:
        raise ValueError("At least one name or alias must be provided")

    placeholders = ", ".join("?" for _ in candidates)
    with store.ensure() as conn:
        rows = conn.execute(
            f"""
            SELECT alias AS key, project_id, 1 AS by_alias
            FROM aliases WHERE alias IN ({placeholders})
            UNION
            SELECT name AS key, id AS project_id, 0 AS by_alias
            FROM projects WHERE name IN ({placeholders})
            """,
            (*candidates, *candidates),
        ).fetchall()

        matches: dict[str, set[int]] = {key: set() for key in candidates}
        alias_hits: Counter[int] = Counter()
        for row in rows:
            matches[row["key"]].add(row["project_id"])
            if row["by_alias"]:
                alias_hits[row["project_id"]] += 1

        common = set.intersection(*matches.values())
        if not common:
            raise NotFoundError(f"No project matches {', '.join(candidates)}")

        best = min(common, key=lambda project_id: (-alias_hits[project_id], project_id))
        row = conn.execute(
            "SELECT id, name, manifest FROM projects WHERE id = ?", (best,)
        ).fetchone()
        return from_row(row, Project)


def get_by_id(project_id: int) -> Project:
    with store.ensure() as conn:
        row = conn.execute(
            "SELECT id, name, manifest FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
    if row is None:
        raise NotFoundError(f"Project {project_id} does not exist")
    return from_row(row, Project)


def get_all() -> list[Project]:
    with store.ensure() as conn:
        rows = conn.execute("SELECT id, name, manifest FROM projects ORDER BY id").fetchall()
        return [from_row(row, Project) for row in rows]


def remove(project_id: int) -> None:
    """Delete a project and every alias pointing at it."""
    with store.transaction() as conn:
        conn.execute("DELETE FROM aliases WHERE project_id = ?", (project_id,))
        cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(f"Project {project_id} does not exist")
    logger.info(f"Removed project {project_id}")


def replace_manifest(project_id: int, manifest: str) -> None:
    with store.transaction() as conn:
        cursor = conn.execute(
            "UPDATE projects SET manifest = ? WHERE id = ?", (manifest, project_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Project {project_id} does not exist")
