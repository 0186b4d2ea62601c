"""Registry schema: base tables plus versioned migrations.

The base script creates projects and aliases when they are missing.
MIGRATIONS are applied in order; migration N moves PRAGMA user_version to N.
Append new steps, never edit applied ones.
"""

import sqlite3

BASE_TABLES = ("projects", "aliases")

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    manifest TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS aliases (
    project_id INTEGER NOT NULL,
    alias TEXT NOT NULL UNIQUE,
    is_primary INTEGER NOT NULL DEFAULT 0 CHECK (is_primary IN (0, 1)),
    PRIMARY KEY (project_id, alias),
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_aliases_one_primary
    ON aliases(project_id) WHERE is_primary = 1;
"""


def _seed_settings(conn: sqlite3.Connection) -> None:
    row = conn.execute("SELECT COUNT(*) FROM settings").fetchone()
    if not row[0]:
        conn.execute("INSERT INTO settings (id, use_session_wrapper) VALUES (1, 0)")


MIGRATIONS = [
    (
        "settings",
        """
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    use_session_wrapper INTEGER NOT NULL DEFAULT 0 CHECK (use_session_wrapper IN (0, 1))
);
""",
    ),
    ("seed_settings", _seed_settings),
    (
        "project_name_index",
        "CREATE INDEX IF NOT EXISTS idx_projects_name ON projects(name);",
    ),
]
