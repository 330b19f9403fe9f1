import aiosqlite

from novelmap.infra.config import DB_PATH, ensure_data_dir

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS project (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    path            TEXT NOT NULL DEFAULT '',
    created_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS manuscript (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id      INTEGER NOT NULL REFERENCES project(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    file_path       TEXT NOT NULL DEFAULT '',
    created_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS chapter (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    manuscript_id   INTEGER NOT NULL REFERENCES manuscript(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    order_index     INTEGER NOT NULL,
    body            TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS entity (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id      INTEGER NOT NULL REFERENCES project(id) ON DELETE CASCADE,
    type            TEXT NOT NULL CHECK (type IN (
                        'character', 'location', 'organization',
                        'artifact', 'concept', 'event'
                    )),
    name            TEXT NOT NULL,
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS appearance (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_id           INTEGER NOT NULL REFERENCES entity(id) ON DELETE CASCADE,
    manuscript_id       INTEGER NOT NULL REFERENCES manuscript(id) ON DELETE CASCADE,
    chapter_id          INTEGER NOT NULL REFERENCES chapter(id) ON DELETE CASCADE,
    text_range_start    INTEGER,
    text_range_end      INTEGER,
    notes               TEXT
);

CREATE INDEX IF NOT EXISTS idx_manuscript_project   ON manuscript(project_id);
CREATE INDEX IF NOT EXISTS idx_chapter_manuscript   ON chapter(manuscript_id, order_index);
CREATE INDEX IF NOT EXISTS idx_entity_project       ON entity(project_id);
CREATE INDEX IF NOT EXISTS idx_appearance_manuscript ON appearance(manuscript_id);
"""

# Created after duplicate rows are collapsed (older databases may hold duplicates)
_APPEARANCE_UNIQUE_SQL = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_appearance_entity_chapter
    ON appearance(entity_id, chapter_id)
"""


class NotFoundError(LookupError):
    """Raised when a project, manuscript, chapter, entity or appearance id does not exist."""

    def __init__(self, kind: str, ident: int):
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class InvariantViolation(RuntimeError):
    """Stored data breaks an invariant the write path should have enforced."""


async def get_connection() -> aiosqlite.Connection:
    conn = await aiosqlite.connect(str(DB_PATH))
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = aiosqlite.Row
    return conn


async def init_db() -> None:
    ensure_data_dir()
    conn = await get_connection()
    try:
        await conn.executescript(_SCHEMA_SQL)
        # Migration: one appearance per (entity, chapter)
        await conn.execute(
            """
            DELETE FROM appearance
            WHERE id NOT IN (
                SELECT MIN(id) FROM appearance GROUP BY entity_id, chapter_id
            )
            """
        )
        await conn.execute(_APPEARANCE_UNIQUE_SQL)
        await conn.commit()
    finally:
        await conn.close()
