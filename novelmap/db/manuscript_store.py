"""CRUD operations for manuscript and chapter tables."""

from novelmap.db.sqlite_db import NotFoundError, get_connection
from novelmap.models.entity import Chapter, ChapterInput, Manuscript


def _row_to_manuscript(row) -> Manuscript:
    return Manuscript(
        id=row["id"],
        project_id=row["project_id"],
        title=row["title"],
        file_path=row["file_path"],
        created_at=row["created_at"],
    )


def _row_to_chapter(row) -> Chapter:
    return Chapter(
        id=row["id"],
        manuscript_id=row["manuscript_id"],
        title=row["title"],
        order_index=row["order_index"],
        body=row["body"],
    )


async def create_manuscript(
    project_id: int,
    title: str,
    file_path: str = "",
    chapters: list[ChapterInput] | None = None,
) -> Manuscript:
    """Insert a manuscript and its chapters (ordered as given) in one transaction."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT 1 FROM project WHERE id = ?", (project_id,))
        if not await cursor.fetchone():
            raise NotFoundError("project", project_id)

        cursor = await conn.execute(
            "INSERT INTO manuscript (project_id, title, file_path) VALUES (?, ?, ?)",
            (project_id, title, file_path),
        )
        manuscript_id = cursor.lastrowid
        if chapters:
            await conn.executemany(
                """
                INSERT INTO chapter (manuscript_id, title, order_index, body)
                VALUES (?, ?, ?, ?)
                """,
                [(manuscript_id, ch.title, i, ch.body) for i, ch in enumerate(chapters)],
            )
        await conn.commit()

        cursor = await conn.execute("SELECT * FROM manuscript WHERE id = ?", (manuscript_id,))
        return _row_to_manuscript(await cursor.fetchone())
    finally:
        await conn.close()


async def get_manuscript(manuscript_id: int) -> Manuscript:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT * FROM manuscript WHERE id = ?", (manuscript_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFoundError("manuscript", manuscript_id)
        return _row_to_manuscript(row)
    finally:
        await conn.close()


async def list_manuscripts(project_id: int) -> list[Manuscript]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM manuscript WHERE project_id = ? ORDER BY id",
            (project_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_manuscript(r) for r in rows]
    finally:
        await conn.close()


async def delete_manuscript(manuscript_id: int) -> None:
    conn = await get_connection()
    try:
        cursor = await conn.execute("DELETE FROM manuscript WHERE id = ?", (manuscript_id,))
        await conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("manuscript", manuscript_id)
    finally:
        await conn.close()


async def list_chapters(manuscript_id: int) -> list[Chapter]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM chapter WHERE manuscript_id = ? ORDER BY order_index",
            (manuscript_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_chapter(r) for r in rows]
    finally:
        await conn.close()


async def list_chapter_bodies(project_id: int, manuscript_id: int | None = None) -> list[str]:
    """Chapter bodies in reading order, for one manuscript or the whole project."""
    conn = await get_connection()
    try:
        if manuscript_id is not None:
            cursor = await conn.execute(
                """
                SELECT c.body FROM chapter c
                JOIN manuscript m ON c.manuscript_id = m.id
                WHERE m.project_id = ? AND m.id = ?
                ORDER BY c.order_index
                """,
                (project_id, manuscript_id),
            )
        else:
            cursor = await conn.execute(
                """
                SELECT c.body FROM chapter c
                JOIN manuscript m ON c.manuscript_id = m.id
                WHERE m.project_id = ?
                ORDER BY m.id, c.order_index
                """,
                (project_id,),
            )
        rows = await cursor.fetchall()
        return [r["body"] for r in rows]
    finally:
        await conn.close()


async def count_project_chapters(project_id: int) -> int:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            SELECT COUNT(*) FROM chapter c
            JOIN manuscript m ON c.manuscript_id = m.id
            WHERE m.project_id = ?
            """,
            (project_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
    finally:
        await conn.close()
