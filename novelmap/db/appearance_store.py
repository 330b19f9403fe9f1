"""Read and delete operations for the appearance table.

Rows are only written by detection (``services.detection_service``) inside its
per-manuscript transaction.
"""

from novelmap.db.sqlite_db import NotFoundError, get_connection
from novelmap.models.entity import Appearance


def _row_to_appearance(row) -> Appearance:
    return Appearance(
        id=row["id"],
        entity_id=row["entity_id"],
        manuscript_id=row["manuscript_id"],
        chapter_id=row["chapter_id"],
        text_range_start=row["text_range_start"],
        text_range_end=row["text_range_end"],
        notes=row["notes"],
    )


async def get_appearance(appearance_id: int) -> Appearance:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT * FROM appearance WHERE id = ?", (appearance_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFoundError("appearance", appearance_id)
        return _row_to_appearance(row)
    finally:
        await conn.close()


async def list_for_entity(entity_id: int) -> list[Appearance]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            """
            SELECT a.* FROM appearance a
            JOIN chapter c ON c.id = a.chapter_id
            WHERE a.entity_id = ?
            ORDER BY a.manuscript_id, c.order_index
            """,
            (entity_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_appearance(r) for r in rows]
    finally:
        await conn.close()


async def list_for_chapter(chapter_id: int) -> list[Appearance]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM appearance WHERE chapter_id = ? ORDER BY text_range_start, id",
            (chapter_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_appearance(r) for r in rows]
    finally:
        await conn.close()


async def list_for_manuscript(manuscript_id: int) -> list[Appearance]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT * FROM appearance WHERE manuscript_id = ? ORDER BY chapter_id, id",
            (manuscript_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_appearance(r) for r in rows]
    finally:
        await conn.close()


async def count_for_manuscript(manuscript_id: int) -> int:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM appearance WHERE manuscript_id = ?", (manuscript_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0
    finally:
        await conn.close()


async def delete_appearance(appearance_id: int) -> None:
    conn = await get_connection()
    try:
        cursor = await conn.execute("DELETE FROM appearance WHERE id = ?", (appearance_id,))
        await conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("appearance", appearance_id)
    finally:
        await conn.close()
