"""CRUD operations for the project table."""

from novelmap.db.sqlite_db import NotFoundError, get_connection
from novelmap.models.entity import Project


def _row_to_project(row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        created_at=row["created_at"],
    )


async def create_project(name: str, path: str = "") -> Project:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "INSERT INTO project (name, path) VALUES (?, ?)",
            (name, path),
        )
        await conn.commit()
        project_id = cursor.lastrowid
        cursor = await conn.execute("SELECT * FROM project WHERE id = ?", (project_id,))
        return _row_to_project(await cursor.fetchone())
    finally:
        await conn.close()


async def get_project(project_id: int) -> Project:
    """Get a project by id. Raises NotFoundError when missing."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT * FROM project WHERE id = ?", (project_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFoundError("project", project_id)
        return _row_to_project(row)
    finally:
        await conn.close()


async def list_projects() -> list[Project]:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT * FROM project ORDER BY id")
        rows = await cursor.fetchall()
        return [_row_to_project(r) for r in rows]
    finally:
        await conn.close()


async def delete_project(project_id: int) -> None:
    """Delete a project and (by cascade) everything under it."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("DELETE FROM project WHERE id = ?", (project_id,))
        await conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("project", project_id)
    finally:
        await conn.close()
