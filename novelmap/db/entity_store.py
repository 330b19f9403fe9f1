"""CRUD operations for the entity table.

Metadata is validated through ``EntityCreate`` / ``EntityUpdate`` before it is
written, so reads can treat malformed JSON as a broken invariant.
"""

import json

from novelmap.db.sqlite_db import InvariantViolation, NotFoundError, get_connection
from novelmap.models.entity import Entity, EntityCreate, EntityUpdate


def decode_metadata(raw: str | None, entity_id: int) -> dict:
    """Parse stored metadata JSON. Anything but a JSON object is a defect."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvariantViolation(f"entity {entity_id} has malformed metadata JSON") from exc
    if not isinstance(value, dict):
        raise InvariantViolation(f"entity {entity_id} metadata is not a JSON object")
    return value


def _row_to_entity(row) -> Entity:
    return Entity(
        id=row["id"],
        project_id=row["project_id"],
        type=row["type"],
        name=row["name"],
        metadata=decode_metadata(row["metadata"], row["id"]),
        created_at=row["created_at"],
    )


async def create_entity(project_id: int, data: EntityCreate) -> Entity:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT 1 FROM project WHERE id = ?", (project_id,))
        if not await cursor.fetchone():
            raise NotFoundError("project", project_id)
        cursor = await conn.execute(
            "INSERT INTO entity (project_id, type, name, metadata) VALUES (?, ?, ?, ?)",
            (project_id, data.type, data.name, json.dumps(data.metadata, ensure_ascii=False)),
        )
        await conn.commit()
        entity_id = cursor.lastrowid
        cursor = await conn.execute("SELECT * FROM entity WHERE id = ?", (entity_id,))
        return _row_to_entity(await cursor.fetchone())
    finally:
        await conn.close()


async def create_entities_if_absent(project_id: int, items: list[EntityCreate]) -> list[Entity]:
    """Insert entities whose names (case-insensitive) are not yet in the project.

    Runs as a single transaction; returns only the rows actually created.
    """
    conn = await get_connection()
    try:
        await conn.execute("BEGIN IMMEDIATE")
        try:
            cursor = await conn.execute("SELECT 1 FROM project WHERE id = ?", (project_id,))
            if not await cursor.fetchone():
                raise NotFoundError("project", project_id)

            cursor = await conn.execute(
                "SELECT name FROM entity WHERE project_id = ?", (project_id,)
            )
            taken = {row["name"].lower() for row in await cursor.fetchall()}

            created_ids: list[int] = []
            for item in items:
                key = item.name.lower()
                if key in taken:
                    continue
                taken.add(key)
                cursor = await conn.execute(
                    "INSERT INTO entity (project_id, type, name, metadata) VALUES (?, ?, ?, ?)",
                    (project_id, item.type, item.name, json.dumps(item.metadata, ensure_ascii=False)),
                )
                created_ids.append(cursor.lastrowid)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

        if not created_ids:
            return []
        placeholders = ",".join("?" * len(created_ids))
        cursor = await conn.execute(
            f"SELECT * FROM entity WHERE id IN ({placeholders}) ORDER BY id",
            created_ids,
        )
        return [_row_to_entity(r) for r in await cursor.fetchall()]
    finally:
        await conn.close()


async def get_entity(entity_id: int) -> Entity:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT * FROM entity WHERE id = ?", (entity_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFoundError("entity", entity_id)
        return _row_to_entity(row)
    finally:
        await conn.close()


async def list_entities(project_id: int, entity_type: str | None = None) -> list[Entity]:
    conn = await get_connection()
    try:
        if entity_type:
            cursor = await conn.execute(
                "SELECT * FROM entity WHERE project_id = ? AND type = ? ORDER BY name",
                (project_id, entity_type),
            )
        else:
            cursor = await conn.execute(
                "SELECT * FROM entity WHERE project_id = ? ORDER BY type, name",
                (project_id,),
            )
        rows = await cursor.fetchall()
        return [_row_to_entity(r) for r in rows]
    finally:
        await conn.close()


async def list_entity_names(project_id: int) -> list[str]:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT name FROM entity WHERE project_id = ? ORDER BY id", (project_id,)
        )
        return [row["name"] for row in await cursor.fetchall()]
    finally:
        await conn.close()


async def update_entity(entity_id: int, data: EntityUpdate) -> Entity:
    """Apply the fields set on ``data``; untouched fields keep their values."""
    fields: list[str] = []
    params: list = []
    if data.type is not None:
        fields.append("type = ?")
        params.append(data.type)
    if data.name is not None:
        fields.append("name = ?")
        params.append(data.name)
    if data.metadata is not None:
        fields.append("metadata = ?")
        params.append(json.dumps(data.metadata, ensure_ascii=False))

    conn = await get_connection()
    try:
        if fields:
            cursor = await conn.execute(
                f"UPDATE entity SET {', '.join(fields)} WHERE id = ?",
                (*params, entity_id),
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise NotFoundError("entity", entity_id)
        cursor = await conn.execute("SELECT * FROM entity WHERE id = ?", (entity_id,))
        row = await cursor.fetchone()
        if not row:
            raise NotFoundError("entity", entity_id)
        return _row_to_entity(row)
    finally:
        await conn.close()


async def delete_entity(entity_id: int) -> None:
    """Delete an entity; its appearances go with it (cascade)."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("DELETE FROM entity WHERE id = ?", (entity_id,))
        await conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("entity", entity_id)
    finally:
        await conn.close()
