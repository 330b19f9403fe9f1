"""Shared test fixtures."""

from unittest.mock import patch

import pytest
import pytest_asyncio

from novelmap.db import manuscript_store, project_store
from novelmap.db.sqlite_db import init_db
from novelmap.models.entity import ChapterInput


@pytest_asyncio.fixture
async def db(tmp_path):
    """Point the store layer at a fresh on-disk database for one test.

    Stores open and close their own connections, so an in-memory database
    would vanish between calls; a file under tmp_path does not.
    """
    db_path = tmp_path / "novelmap.db"
    with patch("novelmap.db.sqlite_db.DB_PATH", db_path), \
         patch("novelmap.db.sqlite_db.ensure_data_dir"):
        await init_db()
        yield db_path


@pytest_asyncio.fixture
async def project(db):
    return await project_store.create_project("Stormlight Saga")


async def _add_manuscript(project_id: int, title: str, *bodies: str):
    manuscript = await manuscript_store.create_manuscript(
        project_id,
        title,
        chapters=[ChapterInput(title=f"Chapter {i}", body=b) for i, b in enumerate(bodies, 1)],
    )
    chapters = await manuscript_store.list_chapters(manuscript.id)
    return manuscript, chapters


@pytest.fixture
def add_manuscript(db):
    """Create a manuscript with one chapter per body; returns (manuscript, chapters)."""
    return _add_manuscript
