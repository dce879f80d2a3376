import pytest
from langgraph.checkpoint.memory import MemorySaver

from backend import database
from backend.persistence import DraftStore


@pytest.mark.parametrize("url, expected", [
    ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
    ("postgres://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
    ("sqlite+aiosqlite:///records.db", "sqlite+aiosqlite:///records.db"),
    ("", ""),
])
def test_async_database_url(url, expected):
    assert database.get_async_database_url(url) == expected


def test_checkpointer_falls_back_to_memory(monkeypatch):
    monkeypatch.setattr(database, "checkpointer", None)

    assert isinstance(database.get_checkpointer(), MemorySaver)


@pytest.mark.asyncio
async def test_global_engine_backs_default_stores(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "engine", None)
    monkeypatch.setattr(database, "async_session_maker", None)

    with pytest.raises(RuntimeError):
        database.get_session_maker()

    database.init_engine(f"sqlite+aiosqlite:///{tmp_path / 'global.db'}")
    try:
        await database.create_tables()

        drafts = DraftStore()
        await drafts.save("user-1", "manual", {"awards": [{"id": "x", "year": 1, "name": "상"}]})
        assert (await drafts.load("user-1")).submission_type == "manual"
    finally:
        await database.engine.dispose()


def test_settings_validate_rejects_bad_timeout(monkeypatch):
    from backend.settings import Settings

    monkeypatch.setattr(Settings, "EXTRACTION_TIMEOUT_SECONDS", 0)

    with pytest.raises(ValueError, match="EXTRACTION_TIMEOUT_SECONDS"):
        Settings.validate()
