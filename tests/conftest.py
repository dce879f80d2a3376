import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import backend.models  # noqa: F401  (registers the tables)
from backend.persistence import DraftStore, RecordStore
from backend.records.service import RecordSubmissionService
from tests.helpers import make_record


# ==============================================================
# Storage
# ==============================================================

@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
def drafts(session_maker) -> DraftStore:
    return DraftStore(session_maker)


@pytest.fixture
def records(session_maker) -> RecordStore:
    return RecordStore(session_maker)


@pytest.fixture
def service(records, drafts) -> RecordSubmissionService:
    return RecordSubmissionService(records=records, drafts=drafts)


# ==============================================================
# Sample data
# ==============================================================

@pytest.fixture
def sample_record():
    return make_record(
        attendance=[
            {"id": "a-1", "year": 1, "totalDays": 190, "absenceIllness": 2, "note": "질병 결석 2일"},
        ],
        awards=[
            {"id": "w-1", "year": 1, "name": "교내 수학경시대회", "rank": "금상", "date": "2023.05.10",
             "organization": "OO고등학교장", "participants": "120"},
            {"id": "w-2", "year": 2, "name": "과학탐구대회", "rank": "은상", "date": "2024.06.01",
             "organization": "OO고등학교장", "participants": "80"},
        ],
        generalSubjects=[
            {"id": "g-1", "year": 2, "semester": 1, "category": "수학", "subject": "수학Ⅰ", "credits": 4,
             "rawScore": 92.5, "average": 70.1, "standardDeviation": 15.2, "achievement": "A",
             "studentCount": 210, "gradeRank": 2},
        ],
    )
