import os

# Keep the application's module-level engine off PostgreSQL during tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from pyqbank.database import Base, get_db, get_session_factory
from pyqbank.main import app
from pyqbank.services import question_service
from pyqbank.services.search_service import SearchEngine, get_search_engine
from pyqbank.services.search_strategies import IndexedTextSearch, SubstringSearch
from pyqbank.services.subject_service import SubjectService
from pyqbank.utils.auth import create_access_token


def question_data(**overrides):
    data = {
        "year": 2023,
        "exam_type": "prelims",
        "exam_name": "UPSC CSE",
        "subject": "Polity",
        "topic": "Constitution",
        "question_text": "Which Article of the Constitution deals with the Right to Equality?",
        "options": {"A": "Article 12", "B": "Article 14", "C": "Article 19", "D": "Article 21"},
        "correct_answer": "B",
    }
    data.update(overrides)
    return data


@pytest.fixture
async def engine(tmp_path):
    # A file database, because view counts are written from a separate session
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pyqbank.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_question(db):
    async def _make(**overrides):
        question = await question_service.create_question(question_data(**overrides), db, "tester")
        await db.commit()
        return question
    return _make


@pytest.fixture
async def seeded_subjects(db):
    await SubjectService.seed_subjects(db)
    return await SubjectService.get_valid_subject_names(db)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('admin-1', ['admin'])}"}


@pytest.fixture
def student_headers():
    return {"Authorization": f"Bearer {create_access_token('student-1', ['student'])}"}


@pytest.fixture
async def client(session_factory, tmp_path, monkeypatch):
    from pyqbank.services.import_service import bulk_import_service

    async def override_get_db():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(bulk_import_service, "staging_dir", str(tmp_path / "staging"))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_search_engine] = lambda: SearchEngine(IndexedTextSearch(), SubstringSearch())

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await question_service.drain_view_updates()
    app.dependency_overrides.clear()
