"""
Pytest configuration and fixtures.
"""

import sys
from pathlib import Path
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from studytracker.infra.db import Base
from studytracker.infra.repository import RecordRepository
from studytracker.infra.store import AppState
from studytracker.services import (
    GoalService, PerformanceFilterService, PerformanceService, PomodoroService,
    StatisticsService, SubjectService,
)

SUBJECTS_TEXT = "Matemática: Álgebra, Geometria; Português: Gramática"


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a throwaway SQLite database for testing"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create a new session for a test"""
    async_session = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def state(db_session):
    """Loaded application state persisting through the test session"""
    app_state = AppState(RecordRepository(session=db_session))
    await app_state.load()
    return app_state


@pytest.fixture
def subject_service(state):
    return SubjectService(state)


@pytest.fixture
def performance_service(state, subject_service):
    return PerformanceService(state, subject_service)


@pytest_asyncio.fixture
async def pomodoro_service(state, performance_service):
    service = PomodoroService(state, performance_service)
    yield service
    # Make sure no countdown job outlives the test
    service.close()


@pytest.fixture
def goal_service(state):
    return GoalService(state)


@pytest.fixture
def filter_service(state):
    return PerformanceFilterService(state)


@pytest.fixture
def stats_service(state):
    return StatisticsService(state)


@pytest_asyncio.fixture
async def subjects(subject_service):
    """Two subjects: Matemática (Álgebra, Geometria) and Português (Gramática)"""
    return await subject_service.add_subjects_from_text(SUBJECTS_TEXT)
