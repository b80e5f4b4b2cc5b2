"""Pytest configuration and fixtures."""
import os
from datetime import datetime, timedelta, UTC
from decimal import Decimal
from pathlib import Path
import uuid

import jwt
import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
# In-memory locks only
os.environ["REDIS_URL"] = ""
# Keep contention retries fast
os.environ["SETTLEMENT_RETRY_BASE_DELAY_SECONDS"] = "0.01"
os.environ["SETTLEMENT_MAX_RETRIES"] = "5"

from backend.config import get_settings
from backend.models.quiz_content import QuizCourse, QuizModule, QuizLevel, QuizQuestion
from backend.models.user import User
from backend.utils.pins import hash_pin


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
TEST_PIN = "1234"
settings = get_settings()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    # Clean up any existing test database
    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            pass  # Continue anyway, migrations will handle it

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    # Clean up test database after all tests
    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows, database might still be in use
            pass


@pytest.fixture
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args={"timeout": 30},
    )

    yield engine

    # Properly dispose of the engine to close all connections
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine, for tests that need several sessions."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        # Ensure transaction is rolled back and session is closed
        await session.rollback()
        await session.close()


@pytest.fixture
async def test_app(session_factory):
    """Create test app with database override."""
    from backend.main import app
    from backend.database import get_db

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    """Factory for creating users with a balance and a transaction PIN."""

    async def _create_user(
        balance: Decimal | str | int = Decimal("1000.00"),
        pin: str | None = TEST_PIN,
        is_suspended: bool = False,
        username: str | None = None,
    ) -> User:
        unique_id = uuid.uuid4().hex[:8]
        user = User(
            user_id=uuid.uuid4(),
            username=username or f"user_{unique_id}",
            email=f"user_{unique_id}@example.com",
            balance=Decimal(str(balance)),
            is_suspended=is_suspended,
            transaction_pin_hash=hash_pin(pin, rounds=4) if pin else None,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest.fixture
def level_factory(db_session):
    """Factory for creating a course/module/level with ``question_count`` questions.

    Correct options alternate A, B, A, ...
    """

    async def _create_level(question_count: int = 10, name: str | None = None) -> QuizLevel:
        unique_id = uuid.uuid4().hex[:8]
        course = QuizCourse(name=f"Course {unique_id}", description="Test course", icon="Q")
        module = QuizModule(course=course, name=f"Module {unique_id}")
        level = QuizLevel(module=module, level=1, name=name or f"Level {unique_id}")
        for i in range(question_count):
            level.questions.append(QuizQuestion(
                question=f"Question {i + 1}?",
                option_a="Yes",
                option_b="No",
                correct_option="A" if i % 2 == 0 else "B",
                time_limit=15,
            ))
        db_session.add(course)
        await db_session.commit()
        return level

    return _create_level


@pytest.fixture
def build_answers(db_session):
    """Build submitted answers for a game's question ids.

    The first ``correct`` answers are right, the rest wrong.
    """
    from backend.services.grader import SubmittedAnswer

    async def _build(question_ids: list[str], correct: int | None = None, seconds: float = 2.0):
        result = await db_session.execute(
            select(QuizQuestion.question_id, QuizQuestion.correct_option)
            .where(QuizQuestion.question_id.in_([uuid.UUID(q) for q in question_ids]))
        )
        key = {str(qid): option for qid, option in result.all()}
        correct = len(question_ids) if correct is None else correct
        answers = []
        for i, qid in enumerate(question_ids):
            right = key[qid]
            wrong = "B" if right == "A" else "A"
            answers.append(SubmittedAnswer(
                question_id=qid,
                submitted_option=right if i < correct else wrong,
                time_taken_seconds=seconds,
            ))
        return answers

    return _build


def make_access_token(user_id: uuid.UUID, expires_in: timedelta = timedelta(minutes=15)) -> str:
    payload = {"sub": str(user_id), "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def auth_headers():
    """Bearer headers for a user id."""

    def _headers(user_id: uuid.UUID) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(user_id)}"}

    return _headers
