"""테스트 인프라 — 임시 SQLite DB, 시드 데이터, 세션, httpx 클라이언트 픽스처.

Test infrastructure — temporary SQLite database (aiosqlite), seeded sample
data, sessions, registry/executor and httpx client fixtures.
Each test gets its own database file, so nothing needs truncating.
Sample data is committed by one session and read through a fresh one, so
no relation is ever pre-loaded in the identity map.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from typedquery.database import Base, get_db, session_scope
from typedquery.main import app
from typedquery.models import Member, Team
from typedquery.query.executor import Executor
from typedquery.query.paths import EntityPath
from typedquery.schema.catalog import create_registry, mapped_models
from typedquery.schema.registry import SchemaRegistry
from typedquery.seed import seed_sample


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션 팩토리, 시드
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트별 SQLite 엔진. 스키마를 생성합니다."""
    eng = create_async_engine(_sqlite_url(tmp_path / "test.db"), echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> list[Member]:
    """샘플 데이터(teamA/teamB, member1~4)를 커밋합니다."""
    async with session_scope(session_factory) as session:
        members = await seed_sample(session)
    return members


@pytest_asyncio.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
    seeded: list[Member],
) -> AsyncGenerator[AsyncSession, None]:
    """시드 이후 새로 연 세션 — 아무 관계도 로드되지 않은 상태."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def add_members(session_factory: async_sessionmaker[AsyncSession]):
    """추가 멤버를 커밋하는 헬퍼 (Commit extra members: (username, age[, team name]))."""

    async def _add(*rows: tuple) -> None:
        async with session_scope(session_factory) as session:
            for username, age, *rest in rows:
                team = Team(rest[0]) if rest else None
                session.add(Member(username, age, team))

    return _add


@pytest_asyncio.fixture
async def empty_db(tmp_path: Path) -> AsyncGenerator[AsyncSession, None]:
    """테이블이 없는 DB의 세션 — 실행 오류 검증용."""
    eng = create_async_engine(_sqlite_url(tmp_path / "empty.db"))
    async with async_sessionmaker(eng, class_=AsyncSession)() as session:
        yield session
    await eng.dispose()


# ---------------------------------------------------------------------------
# 쿼리 계층 픽스처
# ---------------------------------------------------------------------------
@pytest.fixture
def registry() -> SchemaRegistry:
    return create_registry()


@pytest.fixture
def executor(registry: SchemaRegistry) -> Executor:
    return Executor(registry, mapped_models())


@pytest.fixture
def member(registry: SchemaRegistry) -> EntityPath:
    return registry.path("Member")


@pytest.fixture
def team(registry: SchemaRegistry) -> EntityPath:
    return registry.path("Team")


# ---------------------------------------------------------------------------
# HTTP 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    seeded: list[Member],
) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — 요청마다 테스트 DB 세션을 사용합니다."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
