import itertools
import os
from types import SimpleNamespace
from typing import AsyncGenerator, Optional

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.init_db import init_models
from app.db.session import get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"
DEFAULT_PASSWORD = "secret123"

_counter = itertools.count(1)


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test. StaticPool keeps every session on the same connection."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app. Each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(client: AsyncClient):
    """Register a user through the API and return id, name, email and auth headers."""

    async def _make_user(role: str, name: Optional[str] = None, email: Optional[str] = None) -> SimpleNamespace:
        n = next(_counter)
        name = name or f"{role.title()} {n}"
        email = email or f"{role}{n}@example.com"
        resp = await client.post(
            "/api/v1/auth/register",
            json={"name": name, "email": email, "password": DEFAULT_PASSWORD, "role": role},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return SimpleNamespace(
            id=data["user"]["id"],
            name=name,
            email=email,
            headers={"Authorization": f"Bearer {data['access_token']}"},
        )

    return _make_user


@pytest.fixture()
def make_classroom(client: AsyncClient):
    """Create a classroom as the given teacher and return its id."""

    async def _make_classroom(teacher: SimpleNamespace, max_students: Optional[int] = None, **overrides) -> str:
        n = next(_counter)
        payload = {
            "name": f"Classroom {n}",
            "grade_level": "3",
            "section": f"S{n}",
            "school_year": "2025-2026",
        }
        if max_students is not None:
            payload["max_students"] = max_students
        payload.update(overrides)
        resp = await client.post("/api/v1/classrooms", json=payload, headers=teacher.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["classroom_id"]

    return _make_classroom


@pytest.fixture()
def enroll(client: AsyncClient):
    async def _enroll(teacher: SimpleNamespace, classroom_id: str, student: SimpleNamespace):
        return await client.post(
            f"/api/v1/classrooms/{classroom_id}/students",
            json={"student_id": student.id},
            headers=teacher.headers,
        )

    return _enroll
