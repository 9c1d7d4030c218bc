"""Shared fixtures: a throwaway SQLite database per test and an ASGI client wired to it."""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import get_db, get_session_factory
from app.dependencies import get_redis
from app.main import app
from app.models import Base, Tag, TagCollect, Topic, TopicTag, User
from app.routers.auth import hash_api_key

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeRedis:
    """Stands in for the rate limiter's Redis client; every EVAL is allowed unless told otherwise."""

    def __init__(self, allowed: int = 1):
        self.allowed = allowed
        self.keys: list[str] = []

    async def eval(self, script, numkeys, key, *args):
        self.keys.append(key)
        return self.allowed


class Seeder:
    """Writes fixture rows through its own short-lived sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._minutes = 0

    async def _save(self, obj):
        async with self.session_factory() as db:
            db.add(obj)
            await db.commit()
            await db.refresh(obj)
        return obj

    async def tag(self, name: str, background: str = "", order: int = 0, description: str = "") -> Tag:
        return await self._save(
            Tag(name=name, background=background, order=order, description=description)
        )

    async def user(self, is_admin: bool = False) -> tuple[User, str]:
        raw_key = secrets.token_urlsafe(16)
        user = await self._save(User(api_key_hash=hash_api_key(raw_key), is_admin=is_admin))
        return user, raw_key

    async def topic(
        self,
        title: str,
        tags: tuple[Tag, ...] = (),
        reply_count: int = 0,
        visit_count: int = 0,
        created_at: Optional[datetime] = None,
    ) -> Topic:
        # Each new topic is one minute newer than the previous one unless told otherwise
        self._minutes += 1
        topic = await self._save(
            Topic(
                title=title,
                reply_count=reply_count,
                visit_count=visit_count,
                created_at=created_at or BASE_TIME + timedelta(minutes=self._minutes),
            )
        )
        async with self.session_factory() as db:
            for tag in tags:
                db.add(TopicTag(topic_id=topic.id, tag_id=tag.id))
            await db.commit()
        return topic

    async def collect(self, user: User, tag: Tag) -> TagCollect:
        return await self._save(TagCollect(user_id=user.id, tag_id=tag.id))

    async def count(self, model, *criteria) -> int:
        async with self.session_factory() as db:
            result = await db.execute(select(func.count()).select_from(model).where(*criteria))
            return result.scalar_one()

    async def reload(self, model, obj_id: uuid.UUID):
        async with self.session_factory() as db:
            return await db.get(model, obj_id)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tagboard.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def seeder(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
async def client(session_factory, fake_redis):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_redis] = lambda: fake_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Sign the test client in with an API key; the session cookie sticks to the client."""

    async def _login(raw_key: str) -> None:
        resp = await client.post("/signin", data={"api_key": raw_key})
        assert resp.status_code == 303

    return _login
