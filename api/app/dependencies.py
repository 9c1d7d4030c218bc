import uuid
from typing import Annotated, Optional

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_db, get_session_factory
from app.models.user import User
from app.services.users import get_user_by_id

DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]

# Key under which the signed session cookie stores the signed-in user
SESSION_USER_KEY = "user_id"


async def get_redis(request: Request) -> aioredis.Redis:
    """Inject the Redis client from app.state (set during lifespan startup)."""
    return request.app.state.redis


async def get_session_user(request: Request, db: DbSession) -> Optional[User]:
    """Resolve the signed-in user from the session cookie.

    The session only carries the user id. The row is re-read on every request,
    so counters such as collect_tag_count always reflect the database and are
    never mutated on a cached copy.

    Returns None for anonymous requests and for sessions pointing at a user
    that no longer exists (the stale id is dropped from the session).
    """
    raw_id = request.session.get(SESSION_USER_KEY)
    if not raw_id:
        return None
    try:
        user_id = uuid.UUID(str(raw_id))
    except ValueError:
        request.session.pop(SESSION_USER_KEY, None)
        return None

    user = await get_user_by_id(db, user_id)
    if user is None:
        request.session.pop(SESSION_USER_KEY, None)
    return user


# Annotated type aliases for clean endpoint signatures
SessionUser = Annotated[Optional[User], Depends(get_session_user)]
RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]
