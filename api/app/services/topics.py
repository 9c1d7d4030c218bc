"""Topic queries used by the tag pages.

Topics are owned elsewhere; this module only exposes the two read contracts
tag pages rely on (a paginated topic query and a matching count) plus the
topic id lookup through the topic_tags join table.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.tag import TopicTag
from app.models.topic import Topic


async def get_topics_by_query(
    db: AsyncSession,
    *criteria: Any,
    order_by: Optional[Any] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> list[Topic]:
    """Return topics matching all criteria, with their tags eager-loaded.

    selectinload keeps the tags usable after the session closes, which the
    tag page relies on since each lookup runs in its own short session.
    """
    stmt = select(Topic).where(*criteria).options(selectinload(Topic.tags))
    if order_by is not None:
        stmt = stmt.order_by(order_by)
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_count_by_query(db: AsyncSession, *criteria: Any) -> int:
    result = await db.execute(select(func.count()).select_from(Topic).where(*criteria))
    return result.scalar_one()


async def get_topic_ids_for_tag(db: AsyncSession, tag_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(select(TopicTag.topic_id).where(TopicTag.tag_id == tag_id))
    return list(result.scalars().all())


async def get_hot_topics(db: AsyncSession, limit: int) -> list[Topic]:
    """Site-wide most visited topics."""
    return await get_topics_by_query(db, order_by=Topic.visit_count.desc(), limit=limit)


async def get_no_reply_topics(db: AsyncSession, limit: int) -> list[Topic]:
    """Newest topics nobody has replied to yet."""
    return await get_topics_by_query(
        db,
        Topic.reply_count == 0,
        order_by=Topic.created_at.desc(),
        limit=limit,
    )
