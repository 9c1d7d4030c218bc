"""Tag topic-listing page assembly.

A tag page needs five independent pieces of data: the topic ids filed under
the tag (and the page count derived from them), whether the viewer collects
the tag, the site-wide hot topics and the newest unanswered topics. The store
has no joins, so each piece is a separate query.

Design notes:
- The lookups run concurrently inside one asyncio.TaskGroup and the view is
  rendered only after all of them have finished.
- Each lookup opens its own AsyncSession from the factory; a single
  AsyncSession must never be shared between concurrent tasks.
- The page count is sequenced after the topic ids inside the same task, but
  still counts as one of the joined inputs.
- Any failing lookup cancels its siblings and the original exception is
  re-raised; nothing is rendered.
"""

import asyncio
import math
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar
from urllib.parse import quote

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.metrics import tag_page_assembly_duration
from app.models.tag import Tag
from app.models.topic import Topic
from app.schemas.topic import TopicListItem
from app.services.tags import get_tag_by_name, get_tag_collect
from app.services.topics import (
    get_count_by_query,
    get_hot_topics,
    get_no_reply_topics,
    get_topic_ids_for_tag,
    get_topics_by_query,
)

log = structlog.get_logger()

T = TypeVar("T")

SessionFactory = async_sessionmaker[AsyncSession]

STYLE_URL_SAFE_CHARS = ":/?#[]@!$&'()*+,;=%~"


@dataclass
class TagPage:
    """Everything the tag/list_topic view renders."""

    tag: Tag
    topics: list[TopicListItem]
    current_page: int
    list_topic_count: int
    in_collection: bool
    hot_topics: list[TopicListItem]
    no_reply_topics: list[TopicListItem]
    pages: int
    extra_style: Optional[str]

    def context(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "topics": self.topics,
            "current_page": self.current_page,
            "list_topic_count": self.list_topic_count,
            "in_collection": self.in_collection,
            "hot_topics": self.hot_topics,
            "no_reply_topics": self.no_reply_topics,
            "pages": self.pages,
            "extra_style": self.extra_style,
        }


def parse_page(raw: Optional[str]) -> int:
    """Requested page number; anything missing, non-numeric or below 1 means page 1."""
    try:
        page = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def count_pages(total: int, per_page: int) -> int:
    """Number of pages needed for total items; zero items means zero pages."""
    return math.ceil(total / per_page)


def build_extra_style(tag: Tag) -> Optional[str]:
    """CSS painting the page wrapper with the tag's background image, if it has one."""
    if not tag.background:
        return None
    # Quotes, brackets and spaces are percent-encoded so the URL cannot leave the url("...") token
    url = quote(tag.background, safe=STYLE_URL_SAFE_CHARS)
    return f'#wrapper {{background-image: url("{url}")}}'


def highlight_topics(topics: list[Topic], tag_id: uuid.UUID) -> list[TopicListItem]:
    """Serialize topics, flagging each topic's reference to tag_id as highlighted."""
    return [TopicListItem.from_topic(topic, highlight_tag_id=tag_id) for topic in topics]


async def _in_session(
    session_factory: SessionFactory,
    lookup: Callable[..., Awaitable[T]],
    *args: Any,
) -> T:
    async with session_factory() as db:
        return await lookup(db, *args)


async def _load_topic_ids_and_pages(
    session_factory: SessionFactory, tag_id: uuid.UUID, per_page: int
) -> tuple[list[uuid.UUID], int]:
    async with session_factory() as db:
        topic_ids = await get_topic_ids_for_tag(db, tag_id)
        total = await get_count_by_query(db, Topic.id.in_(topic_ids))
    return topic_ids, count_pages(total, per_page)


async def _load_collection(
    session_factory: SessionFactory, user_id: Optional[uuid.UUID], tag_id: uuid.UUID
) -> bool:
    # Anonymous viewers never collect anything, no query needed
    if user_id is None:
        return False
    return await _in_session(session_factory, get_tag_collect, user_id, tag_id) is not None


async def assemble_tag_page(
    session_factory: SessionFactory,
    tag_name: str,
    page: int = 1,
    user_id: Optional[uuid.UUID] = None,
    *,
    per_page: Optional[int] = None,
    hot_count: Optional[int] = None,
    no_reply_count: Optional[int] = None,
) -> Optional[TagPage]:
    """Gather all data for one page of a tag's topic listing.

    Args:
        session_factory: Opens one AsyncSession per concurrent lookup.
        tag_name: Exact tag name from the URL.
        page: 1-based page number (see parse_page()).
        user_id: Signed-in viewer, or None for anonymous visitors.
        per_page / hot_count / no_reply_count: Overrides for the configured sizes.

    Returns:
        The assembled TagPage, or None when no tag has that name.

    Raises:
        Whatever the first failing lookup raised. Remaining lookups are cancelled.
    """
    per_page = per_page or settings.list_topic_count
    hot_count = hot_count or settings.hot_topic_count
    no_reply_count = no_reply_count or settings.no_reply_topic_count

    tag = await _in_session(session_factory, get_tag_by_name, tag_name)
    if tag is None:
        return None

    start = time.monotonic()
    try:
        async with asyncio.TaskGroup() as tg:
            ids_task = tg.create_task(_load_topic_ids_and_pages(session_factory, tag.id, per_page))
            collection_task = tg.create_task(_load_collection(session_factory, user_id, tag.id))
            hot_task = tg.create_task(_in_session(session_factory, get_hot_topics, hot_count))
            no_reply_task = tg.create_task(
                _in_session(session_factory, get_no_reply_topics, no_reply_count)
            )
    except BaseExceptionGroup as group:
        raise group.exceptions[0]

    topic_ids, pages = ids_task.result()

    topics: list[Topic] = []
    # Pages past the last one render empty without touching the store
    if topic_ids and page <= pages:
        async with session_factory() as db:
            topics = await get_topics_by_query(
                db,
                Topic.id.in_(topic_ids),
                order_by=Topic.created_at.desc(),
                offset=(page - 1) * per_page,
                limit=per_page,
            )

    tag_page = TagPage(
        tag=tag,
        topics=highlight_topics(topics, tag.id),
        current_page=page,
        list_topic_count=per_page,
        in_collection=collection_task.result(),
        hot_topics=[TopicListItem.from_topic(t) for t in hot_task.result()],
        no_reply_topics=[TopicListItem.from_topic(t) for t in no_reply_task.result()],
        pages=pages,
        extra_style=build_extra_style(tag),
    )

    duration = time.monotonic() - start
    tag_page_assembly_duration.observe(duration)
    log.info(
        "tag_page_assembled",
        tag=tag.name,
        page=page,
        pages=pages,
        topic_count=len(tag_page.topics),
        duration_ms=round(duration * 1000, 2),
    )
    return tag_page
