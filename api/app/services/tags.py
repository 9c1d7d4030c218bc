import html
import uuid
from typing import Any, Iterable, Optional

import bleach
import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tag import Tag, TopicTag
from app.models.tag_collect import TagCollect
from app.models.user import User

log = structlog.get_logger()

TAG_NAME_MAX_LENGTH = 50

# First path segments under /tags/ that belong to fixed routes, not tag pages
RESERVED_TAG_NAMES = frozenset({"edit", "add", "collect", "de_collect"})


def sanitize_text(raw: Optional[str]) -> str:
    """Trim a free-text form value and strip any markup from it.

    All tags are removed (not escaped) and the surrounding whitespace is
    dropped first, so "  <b>rust</b> " becomes "rust". Entities bleach
    introduces are decoded again, so "R&D" is stored as "R&D"; escaping
    happens when the value is rendered. Missing values sanitize to the
    empty string.
    """
    if raw is None:
        return ""
    return html.unescape(bleach.clean(str(raw).strip(), tags=[], strip=True))


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_all_tags(db: AsyncSession) -> list[Tag]:
    """All tags in their manual sort order."""
    return await get_tags_by_query(db, order_by=Tag.order.asc())


async def get_tag_by_name(db: AsyncSession, name: str) -> Optional[Tag]:
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def get_tag_by_id(db: AsyncSession, tag_id: uuid.UUID) -> Optional[Tag]:
    result = await db.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def get_tags_by_ids(db: AsyncSession, tag_ids: Iterable[uuid.UUID]) -> list[Tag]:
    return await get_tags_by_query(db, Tag.id.in_(list(tag_ids)), order_by=Tag.order.asc())


async def get_tags_by_query(
    db: AsyncSession,
    *criteria: Any,
    order_by: Optional[Any] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> list[Tag]:
    stmt = select(Tag).where(*criteria)
    if order_by is not None:
        stmt = stmt.order_by(order_by)
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_tag_collect(
    db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID
) -> Optional[TagCollect]:
    result = await db.execute(
        select(TagCollect).where(TagCollect.user_id == user_id, TagCollect.tag_id == tag_id)
    )
    return result.scalar_one_or_none()


async def get_collected_tag_ids(db: AsyncSession, user_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(select(TagCollect.tag_id).where(TagCollect.user_id == user_id))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------


async def create_tag(
    db: AsyncSession,
    name: str,
    description: str = "",
    background: str = "",
    order: int = 0,
) -> Optional[Tag]:
    """Persist a new tag. Returns None when the name is already taken."""
    if await get_tag_by_name(db, name) is not None:
        return None

    tag = Tag(name=name, description=description, background=background, order=order)
    db.add(tag)
    await db.commit()
    await db.refresh(tag)
    log.info("tag_created", tag_id=str(tag.id), tag=name)
    return tag


async def update_tag(
    db: AsyncSession,
    tag: Tag,
    name: str,
    description: str,
    background: str,
    order: int,
) -> bool:
    """Overwrite the editable fields of a tag.

    Returns False without writing anything when renaming onto a name that
    another tag already uses.
    """
    if name != tag.name:
        clash = await get_tag_by_name(db, name)
        if clash is not None and clash.id != tag.id:
            return False

    tag.name = name
    tag.description = description
    tag.background = background
    tag.order = order
    await db.commit()
    log.info("tag_updated", tag_id=str(tag.id), tag=name)
    return True


async def delete_tag(db: AsyncSession, tag: Tag) -> None:
    """Delete a tag together with every association row that references it.

    Runs in one transaction, in dependency order (no cascade FKs in schema):
      1. collectors' collect_tag_count, decremented once per TagCollect row
      2. tag_collects rows
      3. topic_tags rows
      4. the tag itself
    """
    collector_ids = select(TagCollect.user_id).where(TagCollect.tag_id == tag.id)
    await db.execute(
        update(User)
        .where(User.id.in_(collector_ids))
        .values(collect_tag_count=User.collect_tag_count - 1)
        .execution_options(synchronize_session=False)
    )

    collects = await db.execute(delete(TagCollect).where(TagCollect.tag_id == tag.id))
    topic_tags = await db.execute(delete(TopicTag).where(TopicTag.tag_id == tag.id))

    await db.delete(tag)
    await db.commit()
    log.info(
        "tag_deleted",
        tag_id=str(tag.id),
        tag=tag.name,
        tag_collects_removed=collects.rowcount,
        topic_tags_removed=topic_tags.rowcount,
    )


# ---------------------------------------------------------------------------
# Collection (a user following a tag)
# ---------------------------------------------------------------------------


async def _bump_collect_counters(
    db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID, delta: int
) -> None:
    # Column-expression UPDATEs, no Python-side read-modify-write
    await db.execute(
        update(Tag)
        .where(Tag.id == tag_id)
        .values(collect_count=Tag.collect_count + delta)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(collect_tag_count=User.collect_tag_count + delta)
        .execution_options(synchronize_session=False)
    )


async def collect_tag(db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
    """Make the user collect the tag.

    Idempotent: if the user already collects the tag nothing is written.
    The TagCollect insert and both counter increments share one transaction.

    Returns:
        True if a new TagCollect row was created, False if it already existed.
    """
    if await get_tag_collect(db, user_id, tag_id) is not None:
        return False

    db.add(TagCollect(user_id=user_id, tag_id=tag_id))
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request may have inserted the same pair between check and insert
        await db.rollback()
        if await get_tag_collect(db, user_id, tag_id) is not None:
            return False
        raise

    await _bump_collect_counters(db, user_id, tag_id, 1)
    await db.commit()
    log.info("tag_collected", user_id=str(user_id), tag_id=str(tag_id))
    return True


async def de_collect_tag(db: AsyncSession, user_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
    """Stop the user collecting the tag.

    Counters are only decremented when a TagCollect row was actually removed,
    so de-collecting a tag that was never collected changes nothing.

    Returns:
        True if a row was removed, False if there was nothing to remove.
    """
    result = await db.execute(
        delete(TagCollect).where(TagCollect.user_id == user_id, TagCollect.tag_id == tag_id)
    )
    if result.rowcount == 0:
        await db.rollback()
        return False

    await _bump_collect_counters(db, user_id, tag_id, -1)
    await db.commit()
    log.info("tag_de_collected", user_id=str(user_id), tag_id=str(tag_id))
    return True
