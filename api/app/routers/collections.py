"""Tag collection (a user following a tag).

POST /tags/collect          -- collect the tag given by form field tag_id
POST /tags/de_collect       -- stop collecting it
GET  /api/v1/users/me/tags  -- tags the signed-in user collects

collect / de_collect answer {"status": "success"} or {"status": "failed"}.
Both are idempotent: repeating either leaves rows and counters as they are.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Form, HTTPException
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import DbSession, SessionUser
from app.metrics import tag_collect_events
from app.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from app.models.tag import Tag
from app.schemas.tag import CollectResponse, TagListResponse, TagResponse
from app.services.tags import (
    collect_tag,
    de_collect_tag,
    get_collected_tag_ids,
    get_tag_by_id,
    get_tags_by_ids,
)

router = APIRouter(tags=["collections"])


async def _resolve_tag(db: AsyncSession, raw_tag_id: str) -> Optional[Tag]:
    try:
        tag_id = uuid.UUID(raw_tag_id.strip())
    except ValueError:
        return None
    return await get_tag_by_id(db, tag_id)


@router.post("/tags/collect", response_model=CollectResponse)
async def collect(
    user: SessionUser,
    db: DbSession,
    _rate: WriteRateLimit,
    tag_id: str = Form(""),
):
    if user is None:
        return PlainTextResponse("forbidden!", status_code=403)

    tag = await _resolve_tag(db, tag_id)
    if tag is None:
        tag_collect_events.labels(action="collect", result="failed").inc()
        return CollectResponse(status="failed")

    created = await collect_tag(db, user.id, tag.id)
    tag_collect_events.labels(action="collect", result="created" if created else "noop").inc()
    return CollectResponse(status="success")


@router.post("/tags/de_collect", response_model=CollectResponse)
async def de_collect(
    user: SessionUser,
    db: DbSession,
    _rate: WriteRateLimit,
    tag_id: str = Form(""),
):
    if user is None:
        return PlainTextResponse("forbidden!", status_code=403)

    tag = await _resolve_tag(db, tag_id)
    if tag is None:
        tag_collect_events.labels(action="de_collect", result="failed").inc()
        return CollectResponse(status="failed")

    removed = await de_collect_tag(db, user.id, tag.id)
    tag_collect_events.labels(action="de_collect", result="removed" if removed else "noop").inc()
    return CollectResponse(status="success")


@router.get("/api/v1/users/me/tags", response_model=TagListResponse)
async def my_tags(user: SessionUser, db: DbSession, _rate: ReadRateLimit) -> TagListResponse:
    """Return the tags the signed-in user collects, in manual sort order."""
    if user is None:
        raise HTTPException(status_code=401, detail="Not signed in")

    tag_ids = await get_collected_tag_ids(db, user.id)
    tags = await get_tags_by_ids(db, tag_ids)
    return TagListResponse(tags=[TagResponse.model_validate(tag) for tag in tags])
