"""Tag pages and tag administration.

GET  /                    -- tag index
GET  /tags/edit           -- admin: all tags in manual order
POST /tags/add            -- admin: create a tag
GET  /tags/{name}         -- topics filed under a tag, paginated
GET  /tags/{name}/edit    -- admin: edit form
POST /tags/{name}/edit    -- admin: save edits
POST /tags/{name}/delete  -- admin: delete a tag and its associations
GET  /api/v1/tags         -- JSON list of all tags

Expected rejections (unknown tag, not signed in, not an admin, missing name,
duplicate name) render the notify page; they are not raised.
"""

from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from app.dependencies import DbSession, SessionFactory, SessionUser
from app.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from app.models.user import User
from app.schemas.tag import TagFields, TagListResponse, TagResponse
from app.services.tag_page import assemble_tag_page, parse_page
from app.services.tags import (
    RESERVED_TAG_NAMES,
    TAG_NAME_MAX_LENGTH,
    create_tag,
    delete_tag,
    get_all_tags,
    get_tag_by_name,
    update_tag,
)
from app.templating import render_notify, templates

router = APIRouter(tags=["tags"])

NO_SUCH_TAG = "No such tag."
NOT_SIGNED_IN = "You are not signed in."
ADMIN_ONLY = "Only administrators can edit tags."
INCOMPLETE = "Incomplete information."
TAG_EXISTS = "This tag already exists."
NAME_TOO_LONG = f"Tag names are limited to {TAG_NAME_MAX_LENGTH} characters."
RESERVED_NAME = "This name is reserved, please choose another one."


def _reject_non_admin(request: Request, user: Optional[User]) -> Optional[Response]:
    if user is None:
        return render_notify(request, NOT_SIGNED_IN, status_code=401)
    if not user.is_admin:
        return render_notify(request, ADMIN_ONLY, status_code=403)
    return None


def _reject_invalid_fields(request: Request, fields: TagFields) -> Optional[Response]:
    if fields.name == "":
        return render_notify(request, INCOMPLETE, status_code=400)
    if len(fields.name) > TAG_NAME_MAX_LENGTH:
        return render_notify(request, NAME_TOO_LONG, status_code=400)
    if fields.name in RESERVED_TAG_NAMES:
        return render_notify(request, RESERVED_NAME, status_code=400)
    return None


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, db: DbSession, _rate: ReadRateLimit):
    tags = await get_all_tags(db)
    return templates.TemplateResponse(request, "tag/index.html", {"tags": tags})


@router.get("/tags/edit", response_class=HTMLResponse)
async def edit_tags(request: Request, user: SessionUser, db: DbSession, _rate: ReadRateLimit):
    rejection = _reject_non_admin(request, user)
    if rejection is not None:
        return rejection

    tags = await get_all_tags(db)
    return templates.TemplateResponse(request, "tag/edit_all.html", {"tags": tags})


@router.post("/tags/add")
async def add_tag(
    request: Request,
    user: SessionUser,
    db: DbSession,
    _rate: WriteRateLimit,
    name: str = Form(""),
    description: str = Form(""),
    background: str = Form(""),
    order: str = Form("0"),
):
    """Create a tag from the admin form, then go back to the tag list."""
    if user is None or not user.is_admin:
        return PlainTextResponse("forbidden!", status_code=403)

    fields = TagFields(name=name, description=description, background=background, order=order)
    rejection = _reject_invalid_fields(request, fields)
    if rejection is not None:
        return rejection

    tag = await create_tag(
        db,
        name=fields.name,
        description=fields.description,
        background=fields.background,
        order=fields.order,
    )
    if tag is None:
        return render_notify(request, TAG_EXISTS, status_code=409)
    return RedirectResponse(url="/tags/edit", status_code=303)


@router.get("/tags/{name}", response_class=HTMLResponse)
async def list_topic(
    request: Request,
    name: str,
    user: SessionUser,
    session_factory: SessionFactory,
    _rate: ReadRateLimit,
    page: Optional[str] = None,
):
    """Render one page of the topics filed under a tag."""
    tag_page = await assemble_tag_page(
        session_factory,
        name,
        page=parse_page(page),
        user_id=user.id if user is not None else None,
    )
    if tag_page is None:
        return render_notify(request, NO_SUCH_TAG, status_code=404)
    return templates.TemplateResponse(request, "tag/list_topic.html", tag_page.context())


@router.get("/tags/{name}/edit", response_class=HTMLResponse)
async def edit_tag_form(
    request: Request,
    name: str,
    user: SessionUser,
    db: DbSession,
    _rate: ReadRateLimit,
):
    rejection = _reject_non_admin(request, user)
    if rejection is not None:
        return rejection

    tag = await get_tag_by_name(db, name)
    if tag is None:
        return render_notify(request, NO_SUCH_TAG, status_code=404)

    tags = await get_all_tags(db)
    return templates.TemplateResponse(request, "tag/edit.html", {"tag": tag, "tags": tags})


@router.post("/tags/{tag_name}/edit")
async def edit_tag(
    request: Request,
    tag_name: str,
    user: SessionUser,
    db: DbSession,
    _rate: WriteRateLimit,
    name: str = Form(""),
    description: str = Form(""),
    background: str = Form(""),
    order: str = Form("0"),
):
    rejection = _reject_non_admin(request, user)
    if rejection is not None:
        return rejection

    tag = await get_tag_by_name(db, tag_name)
    if tag is None:
        return render_notify(request, NO_SUCH_TAG, status_code=404)

    fields = TagFields(name=name, description=description, background=background, order=order)
    rejection = _reject_invalid_fields(request, fields)
    if rejection is not None:
        return rejection

    saved = await update_tag(
        db,
        tag,
        name=fields.name,
        description=fields.description,
        background=fields.background,
        order=fields.order,
    )
    if not saved:
        return render_notify(request, TAG_EXISTS, status_code=409)
    return RedirectResponse(url="/tags/edit", status_code=303)


@router.post("/tags/{name}/delete")
async def remove_tag(
    request: Request,
    name: str,
    user: SessionUser,
    db: DbSession,
    _rate: WriteRateLimit,
):
    """Delete a tag along with its topic_tags and tag_collects rows."""
    rejection = _reject_non_admin(request, user)
    if rejection is not None:
        return rejection

    tag = await get_tag_by_name(db, name)
    if tag is None:
        return render_notify(request, NO_SUCH_TAG, status_code=404)

    await delete_tag(db, tag)
    return RedirectResponse(url="/", status_code=303)


@router.get("/api/v1/tags", response_model=TagListResponse)
async def list_tags(db: DbSession, _rate: ReadRateLimit) -> TagListResponse:
    """Return all tags in their manual sort order.

    Returns:
        {"tags": [{"id": ..., "name": "rust", "order": 0, "collect_count": 3, ...}, ...]}
    """
    tags = await get_all_tags(db)
    return TagListResponse(tags=[TagResponse.model_validate(tag) for tag in tags])
