"""API key registration and session sign-in.

POST /api/v1/keys  -- generate a new API key (no auth required)
POST /signin       -- exchange an API key for a session cookie
POST /signout      -- clear the session
"""

import hashlib
import secrets

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import SESSION_USER_KEY, DbSession
from app.models.user import User
from app.schemas.auth import APIKeyCreate, APIKeyResponse
from app.templating import render_notify

router = APIRouter(tags=["auth"])


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


@router.post("/api/v1/keys", response_model=APIKeyResponse, status_code=201)
async def generate_api_key(
    body: APIKeyCreate,
    db: AsyncSession = Depends(get_db),
) -> APIKeyResponse:
    """Generate a new API key and register a user account.

    The raw API key is returned exactly once in this response. Only its
    SHA-256 hash is stored in the database; it cannot be retrieved again.

    If an email is provided and already exists in the database, a 409
    Conflict is returned. On a hash collision one automatic retry is
    performed with a freshly generated key.
    """
    if body.email:
        result = await db.execute(select(User).where(User.email == body.email))
        if result.scalar_one_or_none() is not None:
            raise HTTPException(status_code=409, detail="Email already registered")

    def _make_user(raw_key: str) -> User:
        return User(
            api_key_hash=hash_api_key(raw_key),
            email=body.email,
            display_name=body.display_name,
        )

    raw_key = secrets.token_urlsafe(32)
    user = _make_user(raw_key)
    db.add(user)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raw_key = secrets.token_urlsafe(32)
        user = _make_user(raw_key)
        db.add(user)
        await db.commit()

    await db.refresh(user)

    return APIKeyResponse(
        api_key=raw_key,
        user_id=user.id,
    )


@router.post("/signin")
async def signin(request: Request, db: DbSession, api_key: str = Form("")):
    """Sign in with an API key; only the user id is kept in the session."""
    result = await db.execute(select(User).where(User.api_key_hash == hash_api_key(api_key)))
    user = result.scalar_one_or_none()
    if user is None:
        return render_notify(request, "Invalid API key.", status_code=401)

    request.session[SESSION_USER_KEY] = str(user.id)
    return RedirectResponse(url="/", status_code=303)


@router.post("/signout")
async def signout(request: Request):
    request.session.clear()
    return RedirectResponse(url="/", status_code=303)
