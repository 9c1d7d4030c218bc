"""Pydantic schemas for tag forms and tag JSON responses."""

import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

from app.services.tags import sanitize_text


class TagFields(BaseModel):
    """Editable tag fields as submitted by the admin forms.

    Free-text fields are trimmed and stripped of markup on the way in; an
    unparseable sort order falls back to 0. Emptiness of the name is left to
    the handler so it can answer with a notice instead of a 422.
    """

    name: str = ""
    description: str = ""
    background: str = ""
    order: int = 0

    @field_validator("name", "description", "background", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> str:
        return sanitize_text(value)

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> int:
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            return 0


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str
    background: str
    order: int
    collect_count: int


class TagListResponse(BaseModel):
    tags: list[TagResponse]


class CollectResponse(BaseModel):
    """JSON answer of the collect / de-collect endpoints."""

    status: Literal["success", "failed"]
