"""Tagboard Pydantic schemas package.

Re-exports all request and response schemas for convenient importing:

    from app.schemas import TagFields, TagResponse, TopicListItem, ...
"""

from app.schemas.auth import APIKeyCreate, APIKeyResponse
from app.schemas.common import ErrorResponse
from app.schemas.tag import CollectResponse, TagFields, TagListResponse, TagResponse
from app.schemas.topic import TopicListItem, TopicTagItem

__all__ = [
    # Tag
    "TagFields",
    "TagResponse",
    "TagListResponse",
    "CollectResponse",
    # Topic
    "TopicListItem",
    "TopicTagItem",
    # Auth
    "APIKeyCreate",
    "APIKeyResponse",
    # Common
    "ErrorResponse",
]
