"""View models for topics shown on the tag listing page."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.topic import Topic


class TopicTagItem(BaseModel):
    id: uuid.UUID
    name: str
    # Set on the entry matching the tag whose page is being rendered
    highlight: bool = False


class TopicListItem(BaseModel):
    id: uuid.UUID
    title: str
    reply_count: int
    visit_count: int
    created_at: datetime
    tags: list[TopicTagItem] = Field(default_factory=list)

    @classmethod
    def from_topic(
        cls, topic: Topic, highlight_tag_id: Optional[uuid.UUID] = None
    ) -> "TopicListItem":
        return cls(
            id=topic.id,
            title=topic.title,
            reply_count=topic.reply_count,
            visit_count=topic.visit_count,
            created_at=topic.created_at,
            tags=[
                TopicTagItem(id=tag.id, name=tag.name, highlight=tag.id == highlight_tag_id)
                for tag in topic.tags
            ],
        )
