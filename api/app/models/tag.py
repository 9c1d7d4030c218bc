import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TopicTag(Base):
    """Join row linking a topic to a tag, composite PK (topic_id, tag_id)."""

    __tablename__ = "topic_tags"

    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("topics.id"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id"), primary_key=True, index=True
    )


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    # Empty string means "no background image"
    background: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    # Manual sort position on the admin and listing pages
    order: Mapped[int] = mapped_column("sort_order", Integer, default=0, nullable=False)
    # Denormalized: number of TagCollect rows referencing this tag
    collect_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
