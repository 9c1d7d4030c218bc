import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

TAG_COLLECT_UNIQUE_CONSTRAINT = "uq_tag_collects_user_id_tag_id"


class TagCollect(Base):
    """A user following ("collecting") a tag. At most one row per (user, tag)."""

    __tablename__ = "tag_collects"
    __table_args__ = (
        UniqueConstraint("user_id", "tag_id", name=TAG_COLLECT_UNIQUE_CONSTRAINT),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
