"""Initial schema: users, tags, topics, topic_tags, tag_collects

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

Written manually (not via autogenerate) so the unique constraint names match
the ones the collect handler checks for.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users table ---
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("api_key_hash", sa.String(255), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("collect_tag_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- tags table ---
    op.create_table(
        "tags",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("background", sa.String(500), nullable=False, server_default=""),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("collect_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_tags_name", "tags", ["name"], unique=True)

    # --- topics table ---
    op.create_table(
        "topics",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column(
            "author_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", name="fk_topics_author_id_users"),
            nullable=True,
        ),
        sa.Column("reply_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_topics_created_at", "topics", ["created_at"])
    # Hot topics sidebar
    op.create_index("ix_topics_visit_count", "topics", ["visit_count"])

    # --- topic_tags join table (composite PK) ---
    op.create_table(
        "topic_tags",
        sa.Column(
            "topic_id",
            UUID(as_uuid=True),
            sa.ForeignKey("topics.id", name="fk_topic_tags_topic_id_topics"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            UUID(as_uuid=True),
            sa.ForeignKey("tags.id", name="fk_topic_tags_tag_id_tags"),
            primary_key=True,
        ),
    )
    op.create_index("ix_topic_tags_tag_id", "topic_tags", ["tag_id"])

    # --- tag_collects table ---
    op.create_table(
        "tag_collects",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", name="fk_tag_collects_user_id_users"),
            nullable=False,
        ),
        sa.Column(
            "tag_id",
            UUID(as_uuid=True),
            sa.ForeignKey("tags.id", name="fk_tag_collects_tag_id_tags"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "tag_id", name="uq_tag_collects_user_id_tag_id"),
    )
    op.create_index("ix_tag_collects_user_id", "tag_collects", ["user_id"])
    op.create_index("ix_tag_collects_tag_id", "tag_collects", ["tag_id"])


def downgrade() -> None:
    op.drop_table("tag_collects")
    op.drop_table("topic_tags")
    op.drop_table("topics")
    op.drop_table("tags")
    op.drop_table("users")
