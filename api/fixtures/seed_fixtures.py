"""Seed fixture data into the database.

Creates an admin user, a handful of tags and topics filed under them, so the
tag pages have something to show in local development.

Usage:
    cd api
    DATABASE_URL="postgresql+asyncpg://..." python -m fixtures.seed_fixtures

The script is idempotent: if the seed admin already exists it prints
"Already seeded" and exits. The admin API key is printed once, on first run.
"""
import asyncio
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.database import async_session_factory
from app.models.tag import Tag, TopicTag
from app.models.topic import Topic
from app.models.user import User
from app.routers.auth import hash_api_key
from app.services.tags import sanitize_text

SEED_ADMIN_EMAIL = "admin@tagboard.dev"

SAMPLE_TAGS = [
    {"name": "python", "description": "The Python language", "background": "", "order": 0},
    {"name": "rust", "description": "Systems programming in Rust", "background": "", "order": 1},
    {
        "name": "go",
        "description": "Go and its tooling",
        "background": "https://static.tagboard.dev/img/go.png",
        "order": 2,
    },
]

# (title, tag names, reply_count, visit_count)
SAMPLE_TOPICS = [
    ("asyncio.TaskGroup vs gather", ["python"], 4, 210),
    ("Borrow checker and async closures", ["rust"], 0, 95),
    ("Packaging a CLI with pyproject.toml", ["python"], 2, 130),
    ("Calling Rust from Python with PyO3", ["python", "rust"], 7, 480),
    ("Context cancellation patterns", ["go"], 0, 60),
    ("Generics one year later", ["go", "rust"], 1, 75),
]


async def get_or_create_tag(session, entry: dict) -> Tag:
    """Get an existing tag by name, or create it if not found."""
    name = sanitize_text(entry["name"])
    result = await session.execute(select(Tag).where(Tag.name == name))
    tag = result.scalar_one_or_none()

    if tag is None:
        tag = Tag(
            name=name,
            description=sanitize_text(entry["description"]),
            background=sanitize_text(entry["background"]),
            order=entry["order"],
        )
        session.add(tag)
        # Flush to get the ID but don't commit yet
        await session.flush()

    return tag


async def seed() -> None:
    """Load fixture data into the database.

    This function is idempotent, safe to run multiple times.
    """
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == SEED_ADMIN_EMAIL))
        if result.scalar_one_or_none() is not None:
            print("Already seeded: seed admin already exists, skipping.")
            return

        raw_key = secrets.token_urlsafe(32)
        admin = User(
            email=SEED_ADMIN_EMAIL,
            display_name="Tagboard Admin",
            api_key_hash=hash_api_key(raw_key),
            is_admin=True,
        )
        session.add(admin)
        await session.flush()

        tags = {}
        for entry in SAMPLE_TAGS:
            tag = await get_or_create_tag(session, entry)
            tags[tag.name] = tag

        now = datetime.now(timezone.utc)
        for i, (title, tag_names, reply_count, visit_count) in enumerate(SAMPLE_TOPICS):
            topic = Topic(
                title=title,
                author_id=admin.id,
                reply_count=reply_count,
                visit_count=visit_count,
                created_at=now - timedelta(hours=i),
            )
            session.add(topic)
            await session.flush()
            for name in tag_names:
                session.add(TopicTag(topic_id=topic.id, tag_id=tags[name].id))

        await session.commit()

    print(f"Seeded {len(SAMPLE_TAGS)} tags and {len(SAMPLE_TOPICS)} topics.")
    print(f"Admin API key (shown once): {raw_key}")


if __name__ == "__main__":
    asyncio.run(seed())
