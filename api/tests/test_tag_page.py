"""Tests for the tag listing page assembly in app.services.tag_page."""

import asyncio

import pytest

from app.models.tag import Tag
from app.services import tag_page
from app.services.tag_page import (
    assemble_tag_page,
    build_extra_style,
    count_pages,
    parse_page,
)


class TestParsePage:
    @pytest.mark.parametrize("raw", [None, "", "abc", "0", "-3", "1.5"])
    def test_invalid_values_fall_back_to_first_page(self, raw):
        assert parse_page(raw) == 1

    def test_numeric_value_is_used(self):
        assert parse_page("4") == 4
        assert parse_page(" 2 ") == 2


class TestCountPages:
    def test_no_items_means_no_pages(self):
        assert count_pages(0, 20) == 0

    def test_partial_last_page_rounds_up(self):
        assert count_pages(21, 20) == 2
        assert count_pages(20, 20) == 1


class TestBuildExtraStyle:
    def test_no_background_means_no_style(self):
        assert build_extra_style(Tag(name="rust", background="")) is None

    def test_background_url_is_used_verbatim(self):
        style = build_extra_style(Tag(name="go", background="http://x/img.png"))
        assert style == '#wrapper {background-image: url("http://x/img.png")}'

    def test_query_string_survives_and_quotes_are_encoded(self):
        style = build_extra_style(Tag(name="go", background='http://x/a.png?a=1&b=2"</style>'))
        assert style == '#wrapper {background-image: url("http://x/a.png?a=1&b=2%22%3C/style%3E")}'


class TestAssembleTagPage:
    async def test_unknown_tag_returns_none(self, session_factory):
        assert await assemble_tag_page(session_factory, "missing") is None

    async def test_tag_without_topics_has_no_pages(self, session_factory, seeder):
        await seeder.tag("rust")

        page = await assemble_tag_page(session_factory, "rust")

        assert page is not None
        assert page.topics == []
        assert page.pages == 0
        assert page.current_page == 1
        assert page.extra_style is None

    async def test_topics_are_newest_first_and_paginated(self, session_factory, seeder):
        python = await seeder.tag("python")
        other = await seeder.tag("other")
        titles = [f"topic {i}" for i in range(5)]
        for title in titles:
            await seeder.topic(title, tags=(python,))
        await seeder.topic("not filed under python", tags=(other,))

        first = await assemble_tag_page(session_factory, "python", page=1, per_page=2)
        last = await assemble_tag_page(session_factory, "python", page=3, per_page=2)

        assert first.pages == 3
        assert [t.title for t in first.topics] == ["topic 4", "topic 3"]
        assert [t.title for t in last.topics] == ["topic 0"]
        assert first.list_topic_count == 2

    async def test_page_beyond_last_is_empty_but_renders(self, session_factory, seeder):
        python = await seeder.tag("python")
        await seeder.topic("only one", tags=(python,))

        page = await assemble_tag_page(session_factory, "python", page=9)

        assert page is not None
        assert page.topics == []
        assert page.pages == 1
        assert page.current_page == 9

    async def test_only_the_current_tag_is_highlighted(self, session_factory, seeder):
        a = await seeder.tag("a", order=0)
        b = await seeder.tag("b", order=1)
        await seeder.topic("tagged twice", tags=(a, b))

        page = await assemble_tag_page(session_factory, "b")

        [topic] = page.topics
        flags = {t.name: t.highlight for t in topic.tags}
        assert flags == {"a": False, "b": True}

    async def test_background_produces_style(self, session_factory, seeder):
        await seeder.tag("go", background="http://x/img.png")

        page = await assemble_tag_page(session_factory, "go")

        assert page.extra_style == '#wrapper {background-image: url("http://x/img.png")}'

    async def test_collection_status_follows_viewer(self, session_factory, seeder):
        rust = await seeder.tag("rust")
        collector, _ = await seeder.user()
        stranger, _ = await seeder.user()
        await seeder.collect(collector, rust)

        as_collector = await assemble_tag_page(session_factory, "rust", user_id=collector.id)
        as_stranger = await assemble_tag_page(session_factory, "rust", user_id=stranger.id)
        anonymous = await assemble_tag_page(session_factory, "rust")

        assert as_collector.in_collection is True
        assert as_stranger.in_collection is False
        assert anonymous.in_collection is False

    async def test_sidebars_are_site_wide(self, session_factory, seeder):
        await seeder.tag("rust")
        unrelated = await seeder.tag("unrelated")
        for i in range(7):
            await seeder.topic(f"t{i}", tags=(unrelated,), visit_count=i * 10, reply_count=i % 2)

        page = await assemble_tag_page(session_factory, "rust", hot_count=3, no_reply_count=2)

        assert page.topics == []
        assert [t.title for t in page.hot_topics] == ["t6", "t5", "t4"]
        # Unanswered = even i, newest first
        assert [t.title for t in page.no_reply_topics] == ["t6", "t4"]

    async def test_context_carries_every_view_value(self, session_factory, seeder):
        await seeder.tag("rust")

        page = await assemble_tag_page(session_factory, "rust")

        assert set(page.context()) == {
            "tag",
            "topics",
            "current_page",
            "list_topic_count",
            "in_collection",
            "hot_topics",
            "no_reply_topics",
            "pages",
            "extra_style",
        }

    async def test_failed_lookup_aborts_and_cancels_the_rest(
        self, session_factory, seeder, monkeypatch
    ):
        await seeder.tag("rust")
        sleeping = asyncio.Event()
        cancelled = asyncio.Event()

        async def no_topics(session_factory, tag_id, per_page):
            return [], 0

        async def slow_no_reply(db, limit):
            sleeping.set()
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return []

        async def broken_hot(db, limit):
            await sleeping.wait()
            raise RuntimeError("store down")

        monkeypatch.setattr(tag_page, "_load_topic_ids_and_pages", no_topics)
        monkeypatch.setattr(tag_page, "get_hot_topics", broken_hot)
        monkeypatch.setattr(tag_page, "get_no_reply_topics", slow_no_reply)

        with pytest.raises(RuntimeError, match="store down"):
            await assemble_tag_page(session_factory, "rust")

        assert cancelled.is_set()
