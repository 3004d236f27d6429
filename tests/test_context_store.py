"""Tests for the conversation context adapter."""

import json

import pytest

from rachibot.core.context_store import ContextStore, context_key
from rachibot.core.features import FeatureFlags
from rachibot.models.schemas import ChatMessage, ImagePart, TextPart


def turn(n: int) -> list[ChatMessage]:
    return [
        ChatMessage(role="user", content=f"question {n}"),
        ChatMessage(role="assistant", content=f"answer {n}"),
    ]


class TestContextStore:
    """Test suite for ContextStore."""

    @pytest.fixture
    def features(self, store):
        return FeatureFlags(store)

    @pytest.fixture
    def context(self, store, features):
        return ContextStore(store, features)

    async def test_append_then_load(self, context):
        await context.append("1", "2", turn(1))

        turns = await context.load("1", "2")

        assert turns == [turn(1)]

    async def test_stored_as_json_array(self, store, context):
        await context.append("1", "2", turn(1))

        raw = await store.lrange(context_key("1", "2"), 0, -1)

        assert json.loads(raw[0]) == [
            {"role": "user", "content": "question 1"},
            {"role": "assistant", "content": "answer 1"},
        ]

    async def test_content_parts_survive(self, context):
        message = ChatMessage(
            role="user",
            content=[ImagePart(image="https://x/y.png"), TextPart(text="look")],
        )
        await context.append("1", "", [message])

        assert await context.load_messages("1", "") == [message]

    async def test_append_trims_and_expires(self, store, context):
        for n in range(50):
            await context.append("1", "2", turn(n))

        items = await store.lrange(context_key("1", "2"), 0, -1)
        assert len(items) == 42
        assert json.loads(items[0])[0]["content"] == "question 8"
        assert 0 < store.ttl(context_key("1", "2")) <= 3600

    async def test_default_window_is_seven_without_write_back(self, store, context):
        for n in range(10):
            await context.append("1", "2", turn(n))

        turns = await context.load("1", "2")

        assert len(turns) == 7
        assert turns[0] == turn(3)
        assert await store.hget("feature:1", "length") is None

    @pytest.mark.parametrize(("requested", "expected"), [("100", 42), ("-5", 0), ("3", 3)])
    async def test_requested_length_is_clamped_and_persisted(self, store, context, requested, expected):
        assert await context.window_length("1", requested) == expected
        assert await store.hget("feature:1", "length") == str(expected)

    async def test_feature_length_is_used(self, features, context):
        await features.set("1", "length", "2")
        for n in range(5):
            await context.append("1", "2", turn(n))

        assert len(await context.load("1", "2")) == 2

    async def test_zero_length_loads_nothing(self, context):
        await context.append("1", "2", turn(1))

        assert await context.load("1", "2", "0") == []

    @pytest.mark.parametrize("value", ["lots", "true"])
    async def test_non_integer_length_resets_to_default(self, store, features, context, value):
        await features.set("1", "length", value)

        assert await context.window_length("1") == 7
        assert await store.hget("feature:1", "length") == "7"

    async def test_unparseable_turn_is_skipped(self, store, context):
        await context.append("1", "2", turn(1))
        await store.rpush(context_key("1", "2"), '{"role": "user"}')
        await context.append("1", "2", turn(2))

        assert await context.load("1", "2") == [turn(1), turn(2)]

    async def test_clear_is_idempotent(self, context):
        await context.append("1", "2", turn(1))

        assert await context.clear("1", "2") == 1
        assert await context.clear("1", "2") == 0
        assert await context.load("1", "2") == []

    async def test_should_include(self, features, context):
        assert await context.should_include("1", tagged=True) is True
        assert await context.should_include("1", tagged=False) is False
        await features.enable("1", "context")
        assert await context.should_include("1", tagged=False) is True
