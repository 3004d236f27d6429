"""End-to-end tests for CommandInterpreter over an in-memory store and fake model."""

import json

import httpx
import pytest

from rachibot.core.errors import (
    AliasNotFound,
    InvalidCommand,
    KeyNotFound,
    NotFoundError,
    NoUserMessage,
    TagPromptNotFound,
    UpstreamFailure,
)
from rachibot.models.schemas import CommandRequest, ImagePart, TextPart

DEFAULT_MODEL = "openai/gpt-4o-mini"


def request(message: str, **fields) -> CommandRequest:
    return CommandRequest(qq="10001", group="20002", msg=message, **fields)


@pytest.fixture
async def default_alias(store):
    await store.set("key:/", DEFAULT_MODEL)


class TestStoreCommands:
    """Early-table commands."""

    async def test_set_then_get(self, interpreter):
        assert await interpreter.handle(request("set foo bar baz")) == "foo: bar baz"
        assert await interpreter.handle(request("get foo")) == "bar baz"

    async def test_get_missing_key(self, interpreter):
        with pytest.raises(KeyNotFound) as exc_info:
            await interpreter.handle(request("get baz"))

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "key baz not found"

    async def test_set_and_get_with_reference(self, interpreter, store):
        assert await interpreter.handle(request("set quote", ref="to be")) == "quote: to be"
        assert await store.get("key:quote") == "to be"

        await store.set("key:lookup", "found it")
        assert await interpreter.handle(request("get", ref="lookup")) == "found it"

    async def test_malformed_set(self, interpreter):
        with pytest.raises(InvalidCommand, match="invalid set command"):
            await interpreter.handle(request("set onlykey"))

    async def test_tags_and_labels(self, interpreter):
        assert await interpreter.handle(request("#a#b:x tags")) == "a, b"
        assert await interpreter.handle(request("#a#b:x labels")) == "a\nb: x"

    async def test_echo_variants(self, interpreter):
        assert await interpreter.handle(request("echo  hello")) == "hello"
        assert await interpreter.handle(request("#ref echo", ref="quoted")) == "quoted"
        assert await interpreter.handle(request("#image echo", image="https://i/x.png")) == "https://i/x.png"


class TestShortCommands:
    """Short-table commands."""

    async def test_ping(self, interpreter):
        assert await interpreter.handle(request("ping")) == "pong"

    async def test_snapshot_truncates_image(self, interpreter):
        image = "data:image/png;base64," + "A" * 100

        snapshot = await interpreter.handle(request("snapshot", image=image))

        assert snapshot["caller_id"] == "10001"
        assert snapshot["message"] == "snapshot"
        assert len(snapshot["image_uri"]) == 42

    async def test_feature_toggles(self, interpreter, store):
        assert await interpreter.handle(request("enable context")) == 1
        assert await interpreter.handle(request("disable cheerio")) == 1
        assert await interpreter.handle(request("features")) == "context: true\ncheerio: false"
        assert await interpreter.handle(request("#raw features")) == {"context": "true", "cheerio": "false"}
        assert await interpreter.handle(request("#reset features")) == 1
        assert await store.hgetall("feature:10001") == {}

    async def test_long_message_skips_short_commands(self, interpreter, model, default_alias):
        message = "enable " + "x" * 40

        assert await interpreter.handle(request(message)) == model.text
        assert model.last_messages[-1].content == message

    async def test_list_models_with_price(self, interpreter, model):
        model.models = [
            {"id": "openai/gpt-4o", "pricing": {"prompt": "0.0000025", "completion": "0.00001"}},
            {"id": "anthropic/claude", "pricing": {"prompt": "0.000003", "completion": "0.000015"}},
        ]

        reply = await interpreter.handle(request("#price list models gpt"))

        assert reply == "openai/gpt-4o\n🤔 $2.50/M\n🤖 $10.0/M"

    async def test_list_models_raw_is_unfiltered(self, interpreter, model):
        model.models = [{"id": "openai/gpt-4o"}, {"id": "anthropic/claude"}]

        assert await interpreter.handle(request("#raw#price list models gpt")) == model.models

    async def test_list_models_plain(self, interpreter, model):
        model.models = [{"id": "openai/gpt-4o"}, {"id": "openai/gpt-4.1"}, {"id": "x/y"}]

        assert await interpreter.handle(request("list models gpt")) == "openai/gpt-4o\nopenai/gpt-4.1"

    async def test_ip_rejects_non_address(self, interpreter):
        with pytest.raises(InvalidCommand, match="invalid ip address"):
            await interpreter.handle(request("ip example.com"))

    async def test_usage_missing(self, interpreter):
        with pytest.raises(NotFoundError, match="usage not found"):
            await interpreter.handle(request("usage"))

    async def test_latest_pull(self, interpreter, web):
        web.add(
            "https://api.github.com/repos/genius-invokation/genius-invokation/pulls",
            json=[{"title": "Fix dice", "html_url": "https://github.com/pr/1"}],
        )

        assert await interpreter.handle(request("gy")) == "Fix dice\nhttps://github.com/pr/1"


class TestAliasStage:
    """Alias resolution and its diagnostics."""

    async def test_missing_alias(self, interpreter):
        with pytest.raises(AliasNotFound) as exc_info:
            await interpreter.handle(request("/foo hello"))

        assert exc_info.value.message == "key chain /foo not found"

    async def test_name_and_chain_diagnostics(self, interpreter, store, model):
        await store.set("key:/fast", "cheap")
        await store.set("key:/cheap", DEFAULT_MODEL)

        assert await interpreter.handle(request("/fast #name hi")) == DEFAULT_MODEL
        assert await interpreter.handle(request("/fast #chain hi")) == f"/fast -> /cheap -> /{DEFAULT_MODEL}"
        assert model.calls == []

    async def test_qualified_directive(self, interpreter, model):
        await interpreter.handle(request("/anthropic/claude-3 hi"))

        assert model.calls[0][0] == "anthropic/claude-3"


class TestModelCall:
    """Message assembly, usage record and context append."""

    async def test_plain_message(self, interpreter, model, store, default_alias):
        assert await interpreter.handle(request("hello")) == "hi there"

        model_id, messages = model.calls[0]
        assert model_id == DEFAULT_MODEL
        assert [(m.role, m.content) for m in messages] == [("user", "hello")]

        usage = json.loads(await store.get("usage:10001:20002:last"))
        assert usage == {
            "model_id": DEFAULT_MODEL,
            "prompt_tokens": 11,
            "completion_tokens": 5,
            "total_tokens": 16,
        }
        turns = await store.lrange("context:10001:20002", 0, -1)
        assert json.loads(turns[0]) == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi there"},
        ]

    async def test_usage_after_call(self, interpreter, default_alias):
        await interpreter.handle(request("hello"))

        reply = await interpreter.handle(request("usage"))

        assert reply.splitlines()[0] == f"model_id: {DEFAULT_MODEL}"
        assert "total_tokens: 16" in reply

    async def test_missing_tag_prompt(self, interpreter, store, default_alias):
        with pytest.raises(TagPromptNotFound, match="key #poem not found"):
            await interpreter.handle(request("#poem hello"))

        assert await store.get("usage:10001:20002:last") is None

    async def test_system_prompts_then_context_then_user(self, interpreter, model, store, default_alias):
        await store.set("key:#poem", "answer in verse")
        await interpreter.handle(request("first"))

        await interpreter.handle(request("#poem > second", ref="quoted"))

        messages = model.last_messages
        assert [m.role for m in messages] == ["system", "user", "assistant", "user", "user"]
        assert messages[0].content == "answer in verse"
        assert messages[1].content == "first"
        assert messages[3].content == [TextPart(text="quoted")]
        assert messages[4].content == "second"

        stored = await store.lrange("context:10001:20002", -1, -1)
        assert all(m["role"] != "system" for m in json.loads(stored[0]))

    async def test_later_tag_prompts_come_first(self, interpreter, model, store, default_alias):
        await store.set("key:#a", "prompt A")
        await store.set("key:#b", "prompt B")

        await interpreter.handle(request("#a#b hi"))

        assert [m.content for m in model.last_messages] == ["prompt B", "prompt A", "hi"]

    async def test_enabled_length_feature_falls_back_to_default(self, interpreter, model, store, default_alias):
        await interpreter.handle(request("enable length"))
        await interpreter.handle(request("first"))

        await interpreter.handle(request("> second"))

        assert [m.content for m in model.last_messages] == ["first", "hi there", "second"]
        assert await store.hget("feature:10001", "length") == "7"

    async def test_context_not_loaded_without_tag(self, interpreter, model, default_alias):
        await interpreter.handle(request("first"))
        await interpreter.handle(request("second"))

        assert len(model.last_messages) == 1

    async def test_window_label_clamps_and_persists(self, interpreter, store, default_alias):
        await interpreter.handle(request("<100> hi"))

        assert await store.hget("feature:10001", "length") == "42"

    async def test_image_part_first(self, interpreter, model, default_alias):
        await interpreter.handle(request("what is this", image="https://img/cat.png", ref="a cat"))

        content = model.last_messages[0].content
        assert content == [ImagePart(image="https://img/cat.png"), TextPart(text="a cat")]

    async def test_image_that_is_not_a_url_is_ignored(self, interpreter, model, default_alias):
        await interpreter.handle(request("describe", image="not a url"))

        assert [m.content for m in model.last_messages] == ["describe"]

    async def test_no_user_message(self, interpreter, model):
        with pytest.raises(NoUserMessage, match="no user message"):
            await interpreter.handle(request("/openai/gpt-4o"))

        assert model.calls == []


class TestSessionCommands:
    """Context inspection and clearing."""

    async def test_context_summary(self, interpreter, default_alias, model):
        model.text = "  line one\nline two"
        await interpreter.handle(request("question?"))

        reply = await interpreter.handle(request("> context"))

        assert reply == "🤔 question?\n🤖 line one"

    async def test_context_raw(self, interpreter, default_alias):
        await interpreter.handle(request("question?"))

        reply = await interpreter.handle(request("#raw > context"))

        assert reply == [
            {"role": "user", "content": "question?"},
            {"role": "assistant", "content": "hi there"},
        ]

    async def test_clear(self, interpreter, store, default_alias):
        await interpreter.handle(request("question?"))

        assert await interpreter.handle(request("clear")) == 1
        assert await store.lrange("context:10001:20002", 0, -1) == []


class TestLinks:
    """Link harvesting stage."""

    async def test_links_tag_lists_deduplicated(self, interpreter, default_alias):
        reply = await interpreter.handle(
            request("#links see https://b.example/x and https://a.example", ref="from https://b.example/x")
        )

        assert reply == "https://b.example/x\nhttps://a.example"

    async def test_nolinks_skips_fetching(self, interpreter, web, model, default_alias):
        await interpreter.handle(request("#nolinks read https://a.example"))

        assert web.requests == []
        assert model.last_messages[-1].content == "read https://a.example"

    async def test_harvest_wraps_resources(self, interpreter, web, model, store, default_alias):
        await store.set("key:#links", "summarise the resources")
        web.add("https://a.example", text="<p>Alpha</p>")
        web.add("https://b.example", text="<p>Beta</p>")

        await interpreter.handle(request("#cheerio compare https://a.example https://b.example"))

        system, user_parts, user_text = model.last_messages
        assert system.content == "summarise the resources"
        assert user_parts.content == [
            TextPart(text='<resource uri="https://a.example">\nAlpha\n</resource>'),
            TextPart(text='<resource uri="https://b.example">\n<p>Beta</p>\n</resource>'),
        ]
        assert user_text.content == "compare https://a.example https://b.example"

    async def test_cheerio_feature_extracts_all(self, interpreter, web, model, store, default_alias):
        await store.set("key:#links", "read")
        await store.hset("feature:10001", "cheerio", "true")
        web.add("https://a.example", text="<b>A</b>")
        web.add("https://b.example", text="<i>B</i>")

        await interpreter.handle(request("https://a.example https://b.example"))

        texts = [part.text for part in model.last_messages[1].content]
        assert texts == [
            '<resource uri="https://a.example">\nA\n</resource>',
            '<resource uri="https://b.example">\nB\n</resource>',
        ]


class TestEnrichingCommands:
    """Commands that attach external material."""

    async def test_help_routes_to_help_alias(self, interpreter, web, model, store):
        await store.set("key:/help", "x/helper")
        await store.set("key:#help", "explain the commands")
        web.add(
            "https://api.github.com/repos/xqm32/rachibot/contents/src/index.ts",
            text="const app = new Elysia()",
        )

        await interpreter.handle(request("help how do I set a key?"))

        model_id, messages = model.calls[0]
        assert model_id == "x/helper"
        assert messages[0].content == "explain the commands"
        assert messages[1].content == [TextPart(text="const app = new Elysia()")]
        assert messages[2].content == "how do I set a key?"

    async def test_credits(self, interpreter, model, store, default_alias):
        await store.set("key:#credits", "report the balance")

        await interpreter.handle(request("credits"))

        assert [m.role for m in model.last_messages] == ["system", "user"]
        assert model.last_messages[1].content == [TextPart(text=model.credit_text)]

    async def test_xkcd_image_url(self, interpreter, web):
        web.add("https://xkcd.com/353", text='<meta property="og:image" content="https://imgs.xkcd.com/353.png">')

        assert await interpreter.handle(request("#image xkcd 353")) == "https://imgs.xkcd.com/353.png"

    async def test_xkcd_missing_image(self, interpreter, web):
        web.add("https://xkcd.com", text="<html></html>")

        with pytest.raises(UpstreamFailure, match="xkcd image not found"):
            await interpreter.handle(request("xkcd"))

    async def test_xkcd_random_is_consumed(self, interpreter, web, model, store, default_alias):
        await store.set("key:#xkcd", "explain the comic")
        web.add("https://c.xkcd.com/random/comic", text='<meta property="og:image" content="https://imgs/r.png">')

        await interpreter.handle(request("#random xkcd explain"))

        assert model.last_messages[0].content == "explain the comic"
        assert model.last_messages[1].content == [ImagePart(image="https://imgs/r.png")]

    async def test_ask_fetches_and_caches(self, interpreter, web, store, model, default_alias):
        await store.set("key:#ask", "judge the question")
        web.add("http://www.catb.org/~esr/faqs/smart-questions.html", text="How To Ask Questions")

        await interpreter.handle(request("ask", ref="why does it not work"))
        await interpreter.handle(request("ask", ref="again"))

        assert len(web.requests) == 1
        assert await store.get("key:$smart-questions") == "How To Ask Questions"
        assert 0 < store.ttl("key:$smart-questions") <= 86400
        assert model.last_messages[1].content == [
            TextPart(text="again"),
            TextPart(text="How To Ask Questions"),
        ]

    async def test_upstream_failure_is_wrapped(self, interpreter, web, store, default_alias):
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        web.add("https://news.ycombinator.com", broken)

        with pytest.raises(UpstreamFailure) as exc_info:
            await interpreter.handle(request("hacker news top?"))

        assert exc_info.value.status_code == 502
