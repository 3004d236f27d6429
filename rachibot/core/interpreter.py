"""Request pipeline: from a raw command request to a reply value.

Stages run in a fixed order and any of them may answer early:

1. early, short and enriching command tables;
2. link harvesting;
3. alias resolution (``#name`` and ``#chain`` answer here);
4. context load and the session table;
5. tag prompts, message assembly and the model call.

Only a successful model call writes the usage record and appends the
turn to the conversation context.
"""

import json
from typing import Any
from urllib.parse import urlsplit

import structlog

from rachibot.bridges.web import extract_links
from rachibot.commands.basic import usage_key
from rachibot.commands.tables import (
    EARLY_COMMANDS,
    ENRICHING_COMMANDS,
    SESSION_COMMANDS,
    build_short_commands,
)
from rachibot.core.aliases import render_chain
from rachibot.core.dispatcher import CommandTable, Reply
from rachibot.core.errors import NoUserMessage, TagPromptNotFound
from rachibot.core.services import Services
from rachibot.core.state import RequestState
from rachibot.models.schemas import ChatMessage, CommandRequest, Generation, ImagePart, TextPart

logger = structlog.get_logger(__name__)


def tag_prompt_key(tag: str) -> str:
    return f"key:#{tag}"


def is_url(value: str) -> bool:
    """True for absolute URLs, data URIs included."""
    return bool(urlsplit(value).scheme)


class CommandInterpreter:
    """Runs one request through every stage.

    Args:
        services: Injected store, model and bridge handles.
    """

    def __init__(self, services: Services) -> None:
        self.services = services
        self.tables: list[CommandTable] = [
            EARLY_COMMANDS,
            build_short_commands(services.settings.interpreter.command_length_limit),
        ]

    async def handle(self, request: CommandRequest) -> Any:
        """Interpret *request* and return the reply value.

        Returns:
            A string for most commands and model answers; objects, lists,
            integers or booleans for the raw and store commands.

        Raises:
            CommandError: Any classified failure, mapped to an HTTP status
                by the app.
        """
        state = RequestState.from_request(request)
        logger.info("command_received", **state.snapshot())

        for table in self.tables:
            reply = await table.dispatch(state, self.services)
            if reply is not None:
                return reply.value

        self._attach_request_content(state)
        reply = await ENRICHING_COMMANDS.dispatch(state, self.services)
        if reply is not None:
            return reply.value

        reply = await self._harvest_links(state)
        if reply is not None:
            return reply.value

        reply = await self._resolve_model(state)
        if reply is not None:
            return reply.value

        await self._load_context(state)
        reply = await SESSION_COMMANDS.dispatch(state, self.services)
        if reply is not None:
            return reply.value

        return await self._invoke_model(state)

    # ── Stages ────────────────────────────────────────────────────

    def _attach_request_content(self, state: RequestState) -> None:
        if state.image and is_url(state.image):
            state.content.append(ImagePart(image=state.image))
        if state.reference:
            state.content.append(TextPart(text=state.reference))

    async def _harvest_links(self, state: RequestState) -> Reply | None:
        links = extract_links(state.reference, state.message)
        if state.consume_tag("nolinks") or not links:
            return None
        if state.has_tag("links"):
            return Reply("\n".join(links))

        state.add_tag("links")
        parts = await self.services.web.harvest(
            links,
            extract_all=await self.services.features.is_enabled(state.caller, "cheerio"),
            extract_first=state.consume_tag("cheerio"),
        )
        state.content.extend(parts)
        return None

    async def _resolve_model(self, state: RequestState) -> Reply | None:
        state.chain = await self.services.aliases.resolve(state.chain)
        state.model_id = state.chain[-1]
        if state.has_tag("name"):
            return Reply(state.model_id)
        if state.has_tag("chain"):
            return Reply(render_chain(state.chain))
        return None

    async def _load_context(self, state: RequestState) -> None:
        context = self.services.context
        if await context.should_include(state.caller, state.has_tag("context")):
            state.context = await context.load_messages(state.caller, state.group, state.label("context"))
        state.discard_tag("context")

    async def _tag_prompts(self, state: RequestState) -> list[ChatMessage]:
        prompts = []
        for tag in state.tags:
            value = await self.services.store.get(tag_prompt_key(tag))
            if not value:
                raise TagPromptNotFound(f"key #{tag} not found")
            prompts.insert(0, ChatMessage(role="system", content=value))
        return prompts

    async def _invoke_model(self, state: RequestState) -> str:
        prompts = await self._tag_prompts(state)
        messages: list[ChatMessage] = []
        if state.content:
            messages.append(ChatMessage(role="user", content=list(state.content)))
        if state.message:
            messages.append(ChatMessage(role="user", content=state.message))
        if not any(message.role == "user" for message in messages):
            raise NoUserMessage("no user message")

        logger.info(
            "model_invoked",
            model_id=state.model_id,
            prompts=len(prompts),
            messages=len(messages),
            context=len(state.context),
        )
        generation = await self.services.model.generate(state.model_id, prompts + state.context + messages)
        await self._record(state, messages, generation)
        return generation.text

    async def _record(self, state: RequestState, messages: list[ChatMessage], generation: Generation) -> None:
        usage = {"model_id": generation.model_id, **generation.usage.model_dump()}
        await self.services.store.set(usage_key(state.caller, state.group), json.dumps(usage))

        turn = [message for message in messages + generation.messages if message.role != "system"]
        await self.services.context.append(state.caller, state.group, turn)
        logger.info("model_answered", model_id=generation.model_id, **generation.usage.model_dump())
