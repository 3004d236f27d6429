"""Listing commands backed by external feeds, answered without the model."""

from typing import Any, Optional

from rachibot.bridges.esports import format_bilibili_match
from rachibot.core.dispatcher import Reply
from rachibot.core.errors import UpstreamFailure
from rachibot.core.parser import match_args
from rachibot.core.services import Services
from rachibot.core.state import RequestState


async def rooms(state: RequestState, services: Services) -> Optional[Reply]:
    """Open rooms on the main and beta servers; ``#raw`` returns both lists."""
    listing = await services.card_game.rooms()
    if state.has_tag("raw"):
        return Reply(listing)
    return Reply(services.card_game.format_rooms(listing))


async def latest_pull(state: RequestState, services: Services) -> Optional[Reply]:
    github = services.settings.github
    pull = await services.github.latest_pull(github.pulls_owner, github.pulls_repo)
    return Reply(f"{pull['title']}\n{pull['html_url']}")


async def ip_location(state: RequestState, services: Services) -> Optional[Reply]:
    host = match_args(r"ip\s*(\S*)", state.message, "ip").group(1)
    return Reply(await services.web.ip_location(host))


def format_price(price: str) -> str:
    """Per-token price as dollars per million tokens, three significant digits."""
    return f"{float(price) * 1_000_000:#.3g}"


def format_model(model: dict[str, Any], with_price: bool) -> str:
    if not with_price:
        return model["id"]
    pricing = model["pricing"]
    return "\n".join(
        [
            model["id"],
            f"🤔 ${format_price(pricing['prompt'])}/M",
            f"🤖 ${format_price(pricing['completion'])}/M",
        ]
    )


async def list_models(state: RequestState, services: Services) -> Optional[Reply]:
    """Model ids containing the filter; ``#raw`` returns the whole catalogue.

    ``#price`` adds prompt and completion prices per million tokens.
    """
    model_filter = match_args(r"list models\s*(.*)", state.message, "list models").group(1)
    models = await services.model.list_models()
    if state.has_tag("raw"):
        return Reply(models)
    with_price = state.has_tag("price")
    try:
        lines = [format_model(m, with_price) for m in models if model_filter in m["id"]]
    except (KeyError, TypeError, ValueError) as exc:
        raise UpstreamFailure("unexpected model list entry") from exc
    return Reply("\n".join(lines))


async def esports_schedule(state: RequestState, services: Services) -> Optional[Reply]:
    """``lolm``/``csm [start] [end]``: Bilibili schedule, ``#grade`` adds player grades."""
    game, start, end = match_args(r"(lol|cs)m\s*(\S*)\s*(\S*)", state.message, "m").groups()
    start = start or services.esports.today()
    end = end or start
    matches = await services.esports.bilibili_matches(game, start, end)
    grades = state.has_tag("grade")
    try:
        lines = [format_bilibili_match(m, services.esports.tz, grades) for m in matches]
    except (KeyError, TypeError) as exc:
        raise UpstreamFailure("unexpected bilibili match entry") from exc
    return Reply("\n".join(lines))


async def decks(state: RequestState, services: Services) -> Optional[Reply]:
    listing = await services.card_game.decks()
    return Reply(services.card_game.format_decks(listing))
