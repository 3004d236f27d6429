"""Commands that fetch material for the model instead of answering directly.

Each handler adds a tag (so a ``key:#<tag>`` system prompt is attached
later), appends content parts to the outgoing user message and rewrites
the remainder. A few diagnostic tags short-circuit with a direct reply.
"""

from typing import Optional

import structlog

from rachibot.bridges.esports import (
    format_game,
    format_lpl_match,
    last_match,
    matches_between,
    parse_local,
    running_games,
)
from rachibot.bridges.web import GITHUB_TRENDING_URL, HACKER_NEWS_URL, SMART_QUESTIONS_URL
from rachibot.commands.basic import store_key
from rachibot.core.dispatcher import Reply
from rachibot.core.errors import AuthorizationMissing, NotFoundError
from rachibot.core.parser import match_args
from rachibot.core.services import Services
from rachibot.core.state import RequestState
from rachibot.models.schemas import ImagePart, TextPart

logger = structlog.get_logger(__name__)

LOL_AUTHORIZATION_KEY = store_key("$lol")
SMART_QUESTIONS_KEY = store_key("$smart-questions")


async def help_source(state: RequestState, services: Services) -> Optional[Reply]:
    """``help [question]``: attach the bot's own command source.

    A bare ``help`` without a directive routes to the ``/help`` alias.
    """
    state.message = match_args(r"help\s*(.*)", state.message, "help").group(1)
    state.add_tag("help")
    if not state.name:
        state.chain.append("help")

    github = services.settings.github
    source = await services.github.file_contents(github.help_owner, github.help_repo, github.help_path)
    state.content.append(TextPart(text=source))
    return None


async def credits(state: RequestState, services: Services) -> Optional[Reply]:
    state.message = ""
    state.add_tag("credits")
    state.content.append(TextPart(text=await services.model.credits()))
    return None


async def lol(state: RequestState, services: Services) -> Optional[Reply]:
    """``lol [filter] [start] [end]``: LPL schedule and match data.

    ``#gaming`` lists running tournaments, ``lol all`` lists the matches
    in range. Otherwise the latest match whose name contains *filter* is
    selected: ``#last`` formats it, ``#news`` lists its headlines,
    ``#detail`` returns the raw TJStats document and by default that
    document is handed to the model.

    Raises:
        NotFoundError: If no match fits the filter.
        AuthorizationMissing: If the TJStats token is not stored.
    """
    team, start, end = match_args(r"lol\s*(\S*)\s*(\S*)\s*(\S*)", state.message, "lol").groups()
    team = team.lower()
    esports = services.esports

    stime = parse_local(start, esports.tz) if start else esports.now()
    etime = parse_local(end, esports.tz) if end else stime

    gaming = running_games(await esports.lpl_games(), stime, etime)
    if state.has_tag("gaming"):
        return Reply("\n".join(format_game(game) for game in gaming))

    matches = await esports.lpl_matches_for(gaming)
    if team == "all":
        return Reply("\n".join(format_lpl_match(m) for m in matches_between(matches, stime, etime)))

    state.message = ""
    state.add_tag("lol")

    match = last_match(matches, team, stime, etime, bounded=bool(start))
    if match is None:
        raise NotFoundError(f"match {team} not found")

    if state.has_tag("last"):
        return Reply(format_lpl_match(match))
    if state.has_tag("news"):
        return Reply("\n".join(await esports.lpl_news(match["bMatchId"])))

    authorization = await services.store.get(LOL_AUTHORIZATION_KEY)
    if not authorization:
        raise AuthorizationMissing("lol authorization not set")
    detail = await esports.tjstats_detail(match["bMatchId"], authorization)
    if state.has_tag("detail"):
        return Reply(detail)

    state.content.append(TextPart(text=detail))
    return None


async def hacker_news(state: RequestState, services: Services) -> Optional[Reply]:
    state.message = match_args(r"hacker news\s*(.*)", state.message, "hacker news").group(1)
    state.add_tag("hacker-news")
    state.content.append(TextPart(text=await services.web.fetch_text(HACKER_NEWS_URL, check_status=False)))
    return None


async def github_trending(state: RequestState, services: Services) -> Optional[Reply]:
    state.message = ""
    state.add_tag("github-trending")
    state.content.append(TextPart(text=await services.web.fetch_text(GITHUB_TRENDING_URL, check_status=False)))
    return None


async def xkcd(state: RequestState, services: Services) -> Optional[Reply]:
    """``xkcd [comic] [prompt]``: attach a comic image; ``#image`` returns its URL."""
    comic, state.message = match_args(r"xkcd\s*(\S*)\s*(.*)", state.message, "xkcd").groups()
    state.add_tag("xkcd")

    url = await services.web.xkcd_image(comic, random=state.consume_tag("random"))
    if state.has_tag("image"):
        return Reply(url)

    state.content.append(ImagePart(image=url))
    return None


async def ask(state: RequestState, services: Services) -> Optional[Reply]:
    """Attach "How To Ask Questions The Smart Way", cached in the store."""
    state.message = ""
    state.add_tag("ask")

    text = await services.store.get(SMART_QUESTIONS_KEY)
    if not text:
        text = await services.web.fetch_text(SMART_QUESTIONS_URL, check_status=False)
        await services.store.set(
            SMART_QUESTIONS_KEY,
            text,
            ttl=services.settings.interpreter.smart_questions_ttl,
        )
        logger.info("smart_questions_cached", chars=len(text))

    state.content.append(TextPart(text=text))
    return None
