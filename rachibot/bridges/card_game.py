"""Genius Invokation TCG feeds: open rooms and the community deck square."""

import asyncio
from typing import Any

import structlog

from rachibot.bridges.web import WebBridge
from rachibot.core.errors import UpstreamFailure

logger = structlog.get_logger(__name__)

MAIN_ROOMS_URL = "https://gi.xqm32.org/api/rooms"
BETA_ROOMS_URL = "https://beta.gi.xqm32.org/api/rooms"
DECK_SQUARE_URL = "https://api-takumi.mihoyo.com/event/cardsquare/index"


def format_room(room: dict[str, Any]) -> str:
    """``<id> 👉 <player> 🆚 <player>``."""
    sides = " 🆚 ".join(player["name"] for player in room.get("players", []))
    return f"{room['id']} 👉 {sides}"


def format_deck(deck: dict[str, Any]) -> str:
    return "\n".join(
        [
            f"🎴 {deck['title']}",
            f"🎮 {deck['nickname']} 🏷️ {', '.join(deck.get('tags', []))}",
            f"🃏 {deck['card_code']}",
        ]
    )


class CardGameBridge:
    """Room and deck listings.

    Args:
        web: Web bridge used for the HTTP calls.
    """

    def __init__(self, web: WebBridge) -> None:
        self.web = web

    async def rooms(self) -> dict[str, list[dict[str, Any]]]:
        """Fetch the main and beta room lists concurrently."""
        main, beta = await asyncio.gather(
            self.web.fetch_json(MAIN_ROOMS_URL),
            self.web.fetch_json(BETA_ROOMS_URL),
        )
        return {"main": main, "beta": beta}

    async def decks(self) -> list[dict[str, Any]]:
        payload = await self.web.fetch_json(DECK_SQUARE_URL, method="POST")
        try:
            return payload["data"]["list"]
        except (KeyError, TypeError) as exc:
            retcode = payload.get("retcode") if isinstance(payload, dict) else None
            logger.warning("deck_square_unexpected", retcode=retcode)
            raise UpstreamFailure("unexpected deck square response") from exc

    @staticmethod
    def format_rooms(rooms: dict[str, list[dict[str, Any]]]) -> str:
        try:
            return "\n".join(
                [
                    "===== Main =====",
                    *(format_room(room) for room in rooms["main"]),
                    "===== Beta =====",
                    *(format_room(room) for room in rooms["beta"]),
                ]
            )
        except (KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected room list response") from exc

    @staticmethod
    def format_decks(decks: list[dict[str, Any]]) -> str:
        try:
            return "\n\n".join(format_deck(deck) for deck in decks)
        except (KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected deck square response") from exc
