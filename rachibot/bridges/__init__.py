"""Bridges to the external content APIs used by commands."""

from rachibot.bridges.card_game import CardGameBridge
from rachibot.bridges.esports import EsportsBridge
from rachibot.bridges.github import GitHubBridge
from rachibot.bridges.web import WebBridge, extract_links, html_to_text

__all__ = [
    "CardGameBridge",
    "EsportsBridge",
    "GitHubBridge",
    "WebBridge",
    "extract_links",
    "html_to_text",
]
