"""The command tables, in evaluation order.

Position in each list is precedence: ``set`` with a reference must come
before plain ``set``, and the long-message guard must stay first in the
short table so that conversational text never triggers a short command.
"""

from rachibot.commands import basic, enrich, feeds, session
from rachibot.core.dispatcher import (
    Command,
    CommandTable,
    exact,
    long_message,
    pass_through,
    prefix,
    with_reference,
)

COMMAND_LENGTH_LIMIT = 42

DECK_WORDS = ("来点儿牌组", "来点牌组", "牌组", "decks", "d")

EARLY_COMMANDS = CommandTable(
    "early",
    [
        Command("tags", exact("tags"), basic.show_tags),
        Command("labels", exact("labels"), basic.show_labels),
        Command("set_reference", with_reference(prefix("set")), basic.set_from_reference),
        Command("set", prefix("set"), basic.set_value),
        Command("get_reference", with_reference(exact("get")), basic.get_reference),
        Command("get", prefix("get"), basic.get_value),
        Command("echo", prefix("echo"), basic.echo),
    ],
)


def build_short_commands(limit: int = COMMAND_LENGTH_LIMIT) -> CommandTable:
    """Short commands, guarded by a pass-through for messages of *limit* chars or more."""
    return CommandTable(
        "short",
        [
            Command("long_message", long_message(limit), pass_through),
            Command("ping", exact("ping"), basic.ping),
            Command("snapshot", exact("snapshot"), basic.snapshot),
            Command("enable", prefix("enable"), basic.enable_feature),
            Command("disable", prefix("disable"), basic.disable_feature),
            Command("features", exact("features"), basic.list_features),
            Command("rooms", exact("rooms", "r"), feeds.rooms),
            Command("guyu", exact("guyu", "gy"), feeds.latest_pull),
            Command("ip", prefix("ip"), feeds.ip_location),
            Command("list_models", prefix("list models"), feeds.list_models),
            Command("esports_schedule", prefix("lolm", "csm"), feeds.esports_schedule),
            Command("decks", exact(*DECK_WORDS), feeds.decks),
            Command("usage", exact("usage"), basic.last_usage),
        ],
    )


ENRICHING_COMMANDS = CommandTable(
    "enriching",
    [
        Command("help", prefix("help"), enrich.help_source),
        Command("credits", exact("credits"), enrich.credits),
        Command("lol", prefix("lol"), enrich.lol),
        Command("hacker_news", prefix("hacker news"), enrich.hacker_news),
        Command("github_trending", exact("github trending"), enrich.github_trending),
        Command("xkcd", prefix("xkcd"), enrich.xkcd),
        Command("ask", with_reference(exact("ask")), enrich.ask),
    ],
)

SESSION_COMMANDS = CommandTable(
    "session",
    [
        Command("context", exact("context"), session.show_context),
        Command("clear", exact("clear"), session.clear_context),
    ],
)
