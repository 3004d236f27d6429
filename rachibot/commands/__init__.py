"""Command handlers and the ordered tables that dispatch to them."""

from rachibot.commands.tables import (
    EARLY_COMMANDS,
    ENRICHING_COMMANDS,
    SESSION_COMMANDS,
    build_short_commands,
)

__all__ = [
    "EARLY_COMMANDS",
    "ENRICHING_COMMANDS",
    "SESSION_COMMANDS",
    "build_short_commands",
]
