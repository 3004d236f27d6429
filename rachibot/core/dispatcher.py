"""Ordered command tables.

A :class:`CommandTable` is a list of ``(predicate, handler)`` entries
tried top to bottom; the first predicate that accepts the request state
runs its handler and nothing after it is tried. Precedence is therefore
the order of the list, not control flow.

Handlers return a :class:`Reply` when they answer the caller directly,
or ``None`` to let processing continue towards the model call.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import structlog

from rachibot.core.state import RequestState

if TYPE_CHECKING:
    from rachibot.core.services import Services

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Reply:
    """Terminal answer; ``value`` may be any JSON-serialisable object."""

    value: Any


Predicate = Callable[[RequestState], bool]
Handler = Callable[[RequestState, "Services"], Awaitable[Optional[Reply]]]


@dataclass(frozen=True)
class Command:
    """One dispatch entry."""

    name: str
    predicate: Predicate
    handler: Handler


# ── Predicates ────────────────────────────────────────────────────


def exact(*words: str) -> Predicate:
    """Accept when the remainder equals one of *words*."""
    accepted = frozenset(words)
    return lambda state: state.message in accepted


def prefix(*words: str) -> Predicate:
    """Accept when the remainder starts with one of *words*."""
    return lambda state: state.message.startswith(words)


def with_reference(predicate: Predicate) -> Predicate:
    """Narrow *predicate* to requests that quote a reference."""
    return lambda state: bool(state.reference) and predicate(state)


def long_message(limit: int) -> Predicate:
    """Accept remainders of at least *limit* characters."""
    return lambda state: len(state.message) >= limit


async def pass_through(state: RequestState, services: "Services") -> Optional[Reply]:
    """Handler that claims the request but answers nothing."""
    return None


# ── Table ─────────────────────────────────────────────────────────


class CommandTable:
    """Priority-ordered list of commands.

    Args:
        name: Table name used in logs.
        commands: Entries in precedence order.
    """

    def __init__(self, name: str, commands: Sequence[Command]) -> None:
        self.name = name
        self.commands = list(commands)

    def match(self, state: RequestState) -> Optional[Command]:
        """Return the first command whose predicate accepts *state*."""
        for command in self.commands:
            if command.predicate(state):
                return command
        return None

    async def dispatch(self, state: RequestState, services: "Services") -> Optional[Reply]:
        """Run the first matching handler, if any."""
        command = self.match(state)
        if command is None:
            return None
        logger.debug("command_matched", table=self.name, command=command.name)
        return await command.handler(state, services)
