"""Message peeling: directive, tags and context markers.

Each step is a pure function taking the current remainder and returning
what it extracted plus the rest, so the grammar can be tested without a
store or network. :func:`parse_message` composes them in their fixed
order.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from rachibot.core.errors import InvalidCommand

_DIRECTIVE_RE = re.compile(r"/([^\s#<>]+)\s*(.*)", re.S)
_TAGS_RE = re.compile(r"#([^\s<>]+)\s*(.*)", re.S)
_QUOTE_RE = re.compile(r">\s*(.*)", re.S)
_WINDOW_RE = re.compile(r"<\s*(\d+)\s*>\s*(.*)", re.S)


@dataclass
class ParsedMessage:
    """Outcome of peeling one raw message.

    Attributes:
        name: Directive name after ``/`` (empty when none was given).
        tags: Tag tokens in discovery order (dict used as an ordered set).
        labels: Tag token to label value; ``None`` for bare tags.
        remainder: Text left after all prefixes were stripped.
    """

    name: str = ""
    tags: dict[str, None] = field(default_factory=dict)
    labels: dict[str, Optional[str]] = field(default_factory=dict)
    remainder: str = ""


def match_args(pattern: "str | re.Pattern[str]", text: str, command: str) -> re.Match[str]:
    """Match *pattern* at the start of *text* or fail naming *command*.

    Raises:
        InvalidCommand: If the pattern does not match.
    """
    match = re.match(pattern, text, re.S) if isinstance(pattern, str) else pattern.match(text)
    if match is None:
        raise InvalidCommand(f"invalid {command} command")
    return match


def peel_directive(text: str) -> tuple[Optional[str], str]:
    """Split a leading ``/name`` off *text*.

    Returns:
        ``(name, rest)``; ``name`` is ``None`` when *text* has no directive.
    """
    if not text.startswith("/"):
        return None, text
    match = match_args(_DIRECTIVE_RE, text, "/")
    return match.group(1), match.group(2)


def split_tag_segment(segment: str) -> list[tuple[str, Optional[str]]]:
    """Split ``a#b:v#c`` into ``[("a", None), ("b", "v"), ("c", None)]``.

    Tag names are lowercased. A label is the text between the first and
    second ``:``; empty tokens are skipped.
    """
    pairs: list[tuple[str, Optional[str]]] = []
    for token in segment.split("#"):
        if not token:
            continue
        if ":" in token:
            key, value = token.split(":")[:2]
            pairs.append((key.lower(), value))
        else:
            pairs.append((token.lower(), None))
    return pairs


def peel_tags(text: str) -> tuple[list[tuple[str, Optional[str]]], str]:
    """Consume every leading ``#tag[:label]`` run of *text*."""
    pairs: list[tuple[str, Optional[str]]] = []
    while text.startswith("#"):
        match = match_args(_TAGS_RE, text, "#")
        pairs.extend(split_tag_segment(match.group(1)))
        text = match.group(2)
    return pairs, text


def peel_context_marker(text: str) -> tuple[Optional[str], bool, str]:
    """Strip a ``>`` or ``<n>`` context marker.

    Returns:
        ``(length, marked, rest)``: ``marked`` is true when either marker
        was present; ``length`` holds the digits of a ``<n>`` marker.
    """
    if text.startswith(">"):
        match = match_args(_QUOTE_RE, text, ">")
        return None, True, match.group(1)
    if text.startswith("<"):
        match = match_args(_WINDOW_RE, text, "<>")
        return match.group(1), True, match.group(2)
    return None, False, text


def parse_message(raw: str) -> ParsedMessage:
    """Peel directive, tags and context marker off *raw*, in that order.

    Raises:
        InvalidCommand: If a prefix character is present without its syntax.
    """
    parsed = ParsedMessage()

    name, rest = peel_directive(raw)
    if name is not None:
        parsed.name = name

    pairs, rest = peel_tags(rest)
    for key, value in pairs:
        parsed.tags[key] = None
        parsed.labels[key] = value

    length, marked, rest = peel_context_marker(rest)
    if marked:
        parsed.tags["context"] = None
    if length is not None:
        parsed.labels["context"] = length

    parsed.remainder = rest
    return parsed
