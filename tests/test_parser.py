"""Tests for message peeling."""

import pytest

from rachibot.core.errors import InvalidCommand
from rachibot.core.parser import (
    match_args,
    parse_message,
    peel_context_marker,
    peel_directive,
    peel_tags,
    split_tag_segment,
)


class TestPeelDirective:
    """Leading ``/name`` handling."""

    def test_directive_and_rest(self):
        assert peel_directive("/gpt4 hello world") == ("gpt4", "hello world")

    def test_no_directive(self):
        assert peel_directive("hello") == (None, "hello")

    def test_directive_stops_at_tag(self):
        assert peel_directive("/fast#raw list") == ("fast", "#raw list")

    def test_bare_slash_is_invalid(self):
        with pytest.raises(InvalidCommand, match="invalid / command"):
            peel_directive("/ hello")

    def test_rest_keeps_newlines(self):
        assert peel_directive("/m line one\nline two") == ("m", "line one\nline two")


class TestPeelTags:
    """``#tag[:label]`` runs."""

    def test_split_segment(self):
        assert split_tag_segment("a#b:v#c") == [("a", None), ("b", "v"), ("c", None)]

    def test_tags_are_lowercased(self):
        assert split_tag_segment("RAW") == [("raw", None)]

    def test_empty_tokens_skipped(self):
        assert split_tag_segment("a##b") == [("a", None), ("b", None)]

    def test_label_is_text_between_first_and_second_colon(self):
        assert split_tag_segment("k:v:w") == [("k", "v")]

    def test_multiple_runs(self):
        pairs, rest = peel_tags("#raw #price list models gpt")
        assert pairs == [("raw", None), ("price", None)]
        assert rest == "list models gpt"

    def test_bare_hash_is_invalid(self):
        with pytest.raises(InvalidCommand, match="invalid # command"):
            peel_tags("# nothing")


class TestPeelContextMarker:
    """``>`` and ``<n>`` prefixes."""

    def test_quote_marker(self):
        assert peel_context_marker("> go on") == (None, True, "go on")

    def test_window_marker(self):
        assert peel_context_marker("<12> go on") == ("12", True, "go on")

    def test_window_marker_with_spaces(self):
        assert peel_context_marker("< 3 >again") == ("3", True, "again")

    def test_no_marker(self):
        assert peel_context_marker("plain") == (None, False, "plain")

    def test_malformed_window_is_invalid(self):
        with pytest.raises(InvalidCommand, match="invalid <> command"):
            peel_context_marker("<x> hi")

    def test_only_one_marker_is_peeled(self):
        assert peel_context_marker("> <3> hi") == (None, True, "<3> hi")


class TestParseMessage:
    """Full peeling order."""

    def test_all_prefixes(self):
        parsed = parse_message("/fast #raw#lang:en <5> hello")
        assert parsed.name == "fast"
        assert list(parsed.tags) == ["raw", "lang", "context"]
        assert parsed.labels == {"raw": None, "lang": "en", "context": "5"}
        assert parsed.remainder == "hello"

    def test_plain_message(self):
        parsed = parse_message("hello there")
        assert parsed.name == ""
        assert parsed.tags == {}
        assert parsed.remainder == "hello there"

    def test_quote_adds_context_tag_without_label(self):
        parsed = parse_message("> continue")
        assert "context" in parsed.tags
        assert "context" not in parsed.labels

    def test_duplicate_tags_keep_first_position(self):
        parsed = parse_message("#a#b#a hi")
        assert list(parsed.tags) == ["a", "b"]


class TestMatchArgs:
    """Handler argument patterns."""

    def test_match(self):
        assert match_args(r"set\s+(\S+)\s+(.+)", "set k v w", "set").groups() == ("k", "v w")

    def test_mismatch_names_command(self):
        with pytest.raises(InvalidCommand, match="invalid set command"):
            match_args(r"set\s+(\S+)\s+(.+)", "set", "set")
