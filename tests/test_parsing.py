"""Tests for the parsing module."""

from team_balancer.parsing import (
    clean_name,
    parse_newline_separated,
    parse_numbered_list,
    parse_participant_names,
    split_valid_names,
)


class TestCleanName:
    """Test cases for name cleaning."""

    def test_collapses_whitespace(self):
        assert clean_name("  Ana   Maria  ") == "Ana Maria"

    def test_strips_edge_punctuation(self):
        assert clean_name("- Bia .") == "Bia"

    def test_empty(self):
        assert clean_name("") is None
        assert clean_name(None) is None
        assert clean_name(" -. ") is None

    def test_too_long(self):
        assert clean_name("x" * 51) is None
        assert clean_name("x" * 50) == "x" * 50


class TestParseParticipantNames:
    """Test cases for pasted participant lists."""

    def test_numbered_list(self):
        text = "1. Ana\n2) Bia\n3 - Caio\n\n4 Duda"
        assert parse_numbered_list(text) == ["Ana", "Bia", "Caio", "Duda"]

    def test_numbered_list_skips_other_lines(self):
        text = "Thursday game\n1. Ana\n2. Bia"
        assert parse_participant_names(text) == ["Ana", "Bia"]

    def test_newline_separated(self):
        text = "Ana\n\n  Bia \nCaio"
        assert parse_newline_separated(text) == ["Ana", "Bia", "Caio"]
        assert parse_participant_names(text) == ["Ana", "Bia", "Caio"]

    def test_blank_input(self):
        assert parse_participant_names("") == []
        assert parse_participant_names("   \n  ") == []

    def test_split_valid_names(self):
        valid, invalid = split_valid_names(["Ana", "  ", "x" * 60, " Bia "])
        assert valid == ["Ana", "Bia"]
        assert invalid == ["  ", "x" * 60]
