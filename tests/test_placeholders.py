"""Tests for clinidoc.placeholders."""
from datetime import datetime

import pytest

from clinidoc.placeholders import (
    CLOSING_SENTENCE,
    apply_placeholders,
    default_placeholder_rules,
    first_name,
    full_name,
    rounded_clock,
)
from clinidoc.section_types import PlaceholderRule


class TestRoundedClock:
    @pytest.mark.parametrize(
        ("hour", "minute", "expected"),
        [
            (10, 0, "10:00"),
            (10, 7, "10:15"),
            (10, 15, "10:15"),
            (10, 46, "11:00"),
            (9, 59, "10:00"),
            (23, 50, "00:00"),
        ],
    )
    def test_rounds_up(self, hour: int, minute: int, expected: str) -> None:
        assert rounded_clock(datetime(2024, 1, 1, hour, minute)) == expected


class TestNameReplacements:
    def test_first_name(self) -> None:
        assert first_name("Maria Da Silva") == "Maria"
        assert first_name(None) == "Nome"

    def test_full_name(self) -> None:
        assert full_name("Maria Da Silva") == "Maria Da Silva"
        assert full_name(None) == "Nome Completo"


class TestApplyPlaceholders:
    def test_case_insensitive_all_occurrences(self) -> None:
        rules = [PlaceholderRule("{Nome}", first_name)]
        assert apply_placeholders("{nome} e {NOME}", rules, "Ana Lima") == "Ana e Ana"

    def test_rules_apply_in_order(self) -> None:
        rules = [PlaceholderRule("{a}", "{b}"), PlaceholderRule("{b}", "x")]
        assert apply_placeholders("{a}", rules, None) == "x"

    def test_replacement_taken_literally(self) -> None:
        rules = [PlaceholderRule("{p}", r"\1 $0")]
        assert apply_placeholders("{p}", rules, None) == r"\1 $0"

    def test_match_text_is_not_a_regex(self) -> None:
        rules = [PlaceholderRule("a.b", "X")]
        assert apply_placeholders("a.b axb", rules, None) == "X axb"


class TestDefaultRules:
    def test_closing_and_shortcuts(self) -> None:
        rules = default_placeholder_rules()
        assert apply_placeholders("{À}", rules, None) == CLOSING_SENTENCE
        assert apply_placeholders("{relatório médico}", rules, None) == "Relatório Médico"

    def test_configured_values(self) -> None:
        rules = default_placeholder_rules({"secretary13": "Joana"})
        line = "{Secretária do consultório 13}/{Secretária do consultório 12}"
        assert apply_placeholders(line, rules, None) == "Joana/"

    def test_nome_completo_not_clobbered_by_nome(self) -> None:
        rules = default_placeholder_rules()
        assert apply_placeholders("{Nome Completo}", rules, "Ana Lima") == "Ana Lima"
