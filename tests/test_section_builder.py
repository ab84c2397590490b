"""Tests for clinidoc.section_builder."""
import pytest

from clinidoc.rules import headline1_rules, headline2_rules
from clinidoc.section_builder import build_sections, build_sections_from_text
from clinidoc.section_types import Section


@pytest.fixture
def h1():
    return headline1_rules()


@pytest.fixture
def h2():
    return headline2_rules()


class TestBuildSections:
    def test_two_document_types_one_patient(self, h1, h2) -> None:
        lines = [
            "NOME: JOHN SMITH",
            "Prontuário Médico",
            "line one",
            "line two",
            "Relatório Médico",
            "line three",
        ]
        assert build_sections(lines, h1, h2) == [
            Section("Nome: JOHN SMITH", "Prontuário Médico", "line one\nline two\n"),
            Section("Nome: JOHN SMITH", "Relatório Médico", "line three\n"),
        ]

    def test_body_after_h1_opens_title_section(self, h1, h2) -> None:
        assert build_sections(["Nome: A B", "texto", "mais"], h1, h2) == [
            Section("Nome: A B", "Título", "texto\nmais\n"),
        ]

    def test_lines_before_any_heading_dropped(self, h1, h2) -> None:
        out = build_sections(["solto", "Nome: X", "Laudo", "a"], h1, h2)
        assert out == [Section("Nome: X", "Laudo", "a\n")]

    def test_h2_before_any_h1(self, h1, h2) -> None:
        assert build_sections(["Laudo", "x"], h1, h2) == [Section(None, "Laudo", "x\n")]

    def test_empty_h2_section(self, h1, h2) -> None:
        out = build_sections(["Nome: X", "Laudo", "Receita", "r"], h1, h2)
        assert out == [
            Section("Nome: X", "Laudo", ""),
            Section("Nome: X", "Receita", "r\n"),
        ]

    def test_h1_without_content_yields_nothing(self, h1, h2) -> None:
        out = build_sections(["Nome: A", "Nome: B", "Laudo", "x"], h1, h2)
        assert out == [Section("Nome: B", "Laudo", "x\n")]

    def test_section_text_never_holds_label(self, h1, h2) -> None:
        out = build_sections(["Nome: X", "Laudo", "a"], h1, h2)
        assert all(s.headline2 not in s.text for s in out)

    def test_empty_input(self, h1, h2) -> None:
        assert build_sections([], h1, h2) == []


class TestLimitToOneH2:
    def test_later_h2_lines_ignored(self, h1, h2) -> None:
        lines = ["Nome: X", "Laudo A", "a", "Laudo B", "b"]
        assert build_sections(lines, h1, h2, limit_to_one_h2=True) == [
            Section("Nome: X", "Laudo A", "a\nb\n"),
        ]


class TestEnsureH1Sections:
    def test_every_patient_gets_a_section(self, h1, h2) -> None:
        lines = ["Nome: A", "Nome: B", "Laudo", "x", "Nome: C"]
        assert build_sections(lines, h1, h2, ensure_h1_sections=True) == [
            Section("Nome: A", "Documento Indefinido", ""),
            Section("Nome: B", "Laudo", "x\n"),
            Section("Nome: C", "Documento Indefinido", ""),
        ]

    def test_whitespace_lines_skipped(self, h1, h2) -> None:
        lines = ["Nome: A", "   ", "texto"]
        assert build_sections(lines, h1, h2, ensure_h1_sections=True) == [
            Section("Nome: A", "Título", "texto\n"),
        ]

    def test_whitespace_lines_kept_by_default(self, h1, h2) -> None:
        lines = ["Nome: A", "   ", "texto"]
        assert build_sections(lines, h1, h2) == [
            Section("Nome: A", "Título", "   \ntexto\n"),
        ]


class TestBuildFromText:
    def test_preprocessing_applied(self, h1, h2) -> None:
        text = "NOME: JOHN SMITH\r\n\r\nProntuário Médico\n  line one\n"
        assert build_sections_from_text(text, h1, h2) == [
            Section("Nome: JOHN SMITH", "Prontuário Médico", "line one\n"),
        ]

    def test_uppercase_first_line_becomes_patient(self, h1, h2) -> None:
        out = build_sections_from_text("JOHN SMITH\nLaudo\nx", h1, h2)
        assert out == [Section("Nome: JOHN SMITH", "Laudo", "x\n")]

    def test_placeholders_not_expanded(self, h1, h2) -> None:
        out = build_sections_from_text("Nome: ana\nLaudo\n{Nome}", h1, h2)
        assert out[0].text == "{Nome}\n"
