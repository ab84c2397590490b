"""Tests for clinidoc.section_store."""
import unicodedata

import pytest

from clinidoc.rules import headline1_rules, headline2_rules
from clinidoc.section_store import SectionStore, strip_label_echo
from clinidoc.section_types import HeadlinePair, OverridePair, Section

JOHN = "Nome: JOHN SMITH"
DOC = "NOME: JOHN SMITH\nProntuário Médico\nline one\nline two\nRelatório Médico\nline three"


@pytest.fixture
def store() -> SectionStore:
    return SectionStore.from_text(DOC, headline1_rules(), headline2_rules())


class TestStripLabelEcho:
    def test_leading_label_removed(self) -> None:
        assert strip_label_echo("Laudo X\nbody", "Laudo X") == "body"

    def test_only_label_left(self) -> None:
        assert strip_label_echo("  Laudo X  \n  ", "Laudo X") == ""

    def test_single_newline_dropped(self) -> None:
        assert strip_label_echo("\n\nLaudo\n\ntext", "Laudo") == "\ntext"

    def test_label_prefix_of_word(self) -> None:
        assert strip_label_echo("Laudo Xtra", "Laudo X") == "tra"

    def test_no_echo(self) -> None:
        assert strip_label_echo("body", "Laudo") == "body"
        assert strip_label_echo("body", "") == "body"


class TestConstruction:
    def test_from_text(self, store: SectionStore) -> None:
        assert store.sections == (
            Section(JOHN, "Prontuário Médico", "line one\nline two\n"),
            Section(JOHN, "Relatório Médico", "line three\n"),
        )
        assert len(store) == 2
        assert list(store) == list(store.sections)

    def test_from_selection_captures_one_block(self) -> None:
        sel = SectionStore.from_selection(
            "Nome: X\nLaudo A\na\nLaudo B\nb", headline1_rules(), headline2_rules(),
        )
        assert sel.sections == (Section("Nome: X", "Laudo A", "a\nb\n"),)

    def test_override_pairs_kept(self) -> None:
        pairs = (OverridePair("A", "B"),)
        s = SectionStore.from_text(DOC, headline1_rules(), headline2_rules(), override_pairs=pairs)
        assert s.override_pairs == pairs

    def test_repr(self, store: SectionStore) -> None:
        assert repr(store) == "SectionStore(2 sections)"


class TestQueries:
    def test_content_for(self, store: SectionStore) -> None:
        assert store.content_for(JOHN, "Relatório Médico") == "line three\n"

    def test_content_for_missing_is_none(self, store: SectionStore) -> None:
        assert store.content_for(JOHN, "Não Existe") is None
        assert store.content_for("Nome: OUTRO", "Relatório Médico") is None

    def test_content_for_empty_section(self) -> None:
        s = SectionStore([Section("Nome: X", "Laudo", "")])
        assert s.content_for("Nome: X", "Laudo") == ""

    def test_normalized_lookup(self, store: SectionStore) -> None:
        nfd = unicodedata.normalize("NFD", "  prontuário médico ")
        assert store.content_for("nome: john smith", nfd) == "line one\nline two\n"

    def test_unique_headline1s(self) -> None:
        s = SectionStore([
            Section("Nome: A", "x"), Section(None, "y"),
            Section("nome: a", "z"), Section("Nome: B", "x"),
        ])
        assert s.unique_headline1s() == ["Nome: A", "Nome: B"]

    def test_headline2s_for_dedupes(self) -> None:
        s = SectionStore([
            Section("Nome: A", "Laudo"), Section("Nome: A", "LAUDO"),
            Section("Nome: A", "Receita"), Section("Nome: B", "Atestado"),
        ])
        assert s.headline2s_for("Nome: A") == ["Laudo", "Receita"]

    def test_sections_for(self, store: SectionStore) -> None:
        assert len(store.sections_for(JOHN)) == 2
        assert store.sections_for("Nome: OUTRO") == []

    def test_augmented_content(self, store: SectionStore) -> None:
        assert store.augmented_content_for(JOHN) == (
            "Prontuário Médico\nline one\nline two\n\nRelatório Médico\nline three"
        )

    def test_augmented_content_missing(self, store: SectionStore) -> None:
        assert store.augmented_content_for("Nome: OUTRO") is None

    def test_headline_pairs(self, store: SectionStore) -> None:
        assert store.headline_pairs() == [
            HeadlinePair(JOHN, "Prontuário Médico"),
            HeadlinePair(JOHN, "Relatório Médico"),
        ]
        assert store.headline_pairs_with_content()[0].content == "line one\nline two"

    def test_lookups_by_label(self, store: SectionStore) -> None:
        assert store.has_headline2("relatório médico")
        assert not store.has_headline2("Laudo")
        assert store.headline1_for("Relatório Médico") == JOHN
        assert store.headline1_for("Laudo") is None
        assert store.first_headline2_for(JOHN) == "Prontuário Médico"
        assert store.first_headline2_for("Nome: OUTRO") is None
        assert store.first_text_for("Relatório Médico") == "line three\n"
        assert store.first_text_for("Laudo") is None


class TestCreateOrUpdate:
    def test_replace_same_label(self, store: SectionStore) -> None:
        outcome = store.create_or_update(
            "new text", JOHN, "Prontuário Médico", "Prontuário Médico",
        )
        assert outcome == "replaced"
        assert store.content_for(JOHN, "Prontuário Médico") == "new text"
        assert store.content_for(JOHN, "Relatório Médico") == "line three\n"

    def test_replace_is_idempotent(self, store: SectionStore) -> None:
        for _ in range(2):
            store.create_or_update("new text", JOHN, "Prontuário Médico", "Prontuário Médico")
        matching = [s for s in store if s.headline2 == "Prontuário Médico"]
        assert matching == [Section(JOHN, "Prontuário Médico", "new text")]

    def test_replace_removes_duplicates(self) -> None:
        s = SectionStore([Section("Nome: A", "Laudo", "1"), Section("Nome: A", "Laudo", "2")])
        s.create_or_update("3", "Nome: A", "Laudo", "Laudo")
        assert s.sections == (Section("Nome: A", "Laudo", "3"),)

    def test_append_keeps_existing(self, store: SectionStore) -> None:
        before = store.sections
        outcome = store.create_or_update("receita", JOHN, "Receita", "Prontuário Médico")
        assert outcome == "appended"
        assert store.sections[: len(before)] == before
        assert store.sections[-1] == Section(JOHN, "Receita", "receita")

    def test_append_without_from_label(self, store: SectionStore) -> None:
        assert store.create_or_update("x", JOHN, "Receita") == "appended"
        assert len(store) == 3

    def test_identical_triple_unchanged(self, store: SectionStore) -> None:
        outcome = store.create_or_update("line three\n", JOHN, "Relatório Médico")
        assert outcome == "unchanged"
        assert len(store) == 2

    def test_override_pair(self) -> None:
        s = SectionStore(
            [
                Section("Nome: A", "Prontuário Médico", "pm\n"),
                Section("Nome: A", "Prescrição de Óculos", "old\n"),
                Section("Nome: A", "Prescrição de Óculos", "older\n"),
            ],
            override_pairs=[OverridePair("Prontuário Médico", "Prescrição de Óculos")],
        )
        outcome = s.create_or_update(
            "new", "Nome: A", "Prescrição de Óculos", "Prontuário Médico",
        )
        assert outcome == "override"
        assert s.content_for("Nome: A", "Prontuário Médico") == "pm\n"
        assert [x.text for x in s if x.headline2 == "Prescrição de Óculos"] == ["new"]

    def test_without_override_pair_appends(self) -> None:
        s = SectionStore([
            Section("Nome: A", "Prontuário Médico", "pm\n"),
            Section("Nome: A", "Prescrição de Óculos", "old\n"),
        ])
        outcome = s.create_or_update(
            "new", "Nome: A", "Prescrição de Óculos", "Prontuário Médico",
        )
        assert outcome == "appended"
        assert len(s) == 3

    def test_echo_stripped_before_merge(self, store: SectionStore) -> None:
        store.create_or_update(
            "Prontuário Médico\nnew", JOHN, "Prontuário Médico", "Prontuário Médico",
        )
        assert store.content_for(JOHN, "Prontuário Médico") == "new"

    def test_other_patient_untouched(self) -> None:
        s = SectionStore([Section("Nome: A", "Laudo", "a"), Section("Nome: B", "Laudo", "b")])
        s.create_or_update("a2", "Nome: A", "Laudo", "Laudo")
        assert s.content_for("Nome: B", "Laudo") == "b"

    def test_case_variant_patient_keeps_stored_spelling(self, store: SectionStore) -> None:
        outcome = store.create_or_update(
            "novo", "Nome: John Smith", "Prontuário Médico", "Prontuário Médico",
        )
        assert outcome == "replaced"
        assert {s.headline1 for s in store} == {JOHN}
        assert store.to_grouped_text().count("SMITH") == 1

    def test_case_variant_append_stays_in_patient_group(self, store: SectionStore) -> None:
        assert store.create_or_update("r", " nome: john smith", "Receita") == "appended"
        assert store.sections[-1] == Section(JOHN, "Receita", "r")
        assert store.unique_headline1s() == [JOHN]
        assert store.to_grouped_text().count("SMITH") == 1

    def test_non_string_text_coerced(self, store: SectionStore) -> None:
        assert store.create_or_update(None, JOHN, "Receita") == "appended"  # type: ignore[arg-type]
        assert store.content_for(JOHN, "Receita") == ""
        store.create_or_update(123, JOHN, "Laudo", "Laudo")  # type: ignore[arg-type]
        assert store.content_for(JOHN, "Laudo") == "123"


class TestReorderAndSerialize:
    def test_group_and_reorder_returns_new_store(self, store: SectionStore) -> None:
        out = store.group_and_reorder(["Relatório Médico"])
        assert out is not store
        assert out.first_headline2_for(JOHN) == "Relatório Médico"
        assert store.first_headline2_for(JOHN) == "Prontuário Médico"

    def test_process_and_update(self) -> None:
        s = SectionStore([
            Section("Nome: A", "Relatório Médico", "r\n"),
            Section("Nome: A", "Prontuário Médico", "p\n"),
        ])
        text = s.process_and_update("q", "Nome: A", "Laudo")
        assert text == (
            "Nome: A\nProntuário Médico\np\n\n"
            "Nome: A\nRelatório Médico\nr\n\n"
            "Nome: A\nLaudo\nq"
        )
        assert s.first_headline2_for("Nome: A") == "Prontuário Médico"

    def test_text_views(self, store: SectionStore) -> None:
        assert store.to_grouped_text() == (
            "Nome: JOHN SMITH\nProntuário Médico\nline one\nline two\n"
            "Relatório Médico\nline three"
        )
        assert store.to_flat_text().count(JOHN) == 2
