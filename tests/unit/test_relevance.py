import pytest

from jigsaw_server.models.evidence import CaseType, SourceType
from jigsaw_server.services.verification import relevance
from jigsaw_server.services.verification.relevance import RelevanceTableError, load_relevance_tables


def test_defaults_cover_every_case_type(tmp_path):
    tables = load_relevance_tables(tmp_path / "missing.yaml")

    assert set(tables) == set(CaseType)
    assert tables[CaseType.FRAUD] == frozenset(
        {
            SourceType.FINANCIAL_RECORD,
            SourceType.LEGAL_DOCUMENT,
            SourceType.CORPORATE_RECORD,
            SourceType.DIGITAL_TRACE,
        }
    )


def test_yaml_override_replaces_only_named_case_types(tmp_path):
    path = tmp_path / "relevance.yaml"
    path.write_text(
        "case_types:\n"
        "  fraud:\n"
        "    - witness_statement\n"
        "  missing_asset: []\n",
        encoding="utf-8",
    )

    tables = load_relevance_tables(path)

    assert tables[CaseType.FRAUD] == frozenset({SourceType.WITNESS_STATEMENT})
    assert tables[CaseType.MISSING_ASSET] == frozenset()
    assert SourceType.FINANCIAL_RECORD in tables[CaseType.CORRUPTION]


def test_unknown_names_raise(tmp_path):
    path = tmp_path / "relevance.yaml"
    path.write_text("case_types:\n  fraud:\n    - tea_leaves\n", encoding="utf-8")

    with pytest.raises(RelevanceTableError):
        load_relevance_tables(path)

    path.write_text("case_types:\n  burglary: [financial_record]\n", encoding="utf-8")
    with pytest.raises(RelevanceTableError):
        load_relevance_tables(path)


def test_settings_path_is_used_when_none_given(tmp_path, monkeypatch):
    path = tmp_path / "override.yaml"
    path.write_text("case_types:\n  corruption: [osint_collection]\n", encoding="utf-8")
    monkeypatch.setattr(relevance.settings, "RELEVANCE_TABLE_FILE", str(path))

    tables = load_relevance_tables()

    assert tables[CaseType.CORRUPTION] == frozenset({SourceType.OSINT_COLLECTION})
