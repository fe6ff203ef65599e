"""Case-type relevance tables used by the necessity checks."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, FrozenSet, Optional

import yaml

from jigsaw_server.config.settings import settings
from jigsaw_server.models.evidence import CaseType, SourceType

_RELEVANCE_FILE = Path(__file__).resolve().parent.parent.parent / "config" / "case_relevance.yaml"


class RelevanceTableError(ValueError):
    """Raised when a relevance override file names unknown case or source types."""


def _default_tables() -> Dict[CaseType, FrozenSet[SourceType]]:
    S = SourceType
    return {
        CaseType.FRAUD: frozenset({S.FINANCIAL_RECORD, S.LEGAL_DOCUMENT, S.CORPORATE_RECORD, S.DIGITAL_TRACE}),
        CaseType.MISSING_PERSON: frozenset(
            {S.WITNESS_STATEMENT, S.SURVEILLANCE_DATA, S.DIGITAL_TRACE, S.COMMUNICATION_INTERCEPT}
        ),
        CaseType.PREDATORY_LENDING: frozenset({S.FINANCIAL_RECORD, S.LEGAL_DOCUMENT, S.CORPORATE_RECORD}),
        CaseType.CORRUPTION: frozenset({S.FINANCIAL_RECORD, S.GOVERNMENT_DATABASE, S.COMMUNICATION_INTERCEPT}),
        CaseType.MISSING_ASSET: frozenset({S.FINANCIAL_RECORD, S.LEGAL_DOCUMENT, S.GOVERNMENT_DATABASE}),
        CaseType.HIDDEN_WEALTH: frozenset(
            {S.FINANCIAL_RECORD, S.CORPORATE_RECORD, S.GOVERNMENT_DATABASE, S.OSINT_COLLECTION}
        ),
        CaseType.FINANCIAL_CRIME: frozenset(
            {S.FINANCIAL_RECORD, S.CORPORATE_RECORD, S.COMMUNICATION_INTERCEPT, S.DIGITAL_TRACE}
        ),
        CaseType.IDENTITY_THEFT: frozenset({S.DIGITAL_TRACE, S.FINANCIAL_RECORD, S.OSINT_COLLECTION}),
        CaseType.MONEY_LAUNDERING: frozenset(
            {S.FINANCIAL_RECORD, S.CORPORATE_RECORD, S.GOVERNMENT_DATABASE, S.COMMUNICATION_INTERCEPT}
        ),
        CaseType.ASSET_TRACING: frozenset(
            {S.FINANCIAL_RECORD, S.LEGAL_DOCUMENT, S.GOVERNMENT_DATABASE, S.CORPORATE_RECORD}
        ),
        CaseType.WITNESS_PROTECTION: frozenset({S.WITNESS_STATEMENT, S.COMMUNICATION_INTERCEPT, S.SURVEILLANCE_DATA}),
        CaseType.HISTORICAL_INVESTIGATION: frozenset(
            {S.CAVE_CARVING, S.ANCIENT_MANUSCRIPT, S.HISTORICAL_ARCHIVE, S.ORAL_TRADITION, S.WRITTEN_RECORD}
        ),
    }


def _load_relevance_file(path: Path) -> Dict[CaseType, FrozenSet[SourceType]]:
    if not path.exists():
        return {}

    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    tables: Dict[CaseType, FrozenSet[SourceType]] = {}
    for case_name, source_names in (data.get("case_types") or {}).items():
        try:
            case_type = CaseType(case_name)
            sources = frozenset(SourceType(name) for name in (source_names or []))
        except ValueError as exc:
            raise RelevanceTableError(f"Invalid relevance entry for '{case_name}' in {path}: {exc}") from exc
        tables[case_type] = sources
    return tables


def load_relevance_tables(path: Optional[Path] = None) -> Dict[CaseType, FrozenSet[SourceType]]:
    """Built-in tables with per-case-type overrides from the YAML file applied."""

    if path is None:
        path = Path(settings.RELEVANCE_TABLE_FILE) if settings.RELEVANCE_TABLE_FILE else _RELEVANCE_FILE

    tables = _default_tables()
    tables.update(_load_relevance_file(path))
    return tables


__all__ = [
    "RelevanceTableError",
    "load_relevance_tables",
]
