from datetime import datetime, timezone

import pytest

from jigsaw_server.models.evidence import CaseType, Jurisdiction, SourceType
from jigsaw_server.models.verification import AnomalySeverity, AnomalyType
from jigsaw_server.services.verification import checks
from jigsaw_server.services.verification.relevance import load_relevance_tables


def test_reality_checks_pass_for_well_formed_input(make_input, now, config):
    raw = make_input()
    results = checks.reality_checks(raw, now, config)

    assert len(results) == 5
    assert all(result.passed for result in results)
    assert results[1].confidence == pytest.approx(min(100.0, len(raw.content) / 10))
    assert checks.is_real(results, config)


def test_empty_source_fails_reality(make_input, now, config):
    results = checks.reality_checks(make_input(source=""), now, config)

    assert not results[0].passed
    assert results[0].confidence == 0
    assert not checks.is_real(results, config)


def test_short_content_is_not_substantive(make_input, now, config):
    results = checks.reality_checks(make_input(content="too short"), now, config)
    assert not results[1].passed


def test_unknown_source_type_fails_reality(make_input, now, config):
    results = checks.reality_checks(make_input(source_type="rumour"), now, config)

    assert not results[4].passed
    assert results[4].confidence == 0


@pytest.mark.parametrize(
    "timestamp",
    [
        datetime(2026, 1, 1, tzinfo=timezone.utc),
        datetime(1899, 12, 31, tzinfo=timezone.utc),
    ],
)
def test_timestamp_outside_valid_range(make_input, now, config, timestamp):
    results = checks.reality_checks(make_input(timestamp=timestamp), now, config)

    assert not results[2].passed
    assert results[2].confidence == 10


def test_truth_checks_for_consistent_input(make_input, context, config):
    results = checks.truth_checks(make_input(), context)

    assert [result.passed for result in results] == [True, True, True, True]
    assert results[1].confidence == 20
    assert checks.is_true(results, config)


def test_unverified_provenance_drags_truth_confidence_below_threshold(make_input, context, config):
    raw = make_input()
    unverified = make_input(provenance=[raw.provenance[0].model_copy(update={"verified": False})])
    results = checks.truth_checks(unverified, context)

    assert not results[1].passed
    assert results[1].contradictions == []
    assert not checks.is_true(results, config)


def test_jurisdiction_and_timeline_contradictions(make_input, context, config):
    raw = make_input(
        jurisdiction=Jurisdiction.ES,
        timestamp=datetime(2019, 5, 1, tzinfo=timezone.utc),
    )
    results = checks.truth_checks(raw, context)

    assert results[2].contradictions == ["Outside case timeline"]
    assert results[3].contradictions == ["Invalid jurisdiction: ES"]
    assert not checks.is_true(results, config)


def test_relevance_score_adds_table_verification_and_recency(make_input, now, config):
    tables = load_relevance_tables()
    raw = make_input()

    assert checks.relevance_score(raw, CaseType.FRAUD, tables, now, config) == 100

    old = make_input(timestamp=datetime(2021, 1, 1, tzinfo=timezone.utc))
    assert checks.relevance_score(old, CaseType.FRAUD, tables, now, config) == 95

    unlisted = make_input(source_type=SourceType.CAVE_CARVING.value, provenance=[])
    assert checks.relevance_score(unlisted, CaseType.FRAUD, tables, now, config) == 60


@pytest.mark.parametrize(
    "content,expected",
    [
        ("Wire sent from AB1234567 yesterday", "account_number"),
        ("Card 4111 1111 1111 1111 was used", "card_number"),
        ("Contact was made via tip@example.org", "email"),
        ("Login from 192.168.1.20 at midnight", "ip_address"),
        ("Funds moved to NO9386011117947 abroad", "iban"),
    ],
)
def test_actionable_patterns(content, expected):
    assert expected in checks.find_actionable(content)


def test_necessity_mentions_matched_hints(make_input, context, now, config):
    results = checks.necessity_checks(make_input(), context, load_relevance_tables(), now, config)

    assert results[0].needed
    assert "director" in results[0].reason
    assert results[1].needed and results[1].relevance == 80
    assert results[2].needed and results[2].relevance == 90
    assert checks.is_needed(results, config)


def test_cross_references_include_case_entry(make_input, context):
    references = checks.cross_references(make_input(), context)

    assert len(references) == 2
    assert references[0].match_score == 90
    assert references[-1].source_id == context.case_id
    assert references[-1].match_score == 85


def test_anomalies_for_future_timestamp_and_many_failures(make_input, now, config, context):
    raw = make_input(
        source="",
        content="short",
        provenance=[],
        timestamp=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )
    reality = checks.reality_checks(raw, now, config)
    truth = checks.truth_checks(raw, context)
    anomalies = checks.detect_anomalies(raw, reality, truth, now)

    temporal = [a for a in anomalies if a.type == AnomalyType.TEMPORAL]
    logical = [a for a in anomalies if a.type == AnomalyType.LOGICAL]
    assert temporal[0].severity == AnomalySeverity.CRITICAL
    assert temporal[0].requires_human_review
    assert logical[0].severity == AnomalySeverity.HIGH
    assert logical[0].requires_human_review


def test_single_reality_failure_is_medium_without_review(make_input, now, config, context):
    raw = make_input(source="")
    reality = checks.reality_checks(raw, now, config)
    anomalies = checks.detect_anomalies(raw, reality, checks.truth_checks(raw, context), now)

    assert len(anomalies) == 1
    assert anomalies[0].severity == AnomalySeverity.MEDIUM
    assert not anomalies[0].requires_human_review


def test_contradictions_raise_documentary_anomaly(make_input, now, config, context):
    raw = make_input(jurisdiction=Jurisdiction.EU)
    reality = checks.reality_checks(raw, now, config)
    anomalies = checks.detect_anomalies(raw, reality, checks.truth_checks(raw, context), now)

    assert [a.type for a in anomalies] == [AnomalyType.DOCUMENTARY]
    assert anomalies[0].severity == AnomalySeverity.HIGH
    assert anomalies[0].requires_human_review
