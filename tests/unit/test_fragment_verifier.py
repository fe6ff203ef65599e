from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from jigsaw_server.config.settings import Settings
from jigsaw_server.models.evidence import FragmentType, Jurisdiction, RawInput
from jigsaw_server.models.verification import AnomalyType, RejectionCategory
from jigsaw_server.services.errors import MalformedInputError
from jigsaw_server.services.identity import SeededIdentifierSource
from jigsaw_server.services.verification.verifier import FragmentVerifier


@pytest.fixture
def verifier(identifiers, clock, config):
    return FragmentVerifier(identifiers=identifiers, clock=clock, config=config)


def test_accepted_input_becomes_fragment(verifier, make_input, context):
    outcome = verifier.verify_input(make_input(), context, fragment_id="TF-fixed")

    assert not outcome.rejected
    assert outcome.is_real and outcome.is_true and outcome.is_needed
    assert outcome.verification_level == 10
    assert outcome.confidence == pytest.approx(79.891, abs=0.01)
    assert outcome.reasoning.overall_assessment.startswith("VERIFIED: Level 10/10")

    fragment = outcome.fragment
    assert fragment.id == "TF-fixed"
    assert fragment.input_id == "input-001"
    assert fragment.fragment_type == FragmentType.FINANCIAL_TRACE
    # One entry per provenance hand-off plus the verifier's own.
    assert len(fragment.chain_of_custody) == 2
    assert fragment.chain_of_custody[-1].action == "verification"
    assert fragment.chain_of_custody[-1].location == verifier.engine_id


def test_out_of_jurisdiction_is_not_true(verifier, make_input, context, now):
    outcome = verifier.verify_input(make_input(jurisdiction=Jurisdiction.ES), context)

    assert outcome.rejected
    assert outcome.fragment is None
    assert outcome.rejection_category == RejectionCategory.NOT_TRUE
    assert outcome.verification_level == 8
    assert outcome.reasoning.overall_assessment.startswith("REJECTED:")

    item = verifier.review_item(outcome, now)
    assert item.priority == 8
    assert item.deadline == now + timedelta(hours=72)
    assert item.required_expertise == ["General Verification", "Document Analysis"]


def test_future_timestamp_escalates_review(verifier, make_input, context, now):
    outcome = verifier.verify_input(make_input(timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc)), context)

    assert outcome.rejection_category == RejectionCategory.NOT_REAL
    assert outcome.verification_level == 7
    assert AnomalyType.TEMPORAL in [anomaly.type for anomaly in outcome.reasoning.anomalies]

    item = verifier.review_item(outcome, now)
    assert item.priority == 10
    assert item.deadline == now + timedelta(hours=24)
    assert "Timeline Analysis" in item.required_expertise


def test_first_failing_stage_names_the_category(verifier, make_input, context):
    outcome = verifier.verify_input(make_input(source="", jurisdiction=Jurisdiction.ES), context)

    assert outcome.rejection_category == RejectionCategory.NOT_REAL
    assert outcome.rejection_reason.count("; ") == 1


def test_irrelevant_input_is_not_needed(identifiers, clock, make_input, context):
    strict = FragmentVerifier(
        identifiers=identifiers,
        clock=clock,
        config=Settings(NECESSITY_RELEVANCE_THRESHOLD=85),
    )
    raw = make_input(
        source_type="cave_carving",
        content="Carving depicts a long journey across the northern hills",
    )

    outcome = strict.verify_input(raw, context)

    assert outcome.rejection_category == RejectionCategory.NOT_NEEDED
    assert not outcome.is_needed


@pytest.mark.asyncio
async def test_empty_sources_are_all_rejected(verifier, make_input, context):
    inputs = [make_input(f"input-{n}", source="") for n in range(3)]

    batch = await verifier.verify(inputs, context)

    assert batch.fragments == []
    assert [rejection.category for rejection in batch.rejections] == [RejectionCategory.NOT_REAL] * 3
    assert batch.summary.total_inputs == 3
    assert batch.summary.rejected == 3
    assert batch.summary.pending_human_review == len(batch.human_review)


@pytest.mark.asyncio
async def test_batch_summary_and_order(verifier, make_input, context):
    inputs = [
        make_input("input-a"),
        make_input("input-b", jurisdiction=Jurisdiction.ES),
        make_input("input-c", source_type="witness_statement"),
    ]

    batch = await verifier.verify(inputs, context)

    assert [outcome.input_id for outcome in batch.outcomes] == ["input-a", "input-b", "input-c"]
    assert [fragment.input_id for fragment in batch.fragments] == ["input-a", "input-c"]
    assert batch.summary.verified + batch.summary.rejected == batch.summary.total_inputs
    assert sum(batch.summary.level_distribution.values()) == 3
    assert set(batch.summary.level_distribution) == set(range(1, 11))
    assert len(batch.engine_signature) == 128


@pytest.mark.asyncio
async def test_duplicate_ids_are_malformed(verifier, make_input, context):
    with pytest.raises(MalformedInputError):
        await verifier.verify([make_input("dup"), make_input("dup")], context)


@pytest.mark.asyncio
async def test_seeded_runs_are_reproducible(clock, config, make_input, context):
    inputs = [make_input(f"input-{n}") for n in range(5)]

    first = await FragmentVerifier(SeededIdentifierSource(11), clock, config=config).verify(inputs, context)
    second = await FragmentVerifier(SeededIdentifierSource(11), clock, config=config).verify(inputs, context)

    assert [f.id for f in first.fragments] == [f.id for f in second.fragments]
    assert first.engine_signature == second.engine_signature


def test_missing_required_field_fails_validation():
    with pytest.raises(ValidationError):
        RawInput(id="input-x", source="CRO", source_type="financial_record", jurisdiction="IE")
