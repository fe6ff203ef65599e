import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT))

from jigsaw_server.config.settings import Settings  # noqa: E402
from jigsaw_server.models.component import (  # noqa: E402
    Component,
    ComponentShape,
    Direction,
    Edge,
    Topology,
)
from jigsaw_server.models.evidence import (  # noqa: E402
    CaseContext,
    CaseType,
    ChainOfCustodyEntry,
    Fragment,
    FragmentType,
    Jurisdiction,
    ProvenanceRecord,
    RawInput,
)
from jigsaw_server.services.identity import FixedClock, SeededIdentifierSource  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

CONTENT = (
    "Transfer of 250,000 EUR to a shell company; the director confirmed by mail "
    "to director@shellco.ie two days before the account was closed"
)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def identifiers():
    return SeededIdentifierSource(7)


@pytest.fixture
def config():
    return Settings()


@pytest.fixture
def context():
    return CaseContext(
        case_id="CASE-001",
        case_type=CaseType.FRAUD,
        start_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
        jurisdictions=[Jurisdiction.IE, Jurisdiction.UK],
        subjects=["Shellco"],
        keywords=["director"],
    )


@pytest.fixture
def make_input():
    def _make(input_id="input-001", **overrides):
        values = {
            "id": input_id,
            "source": "Companies Registration Office",
            "source_type": "financial_record",
            "content": CONTENT,
            "timestamp": datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc),
            "jurisdiction": Jurisdiction.IE,
            "provenance": [
                ProvenanceRecord(
                    timestamp=datetime(2025, 3, 2, 10, 0, tzinfo=timezone.utc),
                    source="CRO portal",
                    method="registry_download",
                    handler="analyst-7",
                    verified=True,
                )
            ],
        }
        values.update(overrides)
        return RawInput(**values)

    return _make


@pytest.fixture
def make_fragment():
    def _make(
        fragment_id="TF-1",
        fragment_type=FragmentType.SURVIVOR_TESTIMONY,
        level=9,
        confidence=95.0,
        custody=True,
        **overrides,
    ):
        timestamp = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        values = {
            "id": fragment_id,
            "fragment_type": fragment_type,
            "content": f"Statement recorded for {fragment_id}",
            "source": "Garda station",
            "verification_level": level,
            "confidence": confidence,
            "timestamp": timestamp,
            "jurisdiction": Jurisdiction.IE,
            "chain_of_custody": [
                ChainOfCustodyEntry(
                    timestamp=timestamp,
                    handler="analyst-7",
                    action="interview",
                    location="Garda station",
                    hash="0" * 64,
                )
            ]
            if custody
            else [],
            "is_real": True,
            "is_true": True,
            "is_needed": True,
        }
        values.update(overrides)
        return Fragment(**values)

    return _make


@pytest.fixture
def make_component():
    """Hand-built component; ``links`` maps direction -> compatible ids."""

    def _make(component_id, weight=50.0, links=None, topology=Topology.INTERIOR, complexity=5, strength=80.0):
        links = links or {}
        edges = [
            Edge(
                direction=direction,
                pattern=f"{component_id[:4]}{direction.value[:4]}",
                strength=strength,
                compatible_with=list(links.get(direction, [])),
            )
            for direction in Direction
        ]
        return Component(
            id=component_id,
            fragment_id=f"TF-{component_id}",
            fragment_type="financial_trace",
            shape=ComponentShape(topology=topology, complexity=complexity, symmetry=False, fingerprint=component_id),
            weight=weight,
            edges=edges,
            hash=f"hash-{component_id}",
            provenance_signature=f"sig-{component_id}",
            compression_ratio=1.0,
        )

    return _make
