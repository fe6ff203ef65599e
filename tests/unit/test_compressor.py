import pytest

from jigsaw_server.models.component import PlacementState, Topology
from jigsaw_server.models.evidence import FragmentType
from jigsaw_server.services.assembly.compressor import (
    ComponentCompressor,
    component_weight,
    shape_complexity,
    shape_fingerprint,
)
from jigsaw_server.services.identity import SeededIdentifierSource


@pytest.fixture
def compressor(identifiers, clock, config):
    return ComponentCompressor(identifiers=identifiers, clock=clock, config=config)


def test_level_below_gate_is_excluded(compressor, make_fragment):
    low = make_fragment("TF-low", level=3)
    fake = make_fragment("TF-fake", is_real=False)
    kept = make_fragment("TF-kept", level=5)

    components = compressor.compress_all([low, fake, kept])

    assert [component.fragment_id for component in components] == ["TF-kept"]
    with pytest.raises(ValueError):
        compressor.compress(low)


def test_gate_log_separates_exclusion_reasons(compressor, make_fragment, caplog):
    fragments = [
        make_fragment("TF-low", level=3),
        make_fragment("TF-untrue", is_true=False),
        make_fragment("TF-unneeded", is_needed=False, level=2),
        make_fragment("TF-kept"),
    ]

    with caplog.at_level("INFO", logger="jigsaw_server.services.assembly.compressor"):
        compressor.compress_all(fragments)

    assert "3 fragments excluded at reconstruction gate" in caplog.text
    assert "2 failed verification checks" in caplog.text
    assert "1 below level 5" in caplog.text


@pytest.mark.parametrize(
    "fragment_type,topology,symmetric",
    [
        (FragmentType.TEMPORAL_MARKER, Topology.EDGE, True),
        (FragmentType.LOCATION_DATA, Topology.CORNER, True),
        (FragmentType.RELATIONSHIP_LINK, Topology.BRIDGE, False),
        (FragmentType.FINANCIAL_TRACE, Topology.INTERIOR, False),
        (FragmentType.SURVIVOR_TESTIMONY, Topology.KEYSTONE, False),
        (FragmentType.ORAL_HISTORY, Topology.INTERIOR, False),
    ],
)
def test_shape_topology(compressor, make_fragment, fragment_type, topology, symmetric):
    shape = compressor.shape_for(make_fragment(fragment_type=fragment_type))

    assert shape.topology == topology
    assert shape.symmetry is symmetric


def test_complexity_is_clamped():
    assert shape_complexity(9, 95) == 10
    assert shape_complexity(5, 50) == 5
    assert shape_complexity(1, 0) == 1
    assert shape_complexity(10, 100) == 10


def test_weight(make_fragment):
    assert component_weight(make_fragment()) == 100
    financial = make_fragment(fragment_type=FragmentType.FINANCIAL_TRACE, level=5, confidence=60, custody=False)
    assert component_weight(financial) == pytest.approx(56)


def test_fingerprint_is_stable_across_engines(clock, config, make_fragment):
    fragment = make_fragment()
    first = ComponentCompressor(SeededIdentifierSource(1), clock, config).compress(fragment)
    second = ComponentCompressor(SeededIdentifierSource(2), clock, config).compress(fragment)

    assert first.shape.fingerprint == second.shape.fingerprint == shape_fingerprint(fragment)
    assert first.hash == second.hash
    assert first.provenance_signature != second.provenance_signature


def test_components_are_unplaced_and_unique(compressor, make_fragment):
    fragments = [make_fragment(f"TF-{n}") for n in range(4)]
    components = compressor.compress_all(fragments)

    assert len({component.id for component in components}) == 4
    assert len({component.hash for component in components}) == 4
    for component, fragment in zip(components, fragments):
        assert component.fragment_id == fragment.id
        assert component.fragment_type == fragment.fragment_type.value
        assert component.placement_state == PlacementState.UNPLACED
        assert component.position is None and not component.locked
        assert component.edges == []
        assert len(component.provenance_signature) == 128
