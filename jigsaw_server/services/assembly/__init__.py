"""Jigsaw reconstruction services package."""

from .assembler import Assembler, Placement  # noqa: F401
from .compressor import ComponentCompressor  # noqa: F401
from .edge_engineer import EdgeEngineer, compatibility_matrix, shapes_can_connect  # noqa: F401
from .engine import ReconstructionEngine  # noqa: F401
from .gap_analyzer import ConclusionAnalyzer, GapAnalyzer  # noqa: F401
from .readiness import Readiness, ReadinessScorer  # noqa: F401

__all__ = [
    "Assembler",
    "Placement",
    "ComponentCompressor",
    "EdgeEngineer",
    "compatibility_matrix",
    "shapes_can_connect",
    "ReconstructionEngine",
    "ConclusionAnalyzer",
    "GapAnalyzer",
    "Readiness",
    "ReadinessScorer",
]
