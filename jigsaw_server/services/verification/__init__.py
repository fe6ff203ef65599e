"""Fragment verification services package."""

from .relevance import (  # noqa: F401
    RelevanceTableError,
    load_relevance_tables,
)
from .verifier import (  # noqa: F401
    FragmentVerifier,
)

__all__ = [
    "RelevanceTableError",
    "load_relevance_tables",
    "FragmentVerifier",
]
