"""Query description: ``QuerySpec`` and its filter terms."""

from .filters import Comparison, Equality, FilterTerm, Raw, membership
from .spec import DEFAULT_LIMIT, MAX_LIMIT, Join, QuerySpec

__all__ = [
    "Comparison",
    "Equality",
    "FilterTerm",
    "Raw",
    "membership",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "Join",
    "QuerySpec",
]
