"""Filter terms: the tagged variant a ``QuerySpec`` accumulates.

Each ``where()`` call shape maps to exactly one term type, so nothing
downstream has to inspect argument counts or list lengths:

==========================  ===========================================
Call                        Term
==========================  ===========================================
``where({"name": "Bob"})``  ``Equality("name", "Bob")`` per item
``where("name", "Bob")``    ``Equality("name", "Bob")``
``where("n", 100, ">")``    ``Comparison("n", ">", 100)``
``where("n > 100")``        ``Raw("n > 100")``
==========================  ===========================================
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from tessera.core.errors import ValidationError

OPERATORS = frozenset(
    {
        "=",
        "!=",
        "<>",
        "<",
        "<=",
        ">",
        ">=",
        "LIKE",
        "NOT LIKE",
        "IN",
        "NOT IN",
        "IS",
        "IS NOT",
    }
)

MEMBERSHIP_OPERATORS = frozenset({"IN", "NOT IN"})


@dataclass(frozen=True)
class Equality:
    """``column = value`` (``IS NULL`` when value is None)."""

    column: str
    value: Any

    def as_tuple(self) -> tuple[str, Any]:
        return (self.column, self.value)


@dataclass(frozen=True)
class Comparison:
    """``column <operator> value`` with an explicit operator.

    Raises:
        ValidationError: when the operator is not in ``OPERATORS``.
    """

    column: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.normalized_operator not in OPERATORS:
            raise ValidationError(
                f"Unsupported filter operator: {self.operator}",
                field=self.column,
                rule="operator",
            )

    @property
    def normalized_operator(self) -> str:
        return " ".join(self.operator.split()).upper()

    @property
    def is_membership(self) -> bool:
        return self.normalized_operator in MEMBERSHIP_OPERATORS

    def as_tuple(self) -> tuple[str, Any, str]:
        return (self.column, self.value, self.operator)


@dataclass(frozen=True)
class Raw:
    """A predicate appended verbatim."""

    text: str

    def as_tuple(self) -> tuple[str]:
        return (self.text,)


FilterTerm = Union[Equality, Comparison, Raw]


def membership(column: str, values: Sequence[Any]) -> Comparison:
    """``column IN (values)``."""
    return Comparison(column, "IN", tuple(values))


__all__ = [
    "OPERATORS",
    "MEMBERSHIP_OPERATORS",
    "Equality",
    "Comparison",
    "Raw",
    "FilterTerm",
    "membership",
]
