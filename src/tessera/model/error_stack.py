"""Per-entity stack of validation / mutation errors.

An ``ErrorStack`` is an ordered, append-only sequence. It deliberately does
not emulate list, iterator and mapping protocols all at once; callers use the
explicit operations below.

Examples:
    >>> errors = ErrorStack()
    >>> errors.append("validation.required", field="name", field_name="Name")
    >>> errors.length()
    1
    >>> errors.at(0).message
    'Name is missing'
    >>> errors.find_by(lambda e: e.params.get("field") == "name").error
    'validation.required'
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

DEFAULT_MESSAGES: dict[str, str] = {
    "validation.alpha": "{{field_name}} only allows letters",
    "validation.alpha_numeric": "{{field_name}} only allows letters and numbers",
    "validation.alpha_dash": "{{field_name}} only allows letters and dashes",
    "validation.boolean": "{{field_name}} must be yes or no",
    "validation.email": "{{field_name}} must be a valid email address",
    "validation.enum": "{{field_name}} must be one of the allowed values",
    "validation.failed": "{{field_name}} is invalid",
    "validation.ip": "{{field_name}} only allows valid IP addresses",
    "validation.matching": "{{field_name}} must match",
    "validation.numeric": "{{field_name}} only allows numbers",
    "validation.range": "{{field_name}} must be within the allowed range",
    "validation.required": "{{field_name}} is missing",
    "validation.string": "{{field_name}} must be a string of the proper length",
    "validation.time_zone": "{{field_name}} only allows valid time zones",
    "validation.timestamp": "{{field_name}} only allows timestamps",
    "validation.url": "{{field_name}} only allows valid URLs",
}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render(template: str, params: dict[str, Any]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown ones are left as-is."""
    return _PLACEHOLDER.sub(
        lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
        template,
    )


@dataclass(frozen=True)
class ErrorEntry:
    error: str
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return render(DEFAULT_MESSAGES.get(self.error, self.error), self.params)


class ErrorStack:
    """Ordered, append-only error collection."""

    def __init__(self) -> None:
        self._stack: list[ErrorEntry] = []

    def __repr__(self) -> str:
        return f"ErrorStack({[e.error for e in self._stack]})"

    def append(self, error: str, **params: Any) -> ErrorStack:
        self._stack.append(ErrorEntry(error, dict(params)))
        return self

    def length(self) -> int:
        return len(self._stack)

    def at(self, index: int) -> ErrorEntry:
        """Entry at ``index``.

        Raises:
            IndexError: when ``index`` is outside the stack.
        """
        if not 0 <= index < len(self._stack):
            raise IndexError(f"{index} does not exist on this ErrorStack")
        return self._stack[index]

    def find_by(self, predicate: Callable[[ErrorEntry], bool]) -> ErrorEntry | None:
        """First entry matching ``predicate``, or None."""
        for entry in self._stack:
            if predicate(entry):
                return entry
        return None

    def has(self, value: Any, param: str = "field") -> bool:
        return self.find_by(lambda e: e.params.get(param) == value) is not None

    def messages(self) -> list[str]:
        return [entry.message for entry in self._stack]

    def entries(self) -> list[ErrorEntry]:
        return list(self._stack)

    def clear(self) -> ErrorStack:
        self._stack = []
        return self


__all__ = [
    "DEFAULT_MESSAGES",
    "ErrorEntry",
    "ErrorStack",
    "render",
]
