"""Validation rule chains.

A chain is a ``|``-separated list of rules, each optionally followed by
``:``-separated arguments::

    "required|string:5:64"
    "numeric:int|range:0:120"
    "enum:draft,open,closed"

Rules are looked up in ``RULES`` once, when the ``Validator`` is built, so a
typo in a chain fails at entity registration rather than on the first save.
Some rules normalise the value they accept (``email`` lower-cases and trims,
``boolean`` coerces, ``matching`` collapses a confirmation pair).
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tessera.core.errors import ConfigError

# A rule returns (passed, value); value may be normalised.
RuleFn = Callable[[Any, list[str]], tuple[bool, Any]]

_ALPHA = re.compile(r"^[A-Za-z]*$")
_ALPHA_NUMERIC = re.compile(r"^[A-Za-z0-9]*$")
_ALPHA_DASH = re.compile(r"^[A-Za-z0-9_-]*$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _arg(params: list[str], index: int, default: Any = None) -> Any:
    return params[index] if len(params) > index and params[index] != "" else default


def _pattern_rule(pattern: re.Pattern[str]) -> RuleFn:
    def rule(value: Any, params: list[str]) -> tuple[bool, Any]:
        text = "" if value is None else str(value)
        return bool(pattern.match(text)) and len(text) >= int(_arg(params, 0, 0)), value

    return rule


def _required(value: Any, params: list[str]) -> tuple[bool, Any]:
    return value not in (None, "") and value != [] and value != {}, value


def _string(value: Any, params: list[str]) -> tuple[bool, Any]:
    if not isinstance(value, str):
        return False, value
    minimum = int(_arg(params, 0, 0))
    maximum = _arg(params, 1)
    return len(value) >= minimum and (maximum is None or len(value) <= int(maximum)), value


def _numeric(value: Any, params: list[str]) -> tuple[bool, Any]:
    kind = _arg(params, 0)
    if kind == "int":
        return isinstance(value, int) and not isinstance(value, bool), value
    if kind == "float":
        return isinstance(value, float), value
    if isinstance(value, bool):
        return False, value
    if isinstance(value, (int, float)):
        return True, value
    try:
        float(value)
    except (TypeError, ValueError):
        return False, value
    return True, value


def _boolean(value: Any, params: list[str]) -> tuple[bool, Any]:
    if isinstance(value, str):
        return True, value.strip().lower() in {"1", "true", "yes", "on"}
    return True, bool(value)


def _email(value: Any, params: list[str]) -> tuple[bool, Any]:
    text = str(value or "").strip().lower()
    return bool(_EMAIL.match(text)), text


def _enum(value: Any, params: list[str]) -> tuple[bool, Any]:
    allowed = str(_arg(params, 0, "")).split(",")
    return str(value) in allowed, value


def _ip(value: Any, params: list[str]) -> tuple[bool, Any]:
    try:
        ipaddress.ip_address(str(value))
    except ValueError:
        return False, value
    return True, value


def _range(value: Any, params: list[str]) -> tuple[bool, Any]:
    minimum, maximum = _arg(params, 0), _arg(params, 1)
    try:
        if minimum is not None and float(value) < float(minimum):
            return False, value
        if maximum is not None and float(value) > float(maximum):
            return False, value
    except (TypeError, ValueError):
        return False, value
    return True, value


def _url(value: Any, params: list[str]) -> tuple[bool, Any]:
    parsed = urlparse(str(value or ""))
    return bool(parsed.scheme and parsed.netloc), value


def _matching(value: Any, params: list[str]) -> tuple[bool, Any]:
    if not isinstance(value, (list, tuple)):
        return True, value
    if not value:
        return True, None
    first = value[0]
    if all(v == first for v in value):
        return True, first
    return False, value


def _time_zone(value: Any, params: list[str]) -> tuple[bool, Any]:
    try:
        ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError):
        return False, value
    return True, value


def _timestamp(value: Any, params: list[str]) -> tuple[bool, Any]:
    if isinstance(value, int) or str(value).isdigit():
        return True, int(value)
    try:
        return True, int(datetime.fromisoformat(str(value)).timestamp())
    except ValueError:
        return False, value


RULES: dict[str, RuleFn] = {
    "required": _required,
    "string": _string,
    "alpha": _pattern_rule(_ALPHA),
    "alpha_numeric": _pattern_rule(_ALPHA_NUMERIC),
    "alpha_dash": _pattern_rule(_ALPHA_DASH),
    "numeric": _numeric,
    "boolean": _boolean,
    "email": _email,
    "enum": _enum,
    "ip": _ip,
    "range": _range,
    "url": _url,
    "matching": _matching,
    "time_zone": _time_zone,
    "timestamp": _timestamp,
}


@dataclass(frozen=True)
class BoundRule:
    name: str
    fn: RuleFn
    params: list[str]


def parse_chain(chain: str) -> list[BoundRule]:
    """Resolve a rule chain against ``RULES``.

    Raises:
        ConfigError: for a rule name that does not exist.
    """
    bound: list[BoundRule] = []
    for item in chain.split("|"):
        if not item.strip():
            continue
        name, *params = item.strip().split(":")
        if name not in RULES:
            raise ConfigError(f"Unknown validation rule: {name}").with_context(rule=name)
        bound.append(BoundRule(name, RULES[name], params))
    return bound


class Validator:
    """Validate one value against a chain, or a mapping of values against
    a mapping of chains.

    Examples:
        >>> v = Validator("required|email")
        >>> ok, value = v.validate(" Bob@Example.com ")
        >>> ok, value
        (True, 'bob@example.com')
        >>> Validator({"age": "numeric|range:18"}).validate({"age": 12})[0]
        False
    """

    def __init__(self, rules: str | Mapping[str, str]):
        self._rules = rules
        self._failing_rule: str | None = None
        self._failing_field: str | None = None
        self._failures: list[tuple[str | None, str]] = []
        if isinstance(rules, str):
            self._chains: dict[str | None, list[BoundRule]] = {None: parse_chain(rules)}
        else:
            self._chains = {key: parse_chain(chain) for key, chain in rules.items()}

    @property
    def rules(self) -> str | Mapping[str, str]:
        return self._rules

    @property
    def failing_rule(self) -> str | None:
        """Name of the rule that failed on the last ``validate`` call."""
        return self._failing_rule

    @property
    def failing_field(self) -> str | None:
        return self._failing_field

    @property
    def failures(self) -> list[tuple[str | None, str]]:
        """(field, rule) for every failure of the last ``validate`` call."""
        return list(self._failures)

    def validate(self, data: Any) -> tuple[bool, Any]:
        """Returns ``(passed, normalised_data)``.

        For mapping rules every field is checked (so all failures can be
        reported) and ``failing_rule`` holds the last failure. A field that
        is absent or None is only checked by ``required``; absent fields
        are never added to the returned mapping.
        """
        self._failing_rule = None
        self._failing_field = None
        self._failures = []

        if None in self._chains:
            return self._run(self._chains[None], data, None)

        values = dict(data)
        passed = True
        for key, chain in self._chains.items():
            if values.get(key) is None:
                chain = [rule for rule in chain if rule.name == "required"]
                if not chain:
                    continue
            ok, value = self._run(chain, values.get(key), key)
            if key in values:
                values[key] = value
            passed = passed and ok
        return passed, values

    def _run(self, chain: list[BoundRule], value: Any, field_name: str | None) -> tuple[bool, Any]:
        for rule in chain:
            ok, value = rule.fn(value, rule.params)
            if not ok:
                self._failing_rule = rule.name
                self._failing_field = field_name
                self._failures.append((field_name, rule.name))
                return False, value
        return True, value


__all__ = [
    "RULES",
    "BoundRule",
    "parse_chain",
    "Validator",
]
