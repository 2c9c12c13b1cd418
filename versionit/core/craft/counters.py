"""Named persistent counters.

The store is an explicit value: loaded by the persistence collaborator at
session start, mutated in memory by ``increment``/``set``, and written back
at session end. Template resolution only reads it.

Concurrent invocations against the same counters file are not coordinated;
callers that run in parallel must lock externally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from versionit.core.exceptions import InvalidCounterValue

_DIGITS = re.compile(r"[0-9]+")


def _validate_value(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidCounterValue(
            f"Counter '{name}' must be a non-negative integer, got {value!r}"
        )
    if value < 0:
        raise InvalidCounterValue(
            f"Counter '{name}' must be a non-negative integer, got {value}"
        )
    return value


def parse_counter_assignment(raw: str) -> Tuple[str, int]:
    """Parse a ``NAME:VALUE`` assignment from the command line.

    Raises:
        InvalidCounterValue: If the shape is wrong or VALUE is not a
            non-negative integer.
    """
    name, sep, value = raw.partition(":")
    name = name.strip()
    value = value.strip()
    if not sep or not name:
        raise InvalidCounterValue(f"Expected NAME:VALUE, got '{raw}'")
    if not _DIGITS.fullmatch(value):
        raise InvalidCounterValue(
            f"Counter '{name}' must be a non-negative integer, got '{value}'"
        )
    return name, int(value)


@dataclass
class CounterStore:
    """In-memory counters; absent names read as 0."""

    values: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, value in self.values.items():
            _validate_value(name, value)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, object]]) -> "CounterStore":
        """Build a store from loaded YAML, coercing numeric strings."""
        values: Dict[str, int] = {}
        for name, raw in (data or {}).items():
            if isinstance(raw, str) and _DIGITS.fullmatch(raw.strip()):
                raw = int(raw.strip())
            values[str(name)] = _validate_value(str(name), raw)
        return cls(values)

    def get(self, name: str) -> int:
        return self.values.get(name, 0)

    def increment(self, name: str) -> int:
        """Add one to a counter, creating it at 0 first if absent."""
        new_value = self.get(name) + 1
        self.values[name] = new_value
        return new_value

    def set(self, name: str, value: int) -> None:
        """Assign a counter.

        Raises:
            InvalidCounterValue: If value is not a non-negative integer.
        """
        self.values[name] = _validate_value(name, value)

    def snapshot(self) -> Dict[str, int]:
        """Copy of the current state (pre/post reporting)."""
        return dict(sorted(self.values.items()))
