"""Tests for named counters."""

from __future__ import annotations

import pytest

from versionit.core.craft import CounterStore, parse_counter_assignment
from versionit.core.exceptions import InvalidCounterValue


class TestCounterStore:
    """Tests for CounterStore mutations."""

    def test_absent_reads_zero(self) -> None:
        assert CounterStore().get("build") == 0

    def test_increment_creates_counter(self) -> None:
        store = CounterStore()
        assert store.increment("build") == 1
        assert store.get("build") == 1

    def test_set_then_increment(self) -> None:
        """set build:10 then increment build gives 11."""
        store = CounterStore()
        store.set("build", 10)
        assert store.increment("build") == 11

    @pytest.mark.parametrize("value", [-1, "3", 1.5, True])
    def test_set_rejects_invalid(self, value: object) -> None:
        with pytest.raises(InvalidCounterValue):
            CounterStore().set("build", value)  # type: ignore[arg-type]

    def test_snapshot_is_a_copy(self) -> None:
        store = CounterStore({"b": 2, "a": 1})
        snapshot = store.snapshot()
        store.increment("a")
        assert snapshot == {"a": 1, "b": 2}
        assert list(snapshot) == ["a", "b"]

    def test_from_mapping_coerces_numeric_strings(self) -> None:
        store = CounterStore.from_mapping({"build": "7", "release": 2})
        assert store.snapshot() == {"build": 7, "release": 2}

    def test_from_mapping_rejects_negative(self) -> None:
        with pytest.raises(InvalidCounterValue, match="build"):
            CounterStore.from_mapping({"build": -4})

    def test_from_mapping_rejects_non_ascii_digits(self) -> None:
        with pytest.raises(InvalidCounterValue, match="build"):
            CounterStore.from_mapping({"build": "\u00b2"})


class TestParseCounterAssignment:
    """Tests for NAME:VALUE parsing."""

    def test_valid(self) -> None:
        assert parse_counter_assignment("build:10") == ("build", 10)

    def test_whitespace(self) -> None:
        assert parse_counter_assignment(" build : 3 ") == ("build", 3)

    @pytest.mark.parametrize(
        "raw",
        ["build", "build:", ":5", "build:-1", "build:ten", "build:1.5", "build:\u00b2", "build:\u0663"],
    )
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(InvalidCounterValue):
            parse_counter_assignment(raw)
