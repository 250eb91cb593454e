"""
Test support utilities for lexispine tests.

Helpers that don't fit as pytest fixtures but are useful across
multiple test files: scripted oracles, fault injection and a store whose
read-back can be made to drift.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def assert_dict_subset(actual: dict, expected: dict, path: str = "") -> None:
    """
    Assert that expected is a subset of actual (recursive).

    Args:
        actual: The full dictionary
        expected: The expected subset
        path: Current path (for error messages)
    """
    for key, expected_value in expected.items():
        current_path = f"{path}.{key}" if path else key

        assert key in actual, f"Missing key at {current_path}"
        actual_value = actual[key]

        if isinstance(expected_value, dict) and isinstance(actual_value, dict):
            assert_dict_subset(actual_value, expected_value, current_path)
        else:
            assert actual_value == expected_value, (
                f"Mismatch at {current_path}: expected {expected_value!r}, got {actual_value!r}"
            )


class StepOrderValidator:
    """
    Validates the order in which an executor ran its steps.

    Usage:
        validator = StepOrderValidator(result.results)
        validator.assert_before("g2p", "phonetic")
    """

    def __init__(self, results: Sequence[Any]) -> None:
        self.step_names = [r.step for r in results]
        self._index = {name: i for i, name in enumerate(self.step_names)}

    def get_index(self, step_name: str) -> int:
        if step_name not in self._index:
            raise ValueError(f"Step '{step_name}' was not run; ran {self.step_names}")
        return self._index[step_name]

    def assert_before(self, first: str, second: str) -> None:
        first_idx = self.get_index(first)
        second_idx = self.get_index(second)
        assert first_idx < second_idx, (
            f"Expected '{first}' (index {first_idx}) before "
            f"'{second}' (index {second_idx}), order: {self.step_names}"
        )

    def assert_exact_order(self, expected: list[str]) -> None:
        assert self.step_names == expected, (
            f"Step order mismatch:\n  Expected: {expected}\n  Actual:   {self.step_names}"
        )
