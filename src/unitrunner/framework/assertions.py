"""Assertion methods mixed into test cases."""

from typing import Any

from unitrunner.framework.constraints import (
    Constraint,
    Count,
    IsEmpty,
    IsEqual,
    IsFalse,
    IsIdentical,
    IsTrue,
    LogicalNot,
    RegularExpression,
)
from unitrunner.framework.exceptions import (
    AssertionFailedError,
    IncompleteTestError,
    SkippedTestError,
)


class Assert:
    """Assertion helpers that count every evaluated constraint.

    The counter lives on the instance so each test tracks its own
    assertions independently.
    """

    num_assertions: int = 0

    def add_to_assertion_count(self, count: int) -> None:
        """Add to the number of assertions performed by this test."""
        self.num_assertions += count

    def get_num_assertions(self) -> int:
        """Get the number of assertions performed by this test."""
        return self.num_assertions

    def assert_that(self, value: Any, constraint: Constraint, message: str = "") -> None:
        """Evaluate a constraint against a value."""
        self.add_to_assertion_count(constraint.count())
        constraint.evaluate(value, message)

    def assert_equals(self, expected: Any, actual: Any, message: str = "") -> None:
        self.assert_that(actual, IsEqual(expected), message)

    def assert_not_equals(self, expected: Any, actual: Any, message: str = "") -> None:
        self.assert_that(actual, LogicalNot(IsEqual(expected)), message)

    def assert_same(self, expected: Any, actual: Any, message: str = "") -> None:
        self.assert_that(actual, IsIdentical(expected), message)

    def assert_true(self, condition: Any, message: str = "") -> None:
        self.assert_that(condition, IsTrue(), message)

    def assert_false(self, condition: Any, message: str = "") -> None:
        self.assert_that(condition, IsFalse(), message)

    def assert_empty(self, actual: Any, message: str = "") -> None:
        self.assert_that(actual, IsEmpty(), message)

    def assert_not_empty(self, actual: Any, message: str = "") -> None:
        self.assert_that(actual, LogicalNot(IsEmpty()), message)

    def assert_count(self, expected: int, haystack: Any, message: str = "") -> None:
        self.assert_that(haystack, Count(expected), message)

    def assert_regex(self, pattern: str, string: str, message: str = "") -> None:
        self.assert_that(string, RegularExpression(pattern), message)

    def fail(self, message: str = "") -> None:
        """Fail the test unconditionally."""
        raise AssertionFailedError(message)

    def mark_test_incomplete(self, message: str = "") -> None:
        """Mark the test as incomplete."""
        raise IncompleteTestError(message)

    def mark_test_skipped(self, message: str = "") -> None:
        """Mark the test as skipped."""
        raise SkippedTestError(message)
