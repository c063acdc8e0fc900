"""Tests for framework models and outcome classification."""

import pytest

from unitrunner.framework.exceptions import (
    AssertionFailedError,
    ExceptionWrapper,
    ExpectationFailedError,
    FrameworkError,
    IncompleteTestError,
    OutputError,
    RiskyTestError,
    SkippedTestError,
    SkippedTestSuiteError,
    classify,
    exception_code,
    exception_message,
)
from unitrunner.framework.models import PassedTest, TestFailure, TestSize, TestStatus


class CodedError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class TestClassify:
    """Tests for the classify function."""

    @pytest.mark.parametrize(
        "exc,status",
        [
            (RiskyTestError("r"), TestStatus.RISKY),
            (OutputError("o"), TestStatus.RISKY),
            (IncompleteTestError("i"), TestStatus.INCOMPLETE),
            (SkippedTestError("s"), TestStatus.SKIPPED),
            (AssertionFailedError("f"), TestStatus.FAILURE),
            (ExpectationFailedError("m"), TestStatus.FAILURE),
            (SkippedTestSuiteError("suite"), TestStatus.FAILURE),
            (AssertionError("plain assert"), TestStatus.FAILURE),
            (FrameworkError("misuse"), TestStatus.ERROR),
            (ValueError("boom"), TestStatus.ERROR),
        ],
    )
    def test_priority(self, exc, status):
        """Test that every exception maps onto exactly one status."""
        assert classify(exc) == status

    def test_failure_statuses(self):
        """Test which statuses count against a run."""
        assert TestStatus.FAILURE.is_failure
        assert TestStatus.ERROR.is_failure
        assert not TestStatus.RISKY.is_failure
        assert not TestStatus.SKIPPED.is_failure


class TestExceptionFacets:
    """Tests for reading code and message from exceptions."""

    def test_code_attribute(self):
        """Test that a code attribute wins."""
        assert exception_code(CodedError("bad", 7)) == 7

    def test_errno(self):
        """Test that errno is used for OS errors."""
        assert exception_code(OSError(13, "Permission denied")) == 13

    def test_first_integer_argument(self):
        """Test that the first integer argument is the code."""
        assert exception_code(ValueError("bad tag", 10)) == 10

    def test_no_code(self):
        """Test that exceptions without a code give None."""
        assert exception_code(ValueError("bad tag")) is None
        assert exception_code(ValueError(True)) is None

    def test_message(self):
        """Test that the first string argument is the message."""
        assert exception_message(ValueError("bad tag", 10)) == "bad tag"
        assert exception_message(KeyError("missing")) == "missing"

    def test_wrapper(self):
        """Test the string form of wrapped exceptions."""
        assert str(ExceptionWrapper(RuntimeError("boom"))) == "RuntimeError: boom"
        assert str(ExceptionWrapper(RuntimeError())) == "RuntimeError"


class TestTestSize:
    """Tests for TestSize."""

    def test_ordering(self):
        """Test that sizes compare by magnitude."""
        assert TestSize.LARGE > TestSize.MEDIUM > TestSize.SMALL > TestSize.UNKNOWN


class TestTestFailure:
    """Tests for TestFailure."""

    def test_to_dict(self):
        """Test conversion to dictionary."""
        failure = TestFailure(test="Case::test_a", exception=AssertionFailedError("nope"), time=0.5)
        data = failure.to_dict()

        assert data["test_name"] == "Case::test_a"
        assert data["exception"] == "AssertionFailedError"
        assert data["message"] == "nope"
        assert data["time"] == 0.5

    def test_is_failure(self):
        """Test telling failures from errors."""
        assert TestFailure("t", AssertionFailedError("x")).is_failure
        assert not TestFailure("t", ValueError("x")).is_failure


class TestPassedTest:
    """Tests for PassedTest."""

    def test_defaults(self):
        """Test default values."""
        record = PassedTest()
        assert record.result is None
        assert record.size == TestSize.UNKNOWN

    def test_to_dict(self):
        """Test conversion to dictionary."""
        assert PassedTest(result=[1], size=TestSize.LARGE).to_dict() == {
            "result": [1],
            "size": "large",
        }
