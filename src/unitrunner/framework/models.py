"""Data models shared by the framework."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any


class TestStatus(str, Enum):
    """Outcome of a single test execution."""

    __test__ = False

    UNKNOWN = "unknown"
    PASSED = "passed"
    SKIPPED = "skipped"
    INCOMPLETE = "incomplete"
    FAILURE = "failure"
    ERROR = "error"
    RISKY = "risky"

    @property
    def is_failure(self) -> bool:
        """Check if the status counts against a successful run."""
        return self in (TestStatus.FAILURE, TestStatus.ERROR)


class TestSize(IntEnum):
    """Size classification used to bound dependency chains."""

    __test__ = False

    UNKNOWN = -1
    SMALL = 0
    MEDIUM = 1
    LARGE = 2


@dataclass
class TestFailure:
    """A test paired with the exception that made it not pass."""

    __test__ = False

    test: Any
    exception: BaseException
    time: float = 0.0

    @property
    def test_name(self) -> str:
        """Get the display name of the failed test."""
        return str(self.test)

    @property
    def message(self) -> str:
        """Get the exception message."""
        return str(self.exception)

    @property
    def is_failure(self) -> bool:
        """Check if this is an assertion failure rather than an error."""
        from unitrunner.framework.exceptions import AssertionFailedError

        return isinstance(self.exception, (AssertionFailedError, AssertionError))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "test_name": self.test_name,
            "exception": type(self.exception).__name__,
            "message": self.message,
            "time": self.time,
        }


@dataclass
class PassedTest:
    """Record kept for a passed test, consumed by dependent tests."""

    result: Any = None
    size: TestSize = TestSize.UNKNOWN

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"result": self.result, "size": self.size.name.lower()}
