"""Exception taxonomy and outcome classification.

Every fault raised while a test runs is mapped onto exactly one
``TestStatus`` by :func:`classify`, evaluated in strict priority order:
risky, incomplete, skipped, failure, error.
"""

from typing import Optional

from unitrunner.framework.models import TestStatus


class FrameworkError(Exception):
    """Raised when the framework itself is misused."""

    pass


class AssertionFailedError(AssertionError):
    """Raised when an assertion does not hold."""

    pass


class IncompleteTestError(AssertionFailedError):
    """Raised to mark a test as incomplete."""

    pass


class SkippedTestError(AssertionFailedError):
    """Raised to mark a test as skipped."""

    pass


class RiskyTestError(AssertionFailedError):
    """Raised when a test violates a strictness policy."""

    pass


class OutputError(AssertionFailedError):
    """Raised when a test prints output while output is disallowed."""

    pass


class ExpectationFailedError(AssertionFailedError):
    """Raised when a mock object's expectations are not met."""

    pass


class SkippedTestSuiteError(AssertionFailedError):
    """Raised from suite-level setup to skip every test of the suite."""

    pass


class ExceptionWrapper(FrameworkError):
    """Wraps a non-framework exception so it can be recorded as an error."""

    def __init__(self, original: BaseException):
        super().__init__(str(original))
        self.original = original
        self.class_name = type(original).__name__

    def __str__(self) -> str:
        message = str(self.original)
        if message:
            return f"{self.class_name}: {message}"
        return self.class_name


# Never converted into a test outcome.
NON_RECOVERABLE = (KeyboardInterrupt, SystemExit, MemoryError, GeneratorExit)


def classify(exc: BaseException) -> TestStatus:
    """Map an exception raised by a test onto its outcome."""
    if isinstance(exc, (RiskyTestError, OutputError)):
        return TestStatus.RISKY
    if isinstance(exc, IncompleteTestError):
        return TestStatus.INCOMPLETE
    if isinstance(exc, SkippedTestError):
        return TestStatus.SKIPPED
    if isinstance(exc, AssertionError):
        return TestStatus.FAILURE
    return TestStatus.ERROR


def exception_code(exc: BaseException) -> Optional[int]:
    """Get the numeric code carried by an exception, if any.

    Looks at a ``code`` attribute first, then ``errno``, then the first
    integer positional argument.
    """
    for attr in ("code", "errno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, int) and not isinstance(arg, bool):
            return arg
    return None


def exception_message(exc: BaseException) -> str:
    """Get the human-readable message of an exception."""
    for arg in getattr(exc, "args", ()):
        if isinstance(arg, str):
            return arg
    return str(exc)
