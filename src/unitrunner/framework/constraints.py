"""Constraints evaluated by assertions."""

import re
from abc import ABC, abstractmethod
from collections.abc import Sized
from typing import Any, Optional

from unitrunner.framework.exceptions import (
    AssertionFailedError,
    exception_code,
    exception_message,
)


def export(value: Any, limit: int = 60) -> str:
    """Render a value for use in failure messages."""
    text = repr(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


class Constraint(ABC):
    """Base class for a check applied to a value."""

    @abstractmethod
    def matches(self, other: Any) -> bool:
        """Return True if the value satisfies the constraint."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Describe the constraint for failure messages."""
        pass

    def failure_description(self, other: Any) -> str:
        """Describe the value that failed the constraint."""
        return f"{export(other)} {self.describe()}"

    def evaluate(self, other: Any, description: str = "") -> bool:
        """Evaluate the constraint, raising AssertionFailedError on mismatch."""
        if self.matches(other):
            return True
        message = f"Failed asserting that {self.failure_description(other)}."
        if description:
            message = f"{description}\n{message}"
        raise AssertionFailedError(message)

    def count(self) -> int:
        """Number of assertions this constraint accounts for."""
        return 1

    def __str__(self) -> str:
        return self.describe()


class IsEqual(Constraint):
    def __init__(self, expected: Any):
        self.expected = expected

    def matches(self, other: Any) -> bool:
        return bool(other == self.expected)

    def describe(self) -> str:
        return f"is equal to {export(self.expected)}"


class IsIdentical(Constraint):
    def __init__(self, expected: Any):
        self.expected = expected

    def matches(self, other: Any) -> bool:
        return other is self.expected

    def describe(self) -> str:
        return f"is identical to {export(self.expected)}"


class LogicalNot(Constraint):
    def __init__(self, constraint: Constraint):
        self.constraint = constraint

    def matches(self, other: Any) -> bool:
        return not self.constraint.matches(other)

    def describe(self) -> str:
        return f"not {self.constraint.describe()}"


class IsTrue(Constraint):
    def matches(self, other: Any) -> bool:
        return other is True

    def describe(self) -> str:
        return "is true"


class IsFalse(Constraint):
    def matches(self, other: Any) -> bool:
        return other is False

    def describe(self) -> str:
        return "is false"


class IsEmpty(Constraint):
    def matches(self, other: Any) -> bool:
        if isinstance(other, Sized):
            return len(other) == 0
        return not other

    def describe(self) -> str:
        return "is empty"


class Count(Constraint):
    def __init__(self, expected: int):
        self.expected = expected

    def matches(self, other: Any) -> bool:
        return len(other) == self.expected

    def failure_description(self, other: Any) -> str:
        return f"actual size {len(other)} matches expected size {self.expected}"

    def describe(self) -> str:
        return f"count matches {self.expected}"


class RegularExpression(Constraint):
    def __init__(self, pattern: str):
        self.pattern = _strip_delimiters(pattern)

    def matches(self, other: Any) -> bool:
        return isinstance(other, str) and re.search(self.pattern, other) is not None

    def describe(self) -> str:
        return f"matches pattern {self.pattern!r}"


class Callback(Constraint):
    def __init__(self, callback):
        self.callback = callback

    def matches(self, other: Any) -> bool:
        return bool(self.callback(other))

    def describe(self) -> str:
        return "is accepted by specified callback"


class Anything(Constraint):
    def matches(self, other: Any) -> bool:
        return True

    def describe(self) -> str:
        return "is anything"


class ExceptionType(Constraint):
    """Checks the class of a thrown exception; ``None`` means nothing was thrown."""

    def __init__(self, class_name: "type | str"):
        self.class_name = class_name

    def _expected_name(self) -> str:
        if isinstance(self.class_name, type):
            return self.class_name.__name__
        return self.class_name

    def matches(self, other: Any) -> bool:
        if other is None:
            return False
        if isinstance(self.class_name, type):
            return isinstance(other, self.class_name)
        return any(
            klass.__name__ == self.class_name
            or f"{klass.__module__}.{klass.__qualname__}" == self.class_name
            for klass in type(other).__mro__
        )

    def failure_description(self, other: Any) -> str:
        if other is not None:
            message = exception_message(other)
            if message:
                message = f' with message "{message}"'
            return (
                f"exception of type {type(other).__name__!r}{message} "
                f"{self.describe()}"
            )
        return f"exception of type {self._expected_name()!r} is thrown"

    def describe(self) -> str:
        return f"is instance of class {self._expected_name()!r}"


class ExceptionMessage(Constraint):
    """Checks that the exception message contains the expected text."""

    def __init__(self, expected: str):
        self.expected = expected

    def matches(self, other: Any) -> bool:
        return self.expected in exception_message(other)

    def failure_description(self, other: Any) -> str:
        return (
            f"exception message {exception_message(other)!r} contains "
            f"{self.expected!r}"
        )

    def describe(self) -> str:
        return f"exception message contains {self.expected!r}"


class ExceptionMessageRegex(Constraint):
    """Checks the exception message against a regular expression."""

    def __init__(self, pattern: str):
        self.pattern = _strip_delimiters(pattern)

    def matches(self, other: Any) -> bool:
        return re.search(self.pattern, exception_message(other)) is not None

    def failure_description(self, other: Any) -> str:
        return (
            f"exception message {exception_message(other)!r} matches "
            f"{self.pattern!r}"
        )

    def describe(self) -> str:
        return f"exception message matches {self.pattern!r}"


class ExceptionCode(Constraint):
    """Checks the numeric code carried by an exception."""

    def __init__(self, expected: int):
        self.expected = expected

    def matches(self, other: Any) -> bool:
        return exception_code(other) == self.expected

    def failure_description(self, other: Any) -> str:
        code: Optional[int] = exception_code(other)
        return (
            f"{code!r} is equal to expected exception code {self.expected!r}"
        )

    def describe(self) -> str:
        return f"exception code is {self.expected!r}"


def _strip_delimiters(pattern: str) -> str:
    """Accept ``/.../flags`` style patterns as well as bare ones."""
    match = re.fullmatch(r"/(.*)/([imsx]*)", pattern, re.DOTALL)
    if not match:
        return pattern
    body, flags = match.groups()
    if flags:
        return f"(?{flags}){body}"
    return body
