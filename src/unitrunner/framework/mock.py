"""Mock objects with verifiable expectations.

Mocks are :mod:`unittest.mock` objects specced on the mocked class, so
``isinstance`` checks keep working. Expectations are declared fluently::

    mock = self.create_mock(Util)
    mock.expects(self.once()).method("generate_pass").with_args("p1").will_return("abc")

and verified by the owning test case once the test body has returned.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Optional
from unittest.mock import NonCallableMock

from unitrunner.framework.constraints import Constraint, IsEqual
from unitrunner.framework.exceptions import ExpectationFailedError, FrameworkError


class InvocationCounter(ABC):
    """Rule on how many times a mocked method may be invoked."""

    def accepts(self, count: int) -> bool:
        """Check whether one more invocation is allowed after ``count``."""
        return True

    @abstractmethod
    def verify(self, count: int) -> bool:
        """Check the final number of invocations.

        Args:
            count: How many times the method was invoked

        Returns:
            True if the count satisfies the rule
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """Describe the rule for failure messages."""
        pass


class AnyInvokedCount(InvocationCounter):
    def verify(self, count: int) -> bool:
        return True

    def describe(self) -> str:
        return "invoked zero or more times"


class InvokedCount(InvocationCounter):
    def __init__(self, expected: int):
        self.expected = expected

    def accepts(self, count: int) -> bool:
        return count < self.expected

    def verify(self, count: int) -> bool:
        return count == self.expected

    def describe(self) -> str:
        return f"invoked {self.expected} time(s)"


class InvokedAtLeastCount(InvocationCounter):
    def __init__(self, required: int):
        self.required = required

    def verify(self, count: int) -> bool:
        return count >= self.required

    def describe(self) -> str:
        return f"invoked at least {self.required} time(s)"


class InvokedAtMostCount(InvocationCounter):
    def __init__(self, allowed: int):
        self.allowed = allowed

    def accepts(self, count: int) -> bool:
        return count < self.allowed

    def verify(self, count: int) -> bool:
        return count <= self.allowed

    def describe(self) -> str:
        return f"invoked at most {self.allowed} time(s)"


class Expectation:
    """Expectation on one method of a mock object."""

    def __init__(self, mock: "MockObject", counter: InvocationCounter):
        self.mock = mock
        self.counter = counter
        self.method_name: Optional[str] = None
        self.parameters: Optional[list[Constraint]] = None
        self.invocations = 0
        self.failure: Optional[ExpectationFailedError] = None
        self._stub: Optional[Callable[..., Any]] = None

    def method(self, name: str) -> "Expectation":
        """Select the mocked method this expectation applies to."""
        self.method_name = name
        self.mock._register(self)
        return self

    def with_args(self, *constraints: Any) -> "Expectation":
        """Constrain the positional arguments of each invocation."""
        self.parameters = [
            c if isinstance(c, Constraint) else IsEqual(c) for c in constraints
        ]
        return self

    def with_any_parameters(self) -> "Expectation":
        """Accept any arguments, dropping earlier argument constraints."""
        self.parameters = None
        return self

    def will_return(self, value: Any) -> "Expectation":
        self._stub = lambda *args, **kwargs: value
        return self

    def will_return_self(self) -> "Expectation":
        """Return the mock itself, for fluent interfaces."""
        self._stub = lambda *args, **kwargs: self.mock
        return self

    def will_return_argument(self, index: int) -> "Expectation":
        """Return one of the positional arguments.

        Args:
            index: Position of the argument to return

        Returns:
            This expectation, for chaining
        """
        self._stub = lambda *args, **kwargs: args[index]
        return self

    def will_return_callback(self, callback: Callable[..., Any]) -> "Expectation":
        self._stub = callback
        return self

    def will_return_on_consecutive_calls(self, *values: Any) -> "Expectation":
        remaining = list(values)

        def stub(*args, **kwargs):
            return remaining.pop(0) if remaining else None

        self._stub = stub
        return self

    def will_raise(self, exception: BaseException) -> "Expectation":
        """Raise an exception on every invocation."""

        def stub(*args, **kwargs):
            raise exception

        self._stub = stub
        return self

    @property
    def has_matchers(self) -> bool:
        return not isinstance(self.counter, AnyInvokedCount) or self.parameters is not None

    def _fail(self, message: str) -> None:
        self.failure = ExpectationFailedError(
            f"Expectation failed for method name is equal to "
            f"{self.method_name!r} when {self.counter.describe()}.\n{message}"
        )
        raise self.failure

    def invoke(self, args: tuple, kwargs: dict) -> Any:
        """Record an invocation, checking count and arguments."""
        if not self.counter.accepts(self.invocations):
            self.invocations += 1
            self._fail(
                f"Method was expected to be {self.counter.describe()}, "
                f"actually called {self.invocations} times."
            )
        self.invocations += 1

        if self.parameters is not None:
            if len(args) < len(self.parameters):
                self._fail(
                    f"Parameter count for invocation {self.mock._mocked_class_name}::"
                    f"{self.method_name}() is too low."
                )
            for index, constraint in enumerate(self.parameters):
                if not constraint.matches(args[index]):
                    self._fail(
                        f"Parameter {index} for invocation {self.method_name}() does "
                        f"not match expected value.\nFailed asserting that "
                        f"{constraint.failure_description(args[index])}."
                    )

        if self._stub is not None:
            return self._stub(*args, **kwargs)
        return None

    def verify(self) -> None:
        if self.failure is not None:
            raise self.failure
        if not self.counter.verify(self.invocations):
            self._fail(
                f"Method was expected to be {self.counter.describe()}, "
                f"actually called {self.invocations} times."
            )


class MockObject(NonCallableMock):
    """Mock specced on a class that records method expectations."""

    def __init__(
        self,
        spec: type,
        methods: Optional[Iterable[str]] = None,
        mock_class_name: str = "",
        **kwargs,
    ):
        super().__init__(spec=spec, **kwargs)
        self._mocked_class_name = mock_class_name or spec.__name__
        self._configurable = set(methods) if methods is not None else None
        self._expectations: list[Expectation] = []

    def expects(self, counter: InvocationCounter) -> Expectation:
        """Start an expectation with an invocation count rule."""
        return Expectation(self, counter)

    def _register(self, expectation: Expectation) -> None:
        name = expectation.method_name
        if self._configurable is not None and name not in self._configurable:
            raise FrameworkError(
                f"Trying to configure method {name!r} which cannot be configured "
                f"because it was not listed for {self._mocked_class_name}."
            )
        try:
            child = getattr(self, name)
        except AttributeError:
            raise FrameworkError(
                f"Trying to configure method {name!r} which cannot be configured "
                f"because it does not exist on {self._mocked_class_name}."
            ) from None

        self._expectations.append(expectation)
        matching = [e for e in self._expectations if e.method_name == name]

        def dispatch(*args, **kwargs):
            result = None
            for candidate in matching:
                result = candidate.invoke(args, kwargs)
            return result

        child.side_effect = dispatch

    def has_matchers(self) -> bool:
        return any(e.has_matchers for e in self._expectations)

    def verify(self) -> None:
        """Verify every expectation registered on this mock."""
        for expectation in self._expectations:
            expectation.verify()


def mock_abstract_class(cls: type, args: tuple = (), call_original_constructor: bool = True) -> Any:
    """Instantiate a concrete subclass whose abstract methods return None."""
    abstract = getattr(cls, "__abstractmethods__", frozenset())
    namespace: dict[str, Any] = {
        name: (lambda self, *a, **kw: None) for name in abstract
    }
    if not call_original_constructor:
        namespace["__init__"] = lambda self, *a, **kw: None
    concrete = type(cls)(f"Mock_{cls.__name__}", (cls,), namespace)
    return concrete(*args)
