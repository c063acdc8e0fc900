"""Test suites: recursive composites of tests."""

import inspect
import logging
from typing import Any, Iterator, Optional, Union

from unitrunner.framework.dataprovider import get_provided_data
from unitrunner.framework.exceptions import (
    NON_RECOVERABLE,
    ExceptionWrapper,
    FrameworkError,
    IncompleteTestError,
    SkippedTestError,
    SkippedTestSuiteError,
    classify,
)
from unitrunner.framework.metadata import (
    get_dependencies,
    get_descriptor,
    get_groups,
    get_hook_methods,
)
from unitrunner.framework.testcase import (
    IncompleteTestCase,
    PlaceholderTestCase,
    SkippedTestCase,
    Test,
    TestCase,
    WarningTestCase,
)

logger = logging.getLogger(__name__)

DEFAULT_GROUP = "default"


class TestSuite(Test):
    """A composite of tests, run in insertion order.

    A suite built from a TestCase subclass also runs that class's
    ``before_class`` and ``after_class`` hooks around its children::

        suite = TestSuite.from_class(StackTest)
        suite.add_test(OtherTest("test_something"))
        result = suite.run()
    """

    def __init__(self, name: str = "", the_class: Optional[type] = None):
        self.name = name
        self.the_class = the_class
        self._tests: list[Test] = []
        self._groups: dict[str, list[Test]] = {}
        self._num_tests: Optional[int] = None
        self._filter_factory = None
        self.backup_globals: Optional[bool] = None
        self.backup_static_attributes: Optional[bool] = None
        self.disallow_changes_to_global_state: Optional[bool] = None

    @classmethod
    def from_class(cls, the_class: type) -> "TestSuite":
        """Build a suite holding one test per test method of a TestCase subclass."""
        if not (inspect.isclass(the_class) and issubclass(the_class, TestCase)):
            raise FrameworkError(f"{the_class!r} is not a TestCase subclass.")

        suite = cls(the_class.__name__, the_class)

        if inspect.isabstract(the_class):
            suite.add_test(
                cls.warning(f'Cannot instantiate class "{the_class.__name__}".')
            )
            return suite

        for method in get_descriptor(the_class).test_methods:
            suite.add_test_method(the_class, method)

        if not suite._tests:
            suite.add_test(cls.warning(f'No tests found in class "{the_class.__name__}".'))

        return suite

    def __str__(self) -> str:
        return self.get_name()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} tests={len(self._tests)}>"

    def get_name(self) -> str:
        return self.name

    def set_name(self, name: str) -> None:
        self.name = name

    # Building ----------------------------------------------------------------

    def add_test(self, test: Test, groups=()) -> None:
        """Add a test, registering it under its groups.

        Args:
            test: A test case, suite or repeated test
            groups: Group names to register the test under, ``default`` when empty
        """
        self._tests.append(test)
        self._num_tests = None

        groups = tuple(groups)
        if isinstance(test, TestSuite) and not groups:
            groups = tuple(test.groups())
        if not groups:
            groups = (DEFAULT_GROUP,)

        for name in groups:
            members = self._groups.setdefault(name, [])
            if test not in members:
                members.append(test)

    def add_test_suite(self, test_class: Union[type, "TestSuite"]) -> None:
        """Add a suite, or the suite built from a TestCase subclass.

        A class providing a ``suite()`` classmethod builds its own suite.
        """
        if isinstance(test_class, TestSuite):
            self.add_test(test_class)
            return

        if not inspect.isclass(test_class):
            raise FrameworkError(f"{test_class!r} is neither a class nor a TestSuite.")

        factory = getattr(test_class, "suite", None)
        if callable(factory):
            self.add_test(factory())
        else:
            self.add_test(TestSuite.from_class(test_class))

    def add_test_method(self, the_class: type, method: str) -> None:
        """Add the test built for one method of a TestCase subclass."""
        test = self.create_test(the_class, method)

        if isinstance(test, (TestCase, DataProviderTestSuite)):
            test.set_dependencies(get_dependencies(the_class, method))

        self.add_test(test, get_groups(the_class, method))

    @classmethod
    def create_test(cls, the_class: type, method: str) -> Test:
        """Build the test for one method, expanding its data provider.

        Args:
            the_class: The TestCase subclass declaring the method
            method: Name of the test method

        Returns:
            The TestCase itself when the method has no provider, otherwise a
            DataProviderTestSuite holding one test per data set, or a single
            placeholder test when the data cannot be loaded
        """
        label = f"{the_class.__name__}::{method}"
        data: Any = None

        try:
            data = get_provided_data(the_class, method)
        except IncompleteTestError as e:
            data = cls.incomplete_test(
                the_class.__name__,
                method,
                _with_detail(f"Test for {label} marked incomplete by data provider", e),
            )
        except SkippedTestError as e:
            data = cls.skip_test(
                the_class.__name__,
                method,
                _with_detail(f"Test for {label} skipped by data provider", e),
            )
        except NON_RECOVERABLE:
            raise
        except Exception as e:
            logger.warning("Data provider for %s failed: %s", label, e)
            data = cls.warning(
                _with_detail(f"The data provider specified for {label} is invalid.", e)
            )

        if data is None:
            return the_class(method)

        suite = DataProviderTestSuite(label)
        groups = get_groups(the_class, method)

        if isinstance(data, PlaceholderTestCase):
            suite.add_test(data, groups)
        else:
            for data_name, row in data.items():
                suite.add_test(the_class(method, row, data_name), groups)

        return suite

    @staticmethod
    def warning(message: str) -> WarningTestCase:
        return WarningTestCase(message)

    @staticmethod
    def skip_test(class_name: str, method: str, message: str) -> SkippedTestCase:
        return SkippedTestCase(class_name, method, message)

    @staticmethod
    def incomplete_test(class_name: str, method: str, message: str) -> IncompleteTestCase:
        return IncompleteTestCase(class_name, method, message)

    # Inspection --------------------------------------------------------------

    def __iter__(self) -> Iterator[Test]:
        for test in self._tests:
            if self._filter_factory is None or self._filter_factory.accept(test, self):
                yield test

    def tests(self) -> list[Test]:
        """Get the direct children, ignoring any filter."""
        return list(self._tests)

    def test_at(self, index: int) -> Optional[Test]:
        """Get the direct child at an index, or None when out of range."""
        if 0 <= index < len(self._tests):
            return self._tests[index]
        return None

    def leaves(self) -> Iterator[Test]:
        """Iterate the selected non-suite tests, depth first."""
        for test in self:
            if isinstance(test, TestSuite):
                yield from test.leaves()
            elif isinstance(test, RepeatedTest):
                yield test.test
            else:
                yield test

    def count(self, prefer_cache: bool = False) -> int:
        """Number of test cases the suite will run."""
        if prefer_cache and self._num_tests is not None:
            return self._num_tests
        self._num_tests = sum(test.count() for test in self)
        return self._num_tests

    def __len__(self) -> int:
        return self.count()

    def groups(self) -> list[str]:
        return list(self._groups)

    def group_details(self) -> dict[str, list[Test]]:
        """Get the group registry mapping group names to their tests."""
        return self._groups

    def set_group_details(self, groups: dict[str, list[Test]]) -> None:
        """Replace the group registry.

        Args:
            groups: Mapping of group names to the tests registered under them
        """
        self._groups = groups

    def inject_filter(self, factory) -> None:
        """Apply a filter to this suite and every nested suite."""
        self._filter_factory = factory
        self._num_tests = None
        for test in self._tests:
            if isinstance(test, TestSuite):
                test.inject_filter(factory)

    # Flags -------------------------------------------------------------------

    def set_backup_globals(self, flag: Optional[bool]) -> None:
        """Set the flag unless it is already set; None leaves it unchanged."""
        if self.backup_globals is None and isinstance(flag, bool):
            self.backup_globals = flag

    def set_backup_static_attributes(self, flag: Optional[bool]) -> None:
        if self.backup_static_attributes is None and isinstance(flag, bool):
            self.backup_static_attributes = flag

    def set_disallow_changes_to_global_state(self, flag: Optional[bool]) -> None:
        if self.disallow_changes_to_global_state is None and isinstance(flag, bool):
            self.disallow_changes_to_global_state = flag

    # Running -----------------------------------------------------------------

    def set_up(self) -> None:
        """Template method run before the suite's tests."""

    def tear_down(self) -> None:
        """Template method run after the suite's tests."""

    def mark_test_suite_skipped(self, message: str = "") -> None:
        raise SkippedTestSuiteError(message)

    def create_result(self):
        from unitrunner.framework.result import TestResult

        return TestResult()

    def _class_hooks(self, kind: str) -> list:
        if self.the_class is None:
            return []
        return [
            getattr(self.the_class, method)
            for method in get_hook_methods(self.the_class)[kind]
            if hasattr(self.the_class, method)
        ]

    def run(self, result=None):
        """Run every selected child against a shared TestResult.

        Args:
            result: The TestResult to record into, created when omitted

        Returns:
            The TestResult that was used
        """
        if result is None:
            result = self.create_result()

        if self.count() == 0:
            return result

        result.start_test_suite(self)

        try:
            self.set_up()
            for hook in self._class_hooks("before_class"):
                hook()
        except NON_RECOVERABLE:
            raise
        except SkippedTestSuiteError as e:
            self._fail_all(result, e, result.add_failure)
            self.tear_down()
            result.end_test_suite(self)
            return result
        except Exception as e:
            if not isinstance(e, FrameworkError):
                e = ExceptionWrapper(e)
            self._fail_all(result, e, result.add_error)
            self.tear_down()
            result.end_test_suite(self)
            return result

        try:
            for test in self:
                if result.should_stop():
                    break

                if isinstance(test, (TestCase, TestSuite)):
                    test.set_disallow_changes_to_global_state(
                        self.disallow_changes_to_global_state
                    )
                    test.set_backup_globals(self.backup_globals)
                    test.set_backup_static_attributes(self.backup_static_attributes)

                test.run(result)

            for hook in self._class_hooks("after_class"):
                try:
                    hook()
                except NON_RECOVERABLE:
                    raise
                except Exception as e:
                    logger.error("%s raised in %s: %s", hook.__name__, self.name, e)
                    self.warning(
                        f"Exception in {self.name}::{hook.__name__}\n{ExceptionWrapper(e)}"
                    ).run(result)
        finally:
            self.tear_down()

        result.end_test_suite(self)
        return result

    def _fail_all(self, result, exc: BaseException, record) -> None:
        """Record the same outcome for every test without running it."""
        logger.debug("Suite %s failed to set up: %s", self.name, exc)
        status = classify(exc)
        for test in self.leaves():
            if isinstance(test, TestCase):
                test.status = status
                test.status_message = str(exc)
            result.start_test(test)
            record(test, exc, 0.0)
            result.end_test(test, 0.0)


class DataProviderTestSuite(TestSuite):
    """Suite holding one test per data set of a single test method."""

    def __init__(self, name: str = ""):
        super().__init__(name)
        self.dependencies: list[str] = []

    def set_dependencies(self, dependencies) -> None:
        """Give every data set the dependencies of the method."""
        self.dependencies = list(dependencies)
        for test in self._tests:
            if isinstance(test, TestCase) and not isinstance(test, PlaceholderTestCase):
                test.set_dependencies(self.dependencies)

    def has_dependencies(self) -> bool:
        return bool(self.dependencies)


class RepeatedTest(Test):
    """Runs a test several times in a row."""

    def __init__(self, test: Test, times: int = 1):
        """Initialize the repetition.

        Args:
            test: The test to repeat
            times: How often to run it; zero runs nothing

        Raises:
            FrameworkError: If times is negative or not an integer
        """
        if not isinstance(times, int) or times < 0:
            raise FrameworkError("Argument #2 (times) must be a non-negative integer.")
        self.test = test
        self.times = times

    def __str__(self) -> str:
        return f"{self.test} (repeated {self.times} times)"

    def count(self) -> int:
        return self.times * self.test.count()

    def run(self, result=None):
        if result is None:
            from unitrunner.framework.result import TestResult

            result = TestResult()

        for _ in range(self.times):
            if result.should_stop():
                break
            self.test.run(result)

        return result


def _with_detail(message: str, exc: BaseException) -> str:
    detail = str(exc)
    if detail:
        return f"{message}\n{detail}"
    return message
