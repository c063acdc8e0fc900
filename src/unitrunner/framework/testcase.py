"""Test case: a single executable test and its fixture lifecycle."""

import locale
import logging
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Callable, Optional, Union

from unitrunner.framework.assertions import Assert
from unitrunner.framework.constraints import (
    ExceptionCode,
    ExceptionMessage,
    ExceptionMessageRegex,
    ExceptionType,
    IsEqual,
    RegularExpression,
    export,
)
from unitrunner.framework.exceptions import (
    NON_RECOVERABLE,
    AssertionFailedError,
    FrameworkError,
    RiskyTestError,
    SkippedTestError,
    classify,
)
from unitrunner.framework.metadata import (
    ExpectedException,
    MethodMetadata,
    get_descriptor,
    get_hook_methods,
)
from unitrunner.framework.mock import (
    AnyInvokedCount,
    InvocationCounter,
    InvokedAtLeastCount,
    InvokedAtMostCount,
    InvokedCount,
    MockObject,
    mock_abstract_class,
)
from unitrunner.framework.models import TestSize, TestStatus
from unitrunner.framework.output import OutputBuffer

logger = logging.getLogger(__name__)

DataSetKey = Union[int, str]

LOCALE_CATEGORIES = {
    locale.LC_ALL,
    locale.LC_COLLATE,
    locale.LC_CTYPE,
    locale.LC_MONETARY,
    locale.LC_NUMERIC,
    locale.LC_TIME,
}
if hasattr(locale, "LC_MESSAGES"):
    LOCALE_CATEGORIES.add(locale.LC_MESSAGES)


class Test(ABC):
    """Anything that can be counted and run against a TestResult."""

    __test__ = False

    @abstractmethod
    def count(self) -> int:
        """Number of test cases this test runs."""
        pass

    @abstractmethod
    def run(self, result=None):
        """Run the test, collecting the outcome in a TestResult.

        Args:
            result: The TestResult to record into, created when omitted

        Returns:
            The TestResult that was used
        """
        pass


class TestCase(Assert, Test):
    """A test case defines the fixture to run multiple tests.

    Subclass it, put fixture setup in ``set_up`` (or methods decorated with
    ``@before``) and write test methods whose names start with ``test``::

        class StackTest(TestCase):
            def set_up(self):
                self.stack = []

            def test_push(self):
                self.stack.append("foo")
                self.assert_equals(["foo"], self.stack)
    """

    # Class-wide metadata, applied to every test method.
    groups: tuple[str, ...] = ()
    depends: tuple[str, ...] = ()
    size: Optional[TestSize] = None

    def __init__(
        self,
        name: Optional[str] = None,
        data: tuple = (),
        data_name: Optional[DataSetKey] = None,
    ):
        self.name = name or ""
        self.data = tuple(data)
        self.data_name = data_name

        self.num_assertions = 0
        self.status = TestStatus.UNKNOWN
        self.status_message = ""
        self.dependencies: list[str] = []
        self.dependency_input: dict[str, Any] = {}
        self.in_isolation = False
        self.use_error_handler: Optional[bool] = None
        self.backup_globals: Optional[bool] = None
        self.backup_static_attributes: Optional[bool] = None
        self.disallow_changes_to_global_state: Optional[bool] = None

        self.expected_exception = ExpectedException()
        self.output = ""
        self.output_expected_string: Optional[str] = None
        self.output_expected_regex: Optional[str] = None
        self.output_callback: Optional[Callable[[str], str]] = None
        self._output_buffering_active = False
        self._output_buffering_level = 0

        self._env_settings: dict[str, Optional[str]] = {}
        self._locale_settings: dict[int, str] = {}
        self._mock_objects: list[MockObject] = []
        self._result_object = None
        self._returned: Any = None

        if self.name:
            metadata = self.get_annotations()
            self.expected_exception = replace(metadata.expected_exception)
            self.use_error_handler = metadata.use_error_handler

    # Identity ----------------------------------------------------------------

    def __str__(self) -> str:
        return f"{type(self).__name__}::{self.get_name(False)}{self._data_set_as_string()}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get_name()!r}>"

    def count(self) -> int:
        return 1

    def get_name(self, with_data_set: bool = True) -> str:
        """Get the test name, optionally with its data set label."""
        if with_data_set:
            return self.name + self._data_set_as_string(include_data=False)
        return self.name

    def set_name(self, name: str) -> None:
        self.name = name

    def qualified_name(self) -> str:
        """Get the ``Class::method`` key used for dependency lookups."""
        return f"{type(self).__name__}::{self.get_name()}"

    @property
    def has_data_set(self) -> bool:
        return self.data_name is not None

    def _data_set_as_string(self, include_data: bool = True) -> str:
        if not self.has_data_set:
            return ""
        if isinstance(self.data_name, int):
            buffer = f" with data set #{self.data_name}"
        else:
            buffer = f' with data set "{self.data_name}"'
        if include_data:
            buffer += " (" + ", ".join(export(value, 30) for value in self.data) + ")"
        return buffer

    def get_annotations(self) -> MethodMetadata:
        """Get the metadata declared on this test's method."""
        return get_descriptor(type(self)).method(self.name)

    def get_size(self) -> TestSize:
        return self.get_annotations().size

    def get_groups(self) -> tuple[str, ...]:
        return self.get_annotations().groups

    def is_todo(self) -> bool:
        return self.get_annotations().todo

    # State -------------------------------------------------------------------

    def get_status(self) -> TestStatus:
        return self.status

    def get_status_message(self) -> str:
        return self.status_message

    def has_failed(self) -> bool:
        """Check whether the last run ended in an error or a failure."""
        return self.status.is_failure

    def get_result(self) -> Any:
        """Get the value returned by the test method."""
        return self._returned

    def set_result(self, value: Any) -> None:
        self._returned = value

    def get_test_result_object(self):
        return self._result_object

    def set_test_result_object(self, result) -> None:
        self._result_object = result

    def set_dependencies(self, dependencies) -> None:
        """Set the tests that must pass before this one runs.

        Args:
            dependencies: Names in ``Class::method`` form, or bare method names
                resolved against this class
        """
        self.dependencies = list(dependencies)

    def has_dependencies(self) -> bool:
        return bool(self.dependencies)

    def set_dependency_input(self, dependency_input: dict[str, Any]) -> None:
        """Set the values returned by the prerequisites, keyed by test name."""
        self.dependency_input = dict(dependency_input)

    def set_in_isolation(self, in_isolation: bool) -> None:
        self.in_isolation = bool(in_isolation)

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

    # Expectations ------------------------------------------------------------

    def expect_exception(self, exception: Union[type, str]) -> None:
        self.expected_exception.exception = exception

    def expect_exception_message(self, message: str) -> None:
        self.expected_exception.message = message

    def expect_exception_message_matches(self, pattern: str) -> None:
        self.expected_exception.message_regex = pattern

    def expect_exception_code(self, code: int) -> None:
        self.expected_exception.code = code

    def set_expected_exception(
        self,
        exception: Union[type, str],
        message: str = "",
        code: Optional[int] = None,
    ) -> None:
        """Expect the test to raise, replacing any earlier expectation.

        Args:
            exception: Exception class, or its name
            message: Text the exception message must contain
            code: Code the exception must carry
        """
        self.expected_exception = ExpectedException(exception, message or None, None, code)

    def get_expected_exception(self) -> Optional[Union[type, str]]:
        return self.expected_exception.exception

    def expect_output_string(self, expected: str) -> None:
        self.output_expected_string = expected

    def expect_output_regex(self, pattern: str) -> None:
        self.output_expected_regex = pattern

    def has_expectation_on_output(self) -> bool:
        return self.output_expected_string is not None or self.output_expected_regex is not None

    def set_output_callback(self, callback: Callable[[str], str]) -> None:
        """Transform the captured output before it is checked.

        An exception raised by the callback is reported as the test's error.

        Args:
            callback: Called with the captured output, returns the new output

        Raises:
            FrameworkError: If callback is not callable
        """
        if not callable(callback):
            raise FrameworkError("Output callback must be callable.")
        self.output_callback = callback

    def get_actual_output(self) -> str:
        """Get the output printed so far, or the captured output after the run."""
        if self._output_buffering_active:
            return OutputBuffer.contents()
        return self.output

    def has_output(self) -> bool:
        # Output checked by an expectation does not count.
        if not self.output:
            return False
        return not self.has_expectation_on_output()

    # Running -----------------------------------------------------------------

    def create_result(self):
        from unitrunner.framework.result import TestResult

        return TestResult()

    def run(self, result=None):
        """Run the test case and collect the outcome in a TestResult.

        A fresh TestResult is created when none is given.
        """
        if result is None:
            result = self.create_result()

        self.set_test_result_object(result)

        old_error_handler = None
        if self.use_error_handler is not None:
            old_error_handler = result.get_convert_errors_to_exceptions()
            result.convert_errors_to_exceptions(self.use_error_handler)

        try:
            if self.handle_dependencies():
                result.run(self)
        finally:
            if self.use_error_handler is not None:
                result.convert_errors_to_exceptions(old_error_handler)
            self._result_object = None

        return result

    def run_bare(self) -> None:
        """Run the bare test sequence: hooks, body, verification, teardown."""
        self.num_assertions = 0
        self.status = TestStatus.UNKNOWN
        self.status_message = ""
        self.output = ""
        self._returned = None
        error: Optional[BaseException] = None
        hook_methods = get_hook_methods(type(self))
        cwd = os.getcwd()
        global_snapshot = self._snapshot_globals()
        static_snapshot = self._snapshot_static_attributes()

        self._start_output_buffering()
        try:
            try:
                if self.in_isolation:
                    for method in hook_methods["before_class"]:
                        getattr(type(self), method)()

                for method in hook_methods["before"]:
                    getattr(self, method)()

                self.assert_pre_conditions()
                self._returned = self.run_test()
                self._verify_mock_objects()
                self.assert_post_conditions()

                self.status = TestStatus.PASSED
            except NON_RECOVERABLE:
                raise
            except Exception as e:
                error = e
                self.status = classify(e)
                self.status_message = str(e)

            self._mock_objects = []

            # An exception raised in an after hook is only reported when
            # nothing failed before it.
            try:
                for method in hook_methods["after"]:
                    getattr(self, method)()

                if self.in_isolation:
                    for method in hook_methods["after_class"]:
                        getattr(type(self), method)()
            except NON_RECOVERABLE:
                raise
            except Exception as e:
                if error is None:
                    error = e
                    self.status = classify(e)
                    self.status_message = str(e)
        finally:
            try:
                self._stop_output_buffering()
            except NON_RECOVERABLE:
                raise
            except Exception as e:
                # Raised by an unbalanced buffer or by the output callback.
                if error is None:
                    error = e
                    self.status = classify(e)
                    self.status_message = str(e)
            finally:
                if os.getcwd() != cwd:
                    os.chdir(cwd)
                self._restore_settings()

                global_error = self._restore_globals(global_snapshot)
                self._restore_static_attributes(static_snapshot)
                if global_error is not None and error is None:
                    error = global_error
                    self.status = TestStatus.RISKY
                    self.status_message = str(global_error)

        if error is None:
            try:
                if self.output_expected_regex is not None:
                    self.assert_regex(self.output_expected_regex, self.output)
                elif self.output_expected_string is not None:
                    self.assert_equals(self.output_expected_string, self.output)
            except AssertionFailedError as e:
                error = e
                self.status = TestStatus.FAILURE
                self.status_message = str(e)

        if error is not None:
            self.on_not_successful_test(error)

    def run_test(self) -> Any:
        """Invoke the test method and check exception expectations.

        Override to run the test and assert its state.
        """
        if not self.name:
            raise FrameworkError("TestCase name must not be empty.")

        method = getattr(self, self.name, None)
        if method is None or not callable(method):
            self.fail(f"test method not exist {type(self).__name__}::{self.name}.")

        arguments = list(self.data) + list(self.dependency_input.values())

        try:
            returned = method(*arguments)
        except NON_RECOVERABLE:
            raise
        except Exception as e:
            if self._should_check_exception(e):
                self._check_exception(e)
                return None
            raise

        if self.expected_exception.is_set:
            self.assert_that(
                None, ExceptionType(self.expected_exception.exception or Exception)
            )

        return returned

    def _should_check_exception(self, exc: Exception) -> bool:
        if isinstance(exc, SkippedTestError) or not self.expected_exception.is_set:
            return False
        if isinstance(exc, (FrameworkError, AssertionError)):
            # Framework signals are only inspected when explicitly expected.
            expected = self.expected_exception.exception
            return isinstance(expected, type) and isinstance(exc, expected)
        return True

    def _check_exception(self, exc: Exception) -> None:
        expected = self.expected_exception

        if expected.exception is not None:
            self.assert_that(exc, ExceptionType(expected.exception))

        if expected.message:
            self.assert_that(exc, ExceptionMessage(expected.message))

        if expected.message_regex:
            self.assert_that(exc, ExceptionMessageRegex(expected.message_regex))

        if expected.code is not None:
            self.assert_that(exc, ExceptionCode(expected.code))

    def handle_dependencies(self) -> bool:
        """Resolve declared dependencies against the tests passed so far.

        Returns False, after recording the test as skipped, when a
        dependency has not passed or is larger than this test.
        """
        if not self.dependencies or self.in_isolation:
            return True

        class_name = type(self).__name__
        passed = self._result_object.passed()
        passed_keys = {key.partition(" with data set")[0] for key in passed}

        self.dependency_input = {}
        for dependency in self.dependencies:
            if "::" not in dependency:
                dependency = f"{class_name}::{dependency}"

            if dependency not in passed_keys:
                self._skip_for_dependency(f'This test depends on "{dependency}" to pass.')
                return False

            if dependency in passed:
                record = passed[dependency]
                own_size = self.get_size()
                if (
                    record.size != TestSize.UNKNOWN
                    and own_size != TestSize.UNKNOWN
                    and record.size > own_size
                ):
                    self._skip_for_dependency(
                        "This test depends on a test that is larger than itself."
                    )
                    return False
                self.dependency_input[dependency] = record.result
            else:
                self.dependency_input[dependency] = None

        return True

    def _skip_for_dependency(self, message: str) -> None:
        logger.debug("Skipping %s: %s", self, message)
        self.status = TestStatus.SKIPPED
        self.status_message = message
        result = self._result_object
        result.start_test(self)
        result.add_error(self, SkippedTestError(message), 0.0)
        result.end_test(self, 0.0)

    # Extension points --------------------------------------------------------

    @classmethod
    def set_up_before_class(cls) -> None:
        """Called before the first test of this class is run."""

    def set_up(self) -> None:
        """Sets up the fixture. Called before every test."""

    def assert_pre_conditions(self) -> None:
        """Assertions shared by all tests, run after set up."""

    def assert_post_conditions(self) -> None:
        """Assertions shared by all tests, run before tear down."""

    def tear_down(self) -> None:
        """Tears down the fixture. Called after every test."""

    @classmethod
    def tear_down_after_class(cls) -> None:
        """Called after the last test of this class is run."""

    def on_not_successful_test(self, exc: BaseException) -> None:
        """Called when a test did not pass; must re-raise by default."""
        raise exc

    # Scoped settings ---------------------------------------------------------

    def set_env(self, name: str, value: Optional[str]) -> None:
        """Set an environment variable for the duration of this test."""
        if not isinstance(name, str) or not name:
            raise FrameworkError("Environment variable name must be a non-empty string.")
        if name not in self._env_settings:
            self._env_settings[name] = os.environ.get(name)
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = str(value)

    def set_locale(self, category: int, locale_name: str) -> None:
        """Change a locale category for the duration of this test."""
        if category not in LOCALE_CATEGORIES:
            raise FrameworkError(f"Invalid locale category: {category!r}")
        if not isinstance(locale_name, str):
            raise FrameworkError("Locale name must be a string.")
        if category not in self._locale_settings:
            self._locale_settings[category] = locale.setlocale(category)
        try:
            locale.setlocale(category, locale_name)
        except locale.Error as e:
            raise FrameworkError(
                "The locale functionality is not implemented on your platform, "
                "the specified locale does not exist or the category name is "
                "invalid."
            ) from e

    def _restore_settings(self) -> None:
        for name, value in self._env_settings.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value
        self._env_settings = {}

        for category, value in self._locale_settings.items():
            try:
                locale.setlocale(category, value)
            except locale.Error:
                logger.warning("Could not restore locale category %s to %r", category, value)
        self._locale_settings = {}

    # Global state ------------------------------------------------------------

    def _module_globals(self) -> Optional[dict]:
        module = sys.modules.get(type(self).__module__)
        return vars(module) if module is not None else None

    def _snapshot_globals(self) -> Optional[dict]:
        if not (self.backup_globals or self.disallow_changes_to_global_state):
            return None
        module_globals = self._module_globals()
        return dict(module_globals) if module_globals is not None else None

    def _restore_globals(self, snapshot: Optional[dict]) -> Optional[RiskyTestError]:
        if snapshot is None:
            return None
        module_globals = self._module_globals()
        changed = [
            key
            for key in set(snapshot) | set(module_globals)
            if snapshot.get(key, snapshot) is not module_globals.get(key, snapshot)
        ]
        if self.backup_globals:
            for key in set(module_globals) - set(snapshot):
                del module_globals[key]
            module_globals.update(snapshot)
        if changed and self.disallow_changes_to_global_state:
            return RiskyTestError(
                "This test modified global state but was not expected to do so: "
                + ", ".join(sorted(changed))
            )
        return None

    def _snapshot_static_attributes(self) -> Optional[dict]:
        if not self.backup_static_attributes:
            return None
        return {
            klass: {
                key: value
                for key, value in vars(klass).items()
                if not key.startswith(("__", "_abc_")) and not callable(value)
                and not isinstance(value, (classmethod, staticmethod, property))
            }
            for klass in type(self).__mro__
            if issubclass(klass, TestCase) and klass is not TestCase
        }

    def _restore_static_attributes(self, snapshot: Optional[dict]) -> None:
        if snapshot is None:
            return
        for klass, attributes in snapshot.items():
            for key, value in attributes.items():
                setattr(klass, key, value)

    # Output ------------------------------------------------------------------

    def _start_output_buffering(self) -> None:
        self._output_buffering_level = OutputBuffer.start()
        self._output_buffering_active = True

    def _stop_output_buffering(self) -> None:
        self._output_buffering_active = False
        if OutputBuffer.level() != self._output_buffering_level:
            OutputBuffer.unwind(self._output_buffering_level - 1)
            raise RiskyTestError(
                "Test code or tested code did not (only) close its own output buffers"
            )

        self.output = OutputBuffer.end()
        if self.output_callback is not None:
            self.output = self.output_callback(self.output)

    # Mock objects ------------------------------------------------------------

    def create_mock(self, original_class: type) -> MockObject:
        """Create a mock object specced on a class."""
        return self.get_mock(original_class)

    def get_mock(
        self,
        original_class: type,
        methods: Optional[list[str]] = None,
        mock_class_name: str = "",
    ) -> MockObject:
        """Create a mock object, optionally limiting which methods can be configured."""
        mock = MockObject(spec=original_class, methods=methods, mock_class_name=mock_class_name)
        self._mock_objects.append(mock)
        return mock

    def get_mock_for_abstract_class(
        self,
        original_class: type,
        arguments: tuple = (),
        call_original_constructor: bool = True,
    ) -> Any:
        """Instantiate an abstract class with its abstract methods stubbed."""
        return mock_abstract_class(original_class, arguments, call_original_constructor)

    def _verify_mock_objects(self) -> None:
        for mock in self._mock_objects:
            if mock.has_matchers():
                self.num_assertions += 1
            mock.verify()

    @staticmethod
    def any() -> InvocationCounter:
        return AnyInvokedCount()

    @staticmethod
    def never() -> InvocationCounter:
        return InvokedCount(0)

    @staticmethod
    def once() -> InvocationCounter:
        return InvokedCount(1)

    @staticmethod
    def exactly(count: int) -> InvocationCounter:
        return InvokedCount(count)

    @staticmethod
    def at_least(required: int) -> InvocationCounter:
        return InvokedAtLeastCount(required)

    @staticmethod
    def at_least_once() -> InvocationCounter:
        return InvokedAtLeastCount(1)

    @staticmethod
    def at_most(allowed: int) -> InvocationCounter:
        return InvokedAtMostCount(allowed)

    @staticmethod
    def equal_to(value: Any) -> IsEqual:
        return IsEqual(value)

    @staticmethod
    def matches_regex(pattern: str) -> RegularExpression:
        return RegularExpression(pattern)


class PlaceholderTestCase(TestCase):
    """Stands in for a test that could not be built."""

    def __init__(self, class_name: str, method_name: str, message: str = ""):
        super().__init__(method_name)
        self.class_name = class_name
        self.message = message

    def __str__(self) -> str:
        return f"{self.class_name}::{self.name}"

    def qualified_name(self) -> str:
        return str(self)

    def get_annotations(self) -> MethodMetadata:
        return MethodMetadata(name=self.name)


class SkippedTestCase(PlaceholderTestCase):
    """A test skipped before it could be built, e.g. by its data provider."""

    def run_test(self) -> Any:
        self.mark_test_skipped(self.message)


class IncompleteTestCase(PlaceholderTestCase):
    """A test marked incomplete before it could be built."""

    def run_test(self) -> Any:
        self.mark_test_incomplete(self.message)


class WarningTestCase(PlaceholderTestCase):
    """Reports a problem found while building the suite as a failure."""

    def __init__(self, message: str = ""):
        super().__init__("Warning", "warning", message)

    def __str__(self) -> str:
        return "Warning"

    def run_test(self) -> Any:
        self.fail(self.message)
