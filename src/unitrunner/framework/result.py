"""Collects test outcomes and dispatches them to listeners."""

import logging
import threading
import time as _time
import warnings
from typing import Any, Optional

from unitrunner.framework.exceptions import (
    NON_RECOVERABLE,
    ExceptionWrapper,
    FrameworkError,
    OutputError,
    RiskyTestError,
    classify,
)
from unitrunner.framework.listener import TestListener
from unitrunner.framework.models import PassedTest, TestFailure, TestStatus

logger = logging.getLogger(__name__)

# Bucket and listener callback for each non-passing status, plus the
# stop-on flags that halt the run when it is recorded.
_ERROR_DISPATCH = {
    TestStatus.RISKY: ("_risky", "add_risky_test", ("stop_on_risky",)),
    TestStatus.INCOMPLETE: ("_not_implemented", "add_incomplete_test", ("stop_on_incomplete",)),
    TestStatus.SKIPPED: ("_skipped", "add_skipped_test", ("stop_on_skipped",)),
    TestStatus.FAILURE: ("_errors", "add_error", ("stop_on_error", "stop_on_failure")),
    TestStatus.ERROR: ("_errors", "add_error", ("stop_on_error", "stop_on_failure")),
}

_FAILURE_DISPATCH = {
    TestStatus.RISKY: ("_risky", "add_risky_test", ("stop_on_risky",)),
    TestStatus.INCOMPLETE: ("_not_implemented", "add_incomplete_test", ("stop_on_incomplete",)),
    TestStatus.SKIPPED: ("_skipped", "add_skipped_test", ("stop_on_skipped",)),
    TestStatus.FAILURE: ("_failures", "add_failure", ("stop_on_failure",)),
    TestStatus.ERROR: ("_failures", "add_failure", ("stop_on_failure",)),
}


class TestResult:
    """Aggregates the outcome of a test run.

    Holds one bucket per outcome kind plus the map of passed tests used
    for dependency resolution. Execution happens in the tests themselves;
    :meth:`run` only wraps a single test case with timing, warning
    escalation and the strictness checks.
    """

    __test__ = False

    def __init__(self):
        self._lock = threading.RLock()
        self._passed: dict[str, PassedTest] = {}
        self._errors: list[TestFailure] = []
        self._failures: list[TestFailure] = []
        self._not_implemented: list[TestFailure] = []
        self._risky: list[TestFailure] = []
        self._skipped: list[TestFailure] = []
        self._listeners: list[TestListener] = []
        self._run_tests = 0
        self._time = 0.0
        self._top_test_suite = None
        self._last_test_failed = False
        self._stop = False

        self._convert_errors_to_exceptions = True
        self.stop_on_error = False
        self.stop_on_failure = False
        self.stop_on_risky = False
        self.stop_on_incomplete = False
        self.stop_on_skipped = False
        self.strict_about_tests_that_do_not_test_anything = False
        self.strict_about_output_during_tests = False
        self.strict_about_todo_annotated_tests = False

    # Listeners ---------------------------------------------------------------

    def add_listener(self, listener: TestListener) -> None:
        """Register a listener notified of every test event.

        Args:
            listener: The listener to add
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: TestListener) -> None:
        """Unregister a listener, matched by identity."""
        self._listeners = [l for l in self._listeners if l is not listener]

    def flush_listeners(self) -> None:
        for listener in self._listeners:
            listener.flush()

    # Recording ---------------------------------------------------------------

    def _record(self, dispatch: dict, test, exc: BaseException, time: float) -> None:
        status = classify(exc)
        bucket, callback, stop_flags = dispatch[status]

        with self._lock:
            getattr(self, bucket).append(TestFailure(test, exc, time))
            if any(getattr(self, flag) for flag in stop_flags):
                self.stop()
            self._last_test_failed = True
            self._time += time

        logger.debug("%s: %s (%s)", status.value, test, exc)
        for listener in self._listeners:
            getattr(listener, callback)(test, exc, time)

    def add_error(self, test, exc: BaseException, time: float) -> None:
        """Record an error, or the risky/incomplete/skipped outcome it signals.

        Args:
            test: The test that raised
            exc: The exception raised by the test
            time: Seconds the test ran for
        """
        self._record(_ERROR_DISPATCH, test, exc, time)

    def add_failure(self, test, exc: BaseException, time: float) -> None:
        """Record a failure, or the risky/incomplete/skipped outcome it signals."""
        self._record(_FAILURE_DISPATCH, test, exc, time)

    def start_test_suite(self, suite) -> None:
        """Note the start of a suite; the first one seen becomes the top suite."""
        with self._lock:
            if self._top_test_suite is None:
                self._top_test_suite = suite

        for listener in self._listeners:
            listener.start_test_suite(suite)

    def end_test_suite(self, suite) -> None:
        for listener in self._listeners:
            listener.end_test_suite(suite)

    def start_test(self, test) -> None:
        """Note the start of a test and count the cases it runs.

        Args:
            test: The test about to run
        """
        with self._lock:
            self._last_test_failed = False
            self._run_tests += test.count()

        for listener in self._listeners:
            listener.start_test(test)

    def end_test(self, test, time: float) -> None:
        """Note the end of a test, recording it as passed when nothing failed.

        Args:
            test: The test that finished
            time: Seconds the test ran for
        """
        from unitrunner.framework.testcase import TestCase

        for listener in self._listeners:
            listener.end_test(test, time)

        if not self._last_test_failed and isinstance(test, TestCase):
            with self._lock:
                self._passed[test.qualified_name()] = PassedTest(
                    result=test.get_result(), size=test.get_size()
                )
                self._time += time

    # Running -----------------------------------------------------------------

    def run(self, test) -> None:
        """Run a single test case, recording its outcome."""
        from unitrunner.framework.testcase import TestCase

        error: Optional[BaseException] = None
        failure: Optional[BaseException] = None

        self.start_test(test)
        start = _time.perf_counter()

        with warnings.catch_warnings():
            if self._convert_errors_to_exceptions:
                warnings.simplefilter("error")
            try:
                test.run_bare()
            except NON_RECOVERABLE:
                raise
            except AssertionError as e:
                failure = e
            except FrameworkError as e:
                error = e
            except Exception as e:
                error = ExceptionWrapper(e)

        elapsed = _time.perf_counter() - start

        no_assertions = (
            self.strict_about_tests_that_do_not_test_anything
            and test.get_num_assertions() == 0
        )

        if error is not None:
            self.add_error(test, error, elapsed)
        elif failure is not None:
            self.add_failure(test, failure, elapsed)
        elif no_assertions:
            self._add_risky(test, RiskyTestError("This test did not perform any assertions"), elapsed)
        elif self.strict_about_output_during_tests and test.has_output():
            self._add_risky(
                test,
                OutputError(f"This test printed output: {test.get_actual_output()}"),
                elapsed,
            )
        elif (
            self.strict_about_todo_annotated_tests
            and isinstance(test, TestCase)
            and test.is_todo()
        ):
            self._add_risky(test, RiskyTestError("Test method is annotated with @todo"), elapsed)

        self.end_test(test, elapsed)

    def _add_risky(self, test, exc: BaseException, time: float) -> None:
        if isinstance(getattr(test, "status", None), TestStatus):
            test.status = TestStatus.RISKY
            test.status_message = str(exc)
        self.add_failure(test, exc, time)

    # Queries -----------------------------------------------------------------

    def count(self) -> int:
        """Number of tests run."""
        return self._run_tests

    def passed(self) -> dict[str, PassedTest]:
        """Get the passed tests keyed by qualified name."""
        return self._passed

    def errors(self) -> list[TestFailure]:
        return self._errors

    def failures(self) -> list[TestFailure]:
        return self._failures

    def not_implemented(self) -> list[TestFailure]:
        return self._not_implemented

    def risky(self) -> list[TestFailure]:
        return self._risky

    def skipped(self) -> list[TestFailure]:
        return self._skipped

    def error_count(self) -> int:
        return len(self._errors)

    def failure_count(self) -> int:
        return len(self._failures)

    def not_implemented_count(self) -> int:
        return len(self._not_implemented)

    def risky_count(self) -> int:
        return len(self._risky)

    def skipped_count(self) -> int:
        return len(self._skipped)

    def passed_count(self) -> int:
        """Number of tests that ran without any recorded outcome."""
        return (
            self._run_tests
            - self.error_count()
            - self.failure_count()
            - self.not_implemented_count()
            - self.risky_count()
            - self.skipped_count()
        )

    def all_harmless(self) -> bool:
        return self.risky_count() == 0

    def all_completely_implemented(self) -> bool:
        return self.not_implemented_count() == 0

    def none_skipped(self) -> bool:
        return self.skipped_count() == 0

    def was_successful(self) -> bool:
        """Check that no error or failure was recorded."""
        return not self._errors and not self._failures

    def top_test_suite(self) -> Any:
        return self._top_test_suite

    def time(self) -> float:
        return self._time

    def summary(self) -> dict[str, Any]:
        """Get the outcome counts as a dictionary."""
        return {
            "tests": self.count(),
            "passed": self.passed_count(),
            "failures": self.failure_count(),
            "errors": self.error_count(),
            "incomplete": self.not_implemented_count(),
            "skipped": self.skipped_count(),
            "risky": self.risky_count(),
            "time": self.time(),
            "successful": self.was_successful(),
        }

    # Control -----------------------------------------------------------------

    def should_stop(self) -> bool:
        return self._stop

    def stop(self) -> None:
        """Ask the run to stop at the next test boundary."""
        self._stop = True

    def convert_errors_to_exceptions(self, flag: bool) -> None:
        """Turn warnings raised by tests into errors."""
        self._convert_errors_to_exceptions = bool(flag)

    def get_convert_errors_to_exceptions(self) -> bool:
        return self._convert_errors_to_exceptions

    def be_strict_about_tests_that_do_not_test_anything(self, flag: bool) -> None:
        self.strict_about_tests_that_do_not_test_anything = bool(flag)

    def be_strict_about_output_during_tests(self, flag: bool) -> None:
        self.strict_about_output_during_tests = bool(flag)

    def be_strict_about_todo_annotated_tests(self, flag: bool) -> None:
        self.strict_about_todo_annotated_tests = bool(flag)

    def set_stop_on_error(self, flag: bool) -> None:
        self.stop_on_error = bool(flag)

    def set_stop_on_failure(self, flag: bool) -> None:
        self.stop_on_failure = bool(flag)

    def set_stop_on_risky(self, flag: bool) -> None:
        self.stop_on_risky = bool(flag)

    def set_stop_on_incomplete(self, flag: bool) -> None:
        self.stop_on_incomplete = bool(flag)

    def set_stop_on_skipped(self, flag: bool) -> None:
        self.stop_on_skipped = bool(flag)
