"""Test execution orchestration."""

import logging
from pathlib import Path
from typing import Iterable, Optional

from unitrunner.config import RunnerConfig
from unitrunner.framework.exceptions import NON_RECOVERABLE, FrameworkError
from unitrunner.framework.listener import TestListener
from unitrunner.framework.result import TestResult
from unitrunner.framework.suite import RepeatedTest, TestSuite
from unitrunner.runner.filters import FilterFactory
from unitrunner.runner.loader import TestLoader

logger = logging.getLogger(__name__)


class BaseTestRunner:
    """Loads tests and maps a finished run onto a process exit status."""

    __test__ = False

    SUCCESS_EXIT = 0
    FAILURE_EXIT = 1
    EXCEPTION_EXIT = 2

    def __init__(self, loader: Optional[TestLoader] = None, base_dir: Optional[Path] = None):
        self.loader = loader or TestLoader(base_dir)

    def get_test(self, target: str) -> TestSuite:
        """Load the suite for a target."""
        return self.loader.load(target)

    @classmethod
    def exit_code(cls, result: TestResult) -> int:
        """Map a finished result onto the process exit status.

        Args:
            result: The result of the run

        Returns:
            SUCCESS_EXIT when nothing failed, FAILURE_EXIT otherwise
        """
        if result.was_successful():
            return cls.SUCCESS_EXIT
        return cls.FAILURE_EXIT


class TestRunner(BaseTestRunner):
    """Runs a suite according to a RunnerConfig."""

    def __init__(
        self,
        config: RunnerConfig,
        loader: Optional[TestLoader] = None,
        base_dir: Optional[Path] = None,
        printer=None,
    ):
        super().__init__(loader, base_dir)
        self.config = config
        self.printer = printer

    def create_result(self) -> TestResult:
        """Create a TestResult carrying the configured policies."""
        result = TestResult()
        result.convert_errors_to_exceptions(self.config.convert_errors_to_exceptions)

        strict = self.config.strict
        result.be_strict_about_tests_that_do_not_test_anything(strict.tests_that_do_not_test_anything)
        result.be_strict_about_output_during_tests(strict.output_during_tests)
        result.be_strict_about_todo_annotated_tests(strict.todo_annotated_tests)

        stop_on = self.config.stop_on
        result.set_stop_on_error(stop_on.error)
        result.set_stop_on_failure(stop_on.failure)
        result.set_stop_on_incomplete(stop_on.incomplete)
        result.set_stop_on_risky(stop_on.risky)
        result.set_stop_on_skipped(stop_on.skipped)
        return result

    def do_run(self, suite: TestSuite, listeners: Iterable[TestListener] = ()) -> TestResult:
        """Apply filters and flags to a suite and run it."""
        selection = self.config.selection
        factory = FilterFactory.from_selection(
            name_filter=selection.filter,
            groups=selection.groups,
            exclude_groups=selection.exclude_groups,
        )
        if len(factory):
            suite.inject_filter(factory)

        suite.set_backup_globals(self.config.backup_globals)
        suite.set_backup_static_attributes(self.config.backup_static_attributes)
        suite.set_disallow_changes_to_global_state(
            self.config.strict.disallow_changes_to_global_state
        )

        result = self.create_result()
        if self.printer is not None:
            result.add_listener(self.printer)
        for listener in listeners:
            result.add_listener(listener)

        test = suite
        if self.config.repeat > 1:
            test = RepeatedTest(suite, self.config.repeat)

        logger.info("Running %d tests from %s", test.count(), suite.get_name())
        test.run(result)
        result.flush_listeners()

        if self.printer is not None:
            self.printer.print_result(result)

        return result

    def run(self, target: Optional[str] = None, listeners: Iterable[TestListener] = ()) -> int:
        """Load and run a target, returning the exit status."""
        target = target or self.config.target

        try:
            suite = self.get_test(target)
            result = self.do_run(suite, listeners)
        except NON_RECOVERABLE:
            raise
        except FrameworkError as e:
            logger.error("%s", e)
            return self.EXCEPTION_EXIT
        except Exception:
            logger.exception("Unexpected error while running %s", target)
            return self.EXCEPTION_EXIT

        return self.exit_code(result)
