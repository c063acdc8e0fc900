"""The xUnit core: test cases, suites, results and their metadata."""

from unitrunner.framework.exceptions import (
    AssertionFailedError,
    ExpectationFailedError,
    FrameworkError,
    IncompleteTestError,
    OutputError,
    RiskyTestError,
    SkippedTestError,
    SkippedTestSuiteError,
    classify,
)
from unitrunner.framework.listener import TestListener
from unitrunner.framework.metadata import (
    after,
    after_class,
    before,
    before_class,
    data_provider,
    depends,
    expected_exception,
    group,
    large,
    medium,
    size,
    small,
    test,
    test_with,
    todo,
    use_error_handler,
)
from unitrunner.framework.models import TestSize, TestStatus
from unitrunner.framework.result import TestResult
from unitrunner.framework.suite import DataProviderTestSuite, RepeatedTest, TestSuite
from unitrunner.framework.testcase import (
    IncompleteTestCase,
    SkippedTestCase,
    TestCase,
    WarningTestCase,
)

__all__ = [
    "AssertionFailedError",
    "DataProviderTestSuite",
    "ExpectationFailedError",
    "FrameworkError",
    "IncompleteTestCase",
    "IncompleteTestError",
    "OutputError",
    "RepeatedTest",
    "RiskyTestError",
    "SkippedTestCase",
    "SkippedTestError",
    "SkippedTestSuiteError",
    "TestCase",
    "TestListener",
    "TestResult",
    "TestSize",
    "TestStatus",
    "TestSuite",
    "WarningTestCase",
    "after",
    "after_class",
    "before",
    "before_class",
    "classify",
    "data_provider",
    "depends",
    "expected_exception",
    "group",
    "large",
    "medium",
    "size",
    "small",
    "test",
    "test_with",
    "todo",
    "use_error_handler",
]
