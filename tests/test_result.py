"""Tests for TestResult."""

import warnings

import pytest

from unitrunner.framework import TestCase, TestListener, TestResult, TestStatus, TestSuite, todo
from unitrunner.framework.exceptions import (
    AssertionFailedError,
    IncompleteTestError,
    RiskyTestError,
    SkippedTestError,
)
from unitrunner.framework.models import TestSize


class RecordingListener(TestListener):
    def __init__(self):
        self.events = []

    def add_error(self, test, exc, time):
        self.events.append(("error", str(test)))

    def add_failure(self, test, exc, time):
        self.events.append(("failure", str(test)))

    def add_incomplete_test(self, test, exc, time):
        self.events.append(("incomplete", str(test)))

    def add_risky_test(self, test, exc, time):
        self.events.append(("risky", str(test)))

    def add_skipped_test(self, test, exc, time):
        self.events.append(("skipped", str(test)))

    def start_test(self, test):
        self.events.append(("start", str(test)))

    def end_test(self, test, time):
        self.events.append(("end", str(test)))

    def flush(self):
        self.events.append(("flush", ""))


class OutcomeCase(TestCase):
    size = TestSize.SMALL

    def test_pass(self):
        self.assert_true(True)
        return "value"

    def test_fail(self):
        self.fail("nope")

    def test_error(self):
        raise KeyError("missing")

    def test_incomplete(self):
        self.mark_test_incomplete("later")

    def test_skipped(self):
        self.mark_test_skipped("not here")

    def test_warning(self):
        warnings.warn("deprecated call", DeprecationWarning)
        self.assert_true(True)

    def test_nothing(self):
        pass

    def test_prints(self):
        print("hello", end="")
        self.assert_true(True)

    @todo
    def test_todo(self):
        self.assert_true(True)


def run_one(method, result=None):
    result = result or TestResult()
    OutcomeCase(method).run(result)
    return result


class TestRecording:
    """Tests for outcome buckets."""

    def test_pass_is_recorded(self):
        """Test that passing tests keep their return value and size."""
        result = run_one("test_pass")

        record = result.passed()["OutcomeCase::test_pass"]
        assert record.result == "value"
        assert record.size == TestSize.SMALL
        assert result.count() == 1
        assert result.passed_count() == 1
        assert result.was_successful()

    @pytest.mark.parametrize(
        "method,bucket",
        [
            ("test_fail", "failures"),
            ("test_error", "errors"),
            ("test_incomplete", "not_implemented"),
            ("test_skipped", "skipped"),
        ],
    )
    def test_buckets(self, method, bucket):
        """Test that each outcome lands in its bucket only."""
        result = run_one(method)

        for name in ("failures", "errors", "not_implemented", "skipped", "risky"):
            expected = 1 if name == bucket else 0
            assert len(getattr(result, name)()) == expected
        assert result.passed() == {}
        assert result.passed_count() == 0

    def test_error_is_wrapped(self):
        """Test that unexpected exceptions are reported with their type."""
        result = run_one("test_error")
        assert result.errors()[0].message == "KeyError: 'missing'"

    def test_warning_becomes_error(self):
        """Test that warnings are escalated while converting errors."""
        result = run_one("test_warning")
        assert result.error_count() == 1
        assert "DeprecationWarning" in result.errors()[0].message

    def test_warning_ignored_without_conversion(self):
        """Test that warnings pass when conversion is off."""
        result = TestResult()
        result.convert_errors_to_exceptions(False)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            run_one("test_warning", result)
        assert result.was_successful()

    def test_add_error_dispatch(self):
        """Test that add_error keeps failures in the error bucket."""
        result = TestResult()
        test = OutcomeCase("test_pass")

        result.add_error(test, AssertionFailedError("x"), 0.0)
        result.add_error(test, SkippedTestError("y"), 0.0)
        result.add_error(test, IncompleteTestError("z"), 0.0)
        result.add_error(test, RiskyTestError("r"), 0.0)

        assert result.error_count() == 1
        assert result.failure_count() == 0
        assert result.skipped_count() == 1
        assert result.not_implemented_count() == 1
        assert result.risky_count() == 1

    def test_add_failure_dispatch(self):
        """Test that add_failure keeps errors in the failure bucket."""
        result = TestResult()
        result.add_failure(OutcomeCase("test_pass"), ValueError("x"), 0.0)
        assert result.failure_count() == 1
        assert result.error_count() == 0

    def test_summary(self):
        """Test the summary counts."""
        result = TestResult()
        for method in ("test_pass", "test_fail", "test_skipped"):
            run_one(method, result)

        summary = result.summary()
        assert summary["tests"] == 3
        assert summary["passed"] == 1
        assert summary["failures"] == 1
        assert summary["skipped"] == 1
        assert summary["successful"] is False
        assert not result.none_skipped()


class TestStrictness:
    """Tests for strict checks applied after a passing test."""

    def test_no_assertions(self):
        """Test that a test without assertions is risky when strict."""
        result = TestResult()
        result.be_strict_about_tests_that_do_not_test_anything(True)
        case = OutcomeCase("test_nothing")
        case.run(result)

        assert result.risky_count() == 1
        assert result.risky()[0].message == "This test did not perform any assertions"
        assert case.get_status() == TestStatus.RISKY
        assert not result.all_harmless()
        assert result.was_successful()

    def test_no_assertions_lenient(self):
        """Test that the same test passes when not strict."""
        assert run_one("test_nothing").passed_count() == 1

    def test_output(self):
        """Test that printing output is risky when strict."""
        result = TestResult()
        result.be_strict_about_output_during_tests(True)
        run_one("test_prints", result)

        assert result.risky()[0].message == "This test printed output: hello"

    def test_todo(self):
        """Test that @todo tests are risky when strict."""
        result = TestResult()
        result.be_strict_about_todo_annotated_tests(True)
        run_one("test_todo", result)

        assert result.risky()[0].message == "Test method is annotated with @todo"


class TestStopFlags:
    """Tests for stop-on flags."""

    @pytest.mark.parametrize(
        "setter,method",
        [
            ("set_stop_on_failure", "test_fail"),
            ("set_stop_on_error", "test_error"),
            ("set_stop_on_failure", "test_error"),
            ("set_stop_on_incomplete", "test_incomplete"),
            ("set_stop_on_skipped", "test_skipped"),
        ],
    )
    def test_stop(self, setter, method):
        """Test that recording the outcome requests a stop."""
        result = TestResult()
        getattr(result, setter)(True)
        run_one(method, result)
        assert result.should_stop()

    def test_no_stop_by_default(self):
        """Test that nothing stops a run unless asked."""
        result = run_one("test_fail")
        assert not result.should_stop()

    def test_stop_on_risky(self):
        """Test stopping on a risky test."""
        result = TestResult()
        result.set_stop_on_risky(True)
        result.be_strict_about_tests_that_do_not_test_anything(True)
        run_one("test_nothing", result)
        assert result.should_stop()


class TestListeners:
    """Tests for listener notification."""

    def test_event_order(self):
        """Test that listeners see start, outcome and end in order."""
        result = TestResult()
        listener = RecordingListener()
        result.add_listener(listener)

        run_one("test_pass", result)
        run_one("test_fail", result)
        result.flush_listeners()

        assert listener.events == [
            ("start", "OutcomeCase::test_pass"),
            ("end", "OutcomeCase::test_pass"),
            ("start", "OutcomeCase::test_fail"),
            ("failure", "OutcomeCase::test_fail"),
            ("end", "OutcomeCase::test_fail"),
            ("flush", ""),
        ]

    def test_remove_listener(self):
        """Test that removed listeners are not notified."""
        result = TestResult()
        listener = RecordingListener()
        result.add_listener(listener)
        result.remove_listener(listener)

        run_one("test_pass", result)
        assert listener.events == []

    def test_top_test_suite(self):
        """Test that the first started suite is remembered."""
        result = TestResult()
        result.start_test_suite("outer")
        result.start_test_suite("inner")
        assert result.top_test_suite() == "outer"


class TestPublicApiDocs:
    """Tests that the public recording and suite API is documented."""

    @pytest.mark.parametrize(
        "method",
        [
            TestResult.add_listener,
            TestResult.add_error,
            TestResult.start_test,
            TestResult.end_test,
            TestSuite.add_test,
            TestSuite.create_test,
            TestSuite.set_group_details,
            TestSuite.run,
        ],
    )
    def test_documents_arguments(self, method):
        """Test that the method documents its arguments."""
        assert method.__doc__ is not None
        assert "Args:" in method.__doc__
