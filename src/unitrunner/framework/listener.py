"""Observer interface notified by a TestResult."""


class TestListener:
    """Base listener; every callback is a no-op so subclasses pick what they need."""

    __test__ = False

    def add_error(self, test, exc: BaseException, time: float) -> None:
        pass

    def add_failure(self, test, exc: BaseException, time: float) -> None:
        pass

    def add_incomplete_test(self, test, exc: BaseException, time: float) -> None:
        pass

    def add_risky_test(self, test, exc: BaseException, time: float) -> None:
        pass

    def add_skipped_test(self, test, exc: BaseException, time: float) -> None:
        pass

    def start_test_suite(self, suite) -> None:
        pass

    def end_test_suite(self, suite) -> None:
        pass

    def start_test(self, test) -> None:
        pass

    def end_test(self, test, time: float) -> None:
        pass

    def flush(self) -> None:
        """Called once the run is complete."""
