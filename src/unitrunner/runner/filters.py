"""Filters deciding which tests of a suite are run."""

import re
from abc import ABC, abstractmethod
from typing import Iterable

from unitrunner.framework.suite import TestSuite
from unitrunner.framework.testcase import TestCase

_DATA_SET_NUMBER = re.compile(r"^(.*?)#(\d+)(?:-(\d+))?$")
_DATA_SET_LABEL = re.compile(r"^(.*?)@(.+)$")


class TestFilter(ABC):
    """Accepts or rejects the direct children of a suite.

    Nested suites are always accepted; their own children are filtered
    when they are iterated.
    """

    __test__ = False

    def accept(self, test, suite: TestSuite) -> bool:
        if isinstance(test, TestSuite):
            return True
        return self.accept_test(test, suite)

    @abstractmethod
    def accept_test(self, test, suite: TestSuite) -> bool:
        """Decide whether a single test is run.

        Args:
            test: A direct child of the suite that is not itself a suite
            suite: The suite being iterated

        Returns:
            True to run the test
        """
        pass


class _GroupFilter(TestFilter):
    def __init__(self, groups: Iterable[str]):
        self.groups = tuple(g.strip() for g in groups if g and g.strip())

    def in_groups(self, test, suite: TestSuite) -> bool:
        details = suite.group_details()
        return any(
            member is test for name in self.groups for member in details.get(name, ())
        )


class GroupIncludeFilter(_GroupFilter):
    """Keeps only tests registered in one of the given groups."""

    def accept_test(self, test, suite: TestSuite) -> bool:
        return self.in_groups(test, suite)


class GroupExcludeFilter(_GroupFilter):
    """Drops tests registered in any of the given groups."""

    def accept_test(self, test, suite: TestSuite) -> bool:
        return not self.in_groups(test, suite)


def _as_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error:
        return re.escape(pattern)
    return pattern


class NameFilter(TestFilter):
    """Keeps tests whose ``Class::method with data set ...`` name matches.

    The pattern is a regular expression, or a plain substring when it is
    not a valid one. Two shorthands select data sets: ``name#2`` or
    ``name#0-3`` by index and ``name@label`` by name.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.data_set_range = None

        number = _DATA_SET_NUMBER.match(pattern)
        label = _DATA_SET_LABEL.match(pattern)
        if number:
            prefix, start, end = number.groups()
            self.data_set_range = (int(start), int(end) if end else int(start))
            regex = rf"{_as_regex(prefix)}.*with data set #(\d+)$"
        elif label:
            prefix, name = label.groups()
            regex = rf'{_as_regex(prefix)}.*with data set "{re.escape(name)}"$'
        else:
            regex = _as_regex(pattern)

        self.regex = re.compile(regex, re.IGNORECASE)

    def accept_test(self, test, suite: TestSuite) -> bool:
        name = test.qualified_name() if isinstance(test, TestCase) else str(test)
        match = self.regex.search(name)
        if match is None:
            return False
        if self.data_set_range is not None:
            start, end = self.data_set_range
            return start <= int(match.group(1)) <= end
        return True


class FilterFactory:
    """Composes filters; a test is run only when every filter accepts it."""

    def __init__(self):
        self.filters: list[TestFilter] = []

    def add_filter(self, test_filter: TestFilter) -> None:
        """Add a filter that every accepted test must also pass."""
        self.filters.append(test_filter)

    def __len__(self) -> int:
        return len(self.filters)

    def accept(self, test, suite: TestSuite) -> bool:
        return all(f.accept(test, suite) for f in self.filters)

    @classmethod
    def from_selection(
        cls,
        name_filter: str = "",
        groups: Iterable[str] = (),
        exclude_groups: Iterable[str] = (),
    ) -> "FilterFactory":
        """Build the filters for a name pattern and group selection.

        Args:
            name_filter: Name pattern, see NameFilter
            groups: Groups to include
            exclude_groups: Groups to exclude

        Returns:
            A factory holding one filter per non-empty criterion
        """
        factory = cls()
        groups = list(groups)
        exclude_groups = list(exclude_groups)
        if groups:
            factory.add_filter(GroupIncludeFilter(groups))
        if exclude_groups:
            factory.add_filter(GroupExcludeFilter(exclude_groups))
        if name_filter:
            factory.add_filter(NameFilter(name_filter))
        return factory
