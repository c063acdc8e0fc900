"""Tests for test filters."""

import pytest

from unitrunner.framework import TestCase, TestSuite, data_provider, group
from unitrunner.runner.filters import (
    FilterFactory,
    GroupExcludeFilter,
    GroupIncludeFilter,
    NameFilter,
    TestFilter,
)


class RoutingCase(TestCase):
    groups = ("web",)

    @group("fast")
    def test_home(self):
        self.assert_true(True)

    @group("slow")
    def test_report(self):
        self.assert_true(True)

    def test_login(self):
        self.assert_true(True)

    @data_provider(lambda: [(1,), (2,), (3,), (4,)])
    def test_page(self, number):
        self.assert_true(number > 0)

    @data_provider(lambda: {"admin": ("root",), "guest": ("anon",)})
    def test_role(self, name):
        self.assert_true(bool(name))


class BillingCase(TestCase):
    def test_invoice(self):
        self.assert_true(True)


def build_suite(factory):
    suite = TestSuite("all")
    suite.add_test_suite(RoutingCase)
    suite.add_test_suite(BillingCase)
    suite.inject_filter(factory)
    return suite


def selected(factory):
    return [str(test) for test in build_suite(factory).leaves()]


def only(test_filter):
    factory = FilterFactory()
    factory.add_filter(test_filter)
    return factory


class TestGroupFilters:
    """Tests for group include and exclude filters."""

    def test_include(self):
        """Test running only one group."""
        assert selected(only(GroupIncludeFilter(["fast"]))) == ["RoutingCase::test_home"]

    def test_include_class_group(self):
        """Test that class groups select every test of the class."""
        names = selected(only(GroupIncludeFilter(["web"])))
        assert len(names) == 9
        assert "BillingCase::test_invoice" not in names

    def test_exclude(self):
        """Test excluding a group."""
        names = selected(only(GroupExcludeFilter(["slow", "default"])))
        assert "RoutingCase::test_report" not in names
        assert "BillingCase::test_invoice" not in names
        assert "RoutingCase::test_home" in names

    def test_blank_groups_ignored(self):
        """Test that blank group names are dropped."""
        assert GroupIncludeFilter([" fast ", "", "  "]).groups == ("fast",)


class TestNameFilter:
    """Tests for the name filter."""

    def test_substring(self):
        """Test matching part of the qualified name."""
        assert selected(only(NameFilter("login"))) == ["RoutingCase::test_login"]

    def test_case_insensitive(self):
        """Test that names match regardless of case."""
        assert selected(only(NameFilter("BILLINGCASE"))) == ["BillingCase::test_invoice"]

    def test_regex(self):
        """Test a regular expression pattern."""
        names = selected(only(NameFilter("::test_(home|login)$")))
        assert names == ["RoutingCase::test_home", "RoutingCase::test_login"]

    def test_invalid_regex_is_literal(self):
        """Test that an invalid pattern is matched literally."""
        assert selected(only(NameFilter("test_home("))) == []

    def test_data_set_index(self):
        """Test selecting one data set by index."""
        names = selected(only(NameFilter("test_page#2")))
        assert names == ["RoutingCase::test_page with data set #2 (3)"]

    def test_data_set_range(self):
        """Test selecting a range of data sets."""
        names = selected(only(NameFilter("test_page#1-2")))
        assert len(names) == 2
        assert names[0].startswith("RoutingCase::test_page with data set #1")

    def test_data_set_label(self):
        """Test selecting a named data set."""
        names = selected(only(NameFilter("test_role@guest")))
        assert names == ["RoutingCase::test_role with data set \"guest\" ('anon')"]


class TestFilterFactory:
    """Tests for combining filters."""

    def test_all_filters_must_accept(self):
        """Test that filters are combined with AND."""
        factory = FilterFactory.from_selection(name_filter="test_", groups=["web"], exclude_groups=["slow"])

        names = selected(factory)
        assert len(factory) == 3
        assert "RoutingCase::test_report" not in names
        assert "BillingCase::test_invoice" not in names
        assert "RoutingCase::test_home" in names

    def test_empty_selection(self):
        """Test that an empty selection adds no filters."""
        factory = FilterFactory.from_selection()
        assert len(factory) == 0
        assert len(selected(factory)) == 10

    def test_filtered_run(self):
        """Test that a filtered suite only runs the selected tests."""
        suite = build_suite(only(NameFilter("invoice")))
        result = suite.run()

        assert result.count() == 1
        assert suite.count() == 1


class TestFilterBase:
    """Tests for the TestFilter base class."""

    def test_cannot_instantiate_base(self):
        """Test that the abstract base refuses instantiation."""
        with pytest.raises(TypeError):
            TestFilter()

    def test_replaced_groups_drive_selection(self):
        """Test that group filters read a replaced group registry."""
        suite = TestSuite.from_class(BillingCase)
        invoice = suite.test_at(0)
        suite.set_group_details({"billing": [invoice]})
        suite.inject_filter(only(GroupIncludeFilter(["billing"])))

        assert list(suite.leaves()) == [invoice]

        suite.set_group_details({"other": [invoice]})
        assert list(suite.leaves()) == []
