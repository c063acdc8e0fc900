"""Tests for data provider expansion."""

import pytest

from unitrunner.framework import TestCase, data_provider, test_with
from unitrunner.framework.dataprovider import get_provided_data
from unitrunner.framework.exceptions import FrameworkError, SkippedTestError


def module_rows():
    return [(1,), (2,)]


class ProviderCase(TestCase):
    def instance_rows(self):
        # Providers run on their own instance.
        assert self.get_name() == "instance_rows"
        return [[1, 2], [3, 4]]

    @staticmethod
    def static_rows():
        return {"first": (1,), "second": (2,)}

    @classmethod
    def class_rows(cls):
        return ((cls.__name__,),)

    def generated_rows(self):
        for value in range(3):
            yield (value,)

    @data_provider("instance_rows")
    def test_instance(self, a, b):
        pass

    @data_provider("static_rows")
    def test_static(self, value):
        pass

    @data_provider("class_rows")
    def test_class(self, name):
        pass

    @data_provider(module_rows)
    def test_callable(self, value):
        pass

    @data_provider("generated_rows")
    def test_generated(self, value):
        pass

    @test_with((1, 1), (2, 4))
    @data_provider("instance_rows")
    def test_inline_wins(self, a, b):
        pass

    @data_provider("missing_rows")
    def test_missing(self, value):
        pass

    @data_provider(lambda: [])
    def test_empty(self, value):
        pass

    @data_provider(lambda: [(1,), "oops"])
    def test_invalid(self, value):
        pass

    def test_plain(self):
        pass


class TestGetProvidedData:
    """Tests for get_provided_data."""

    def test_no_provider(self):
        """Test that methods without a provider give None."""
        assert get_provided_data(ProviderCase, "test_plain") is None

    def test_instance_provider(self):
        """Test that rows become tuples keyed by index."""
        assert get_provided_data(ProviderCase, "test_instance") == {0: (1, 2), 1: (3, 4)}

    def test_static_provider_keeps_names(self):
        """Test that mapping keys name the data sets."""
        data = get_provided_data(ProviderCase, "test_static")
        assert list(data) == ["first", "second"]
        assert data["second"] == (2,)

    def test_class_provider(self):
        """Test a classmethod provider."""
        assert get_provided_data(ProviderCase, "test_class") == {0: ("ProviderCase",)}

    def test_callable_provider(self):
        """Test a provider given as a callable."""
        assert get_provided_data(ProviderCase, "test_callable") == {0: (1,), 1: (2,)}

    def test_generator_provider(self):
        """Test that generators are consumed in order."""
        assert list(get_provided_data(ProviderCase, "test_generated").values()) == [
            (0,),
            (1,),
            (2,),
        ]

    def test_inline_data_wins(self):
        """Test that inline data sets take precedence over a provider."""
        assert get_provided_data(ProviderCase, "test_inline_wins") == {0: (1, 1), 1: (2, 4)}

    def test_missing_provider(self):
        """Test that a provider that does not exist is an error."""
        with pytest.raises(FrameworkError, match="missing_rows does not exist"):
            get_provided_data(ProviderCase, "test_missing")

    def test_empty_provider(self):
        """Test that an empty provider skips the test."""
        with pytest.raises(SkippedTestError, match="no tests found"):
            get_provided_data(ProviderCase, "test_empty")

    def test_invalid_row(self):
        """Test that a row that is not a sequence is rejected."""
        with pytest.raises(FrameworkError, match="Data set #1 is invalid."):
            get_provided_data(ProviderCase, "test_invalid")
