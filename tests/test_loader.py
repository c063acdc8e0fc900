"""Tests for test discovery and loading."""

import textwrap

import pytest

from unitrunner.framework import TestSuite
from unitrunner.framework.exceptions import FrameworkError
from unitrunner.runner.loader import TestLoader

CALCULATOR_TESTS = textwrap.dedent(
    """
    import abc

    from unitrunner.framework import TestCase, group


    class CalculatorTest(TestCase):
        @group("math")
        def test_add(self):
            self.assert_equals(4, 2 + 2)

        def test_sub(self):
            self.assert_equals(0, 2 - 2)


    class StringsTest(TestCase):
        def test_upper(self):
            self.assert_equals("A", "a".upper())


    class AbstractBase(TestCase, abc.ABC):
        @abc.abstractmethod
        def make(self):
            pass

        def test_make(self):
            pass
    """
)

CUSTOM_SUITE = textwrap.dedent(
    """
    from unitrunner.framework import TestCase, TestSuite


    class OnlySomeTest(TestCase):
        def test_kept(self):
            self.assert_true(True)

        def test_dropped(self):
            self.fail("should not be loaded")


    def suite():
        custom = TestSuite("custom")
        custom.add_test(OnlySomeTest("test_kept"))
        return custom
    """
)

BROKEN = "raise RuntimeError('cannot import me')\n"


@pytest.fixture
def project(tmp_path):
    """Create a small project of test files."""
    tests = tmp_path / "tests"
    (tests / "nested").mkdir(parents=True)
    (tests / "test_loader_calc.py").write_text(CALCULATOR_TESTS)
    (tests / "nested" / "loader_custom_test.py").write_text(CUSTOM_SUITE)
    (tests / "helpers.py").write_text("VALUE = 1\n")
    return tmp_path


class TestFindFiles:
    """Tests for test file discovery."""

    def test_patterns(self, project):
        """Test that only files matching the test patterns are found."""
        loader = TestLoader(project)
        files = loader.find_test_files(project / "tests")

        names = [f.name for f in files]
        assert names == ["loader_custom_test.py", "test_loader_calc.py"]
        assert "helpers.py" not in names


class TestLoad:
    """Tests for TestLoader.load."""

    def test_directory(self, project):
        """Test loading a whole directory."""
        suite = TestLoader(project).load("tests")

        assert isinstance(suite, TestSuite)
        assert suite.count() == 4

    def test_file(self, project):
        """Test loading a single file."""
        suite = TestLoader(project).load("tests/test_loader_calc.py")
        assert suite.count() == 3

    def test_single_class(self, project):
        """Test selecting one class with ::Class."""
        suite = TestLoader(project).load("tests/test_loader_calc.py::StringsTest")

        assert suite.count() == 1
        result = suite.run()
        assert result.was_successful()

    def test_abstract_classes_are_skipped(self, project):
        """Test that abstract test classes are not loaded."""
        discovery = TestLoader(project).discover("tests/test_loader_calc.py")
        assert [c.name for c in discovery.classes] == ["CalculatorTest", "StringsTest"]
        assert discovery.total_count == 2

    def test_module_suite_function(self, project):
        """Test that a module level suite() decides what is loaded."""
        suite = TestLoader(project).load("tests/nested/loader_custom_test.py")

        assert suite.count() == 1
        assert suite.run().was_successful()

    def test_dotted_module(self):
        """Test loading an importable module by name."""
        suite = TestLoader().load("unitrunner.framework.testcase")
        assert suite.count() == 0

    def test_missing_class(self, project):
        """Test that selecting a missing class is an error."""
        with pytest.raises(FrameworkError, match='Class "Nope" could not be found'):
            TestLoader(project).load("tests/test_loader_calc.py::Nope")

    def test_missing_file(self, project):
        """Test that a missing file is an error."""
        with pytest.raises(FrameworkError, match="Cannot open file"):
            TestLoader(project).load("tests/test_missing.py")

    def test_missing_module(self, project):
        """Test that an unknown module is an error."""
        with pytest.raises(FrameworkError, match="Cannot load"):
            TestLoader(project).load("no_such_module_for_loader")

    def test_empty_target(self, project):
        """Test that an empty target is rejected."""
        with pytest.raises(FrameworkError):
            TestLoader(project).load("  ")

    def test_import_error(self, tmp_path):
        """Test that an exception raised at import time is reported."""
        (tmp_path / "test_loader_broken.py").write_text(BROKEN)

        with pytest.raises(FrameworkError, match="RuntimeError: cannot import me"):
            TestLoader(tmp_path).load("test_loader_broken.py")

    def test_discovered_class_name(self, project):
        """Test the selector of a discovered class."""
        discovery = TestLoader(project).discover("tests/test_loader_calc.py::StringsTest")
        assert discovery.classes[0].full_name == "tests.test_loader_calc::StringsTest"
