"""Test discovery and loading."""

import importlib
import importlib.util
import inspect
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Optional

from unitrunner.framework.exceptions import FrameworkError
from unitrunner.framework.suite import TestSuite
from unitrunner.framework.testcase import PlaceholderTestCase, TestCase

logger = logging.getLogger(__name__)

TEST_FILE_PATTERNS = ("test_*.py", "*_test.py", "*Test.py")

CLASS_SEPARATOR = "::"


@dataclass
class DiscoveredClass:
    """A TestCase subclass found while loading a target."""

    name: str
    module: str
    file_path: str = ""

    @property
    def full_name(self) -> str:
        """Get the ``module::Class`` selector for this class."""
        return f"{self.module}{CLASS_SEPARATOR}{self.name}"


@dataclass
class DiscoveryResult:
    """Result of discovering test classes in a target."""

    classes: list[DiscoveredClass] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.classes)


class TestLoader:
    """Turns a directory, file, module or class selector into a TestSuite.

    Targets are resolved in this order: an existing directory (searched
    recursively for test files), an existing ``.py`` file, then a dotted
    module name. Any of them can be followed by ``::ClassName`` to select
    a single class.
    """

    __test__ = False

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def load(self, target: str) -> TestSuite:
        """Load a target into a suite of class suites."""
        modules, class_name = self._resolve(target)

        suite = TestSuite(target)
        for module in modules:
            if class_name is None and callable(getattr(module, "suite", None)):
                suite.add_test(module.suite())
                continue

            for cls in self._test_classes(module, class_name):
                suite.add_test_suite(cls)

        if class_name is not None and not suite.tests():
            raise FrameworkError(f'Class "{class_name}" could not be found in "{target}".')

        logger.debug("Loaded %d tests from %s", suite.count(), target)
        return suite

    def discover(self, target: str) -> DiscoveryResult:
        """List the test classes a target would load, without building suites."""
        modules, class_name = self._resolve(target)
        result = DiscoveryResult()
        for module in modules:
            module_file = getattr(module, "__file__", None)
            if module_file:
                result.files.append(Path(module_file))
            for cls in self._test_classes(module, class_name):
                result.classes.append(
                    DiscoveredClass(
                        name=cls.__name__,
                        module=module.__name__,
                        file_path=module_file or "",
                    )
                )
        return result

    def find_test_files(self, directory: Path) -> list[Path]:
        """Find test files under a directory, sorted by path."""
        files: set[Path] = set()
        for pattern in TEST_FILE_PATTERNS:
            for test_file in directory.rglob(pattern):
                if test_file.is_file() and "__pycache__" not in test_file.parts:
                    files.add(test_file)
        return sorted(files)

    def _resolve(self, target: str) -> tuple[list[ModuleType], Optional[str]]:
        if not target or not target.strip():
            raise FrameworkError("No test target given.")

        class_name = None
        if CLASS_SEPARATOR in target:
            target, class_name = target.rsplit(CLASS_SEPARATOR, 1)

        path = Path(target)
        if not path.is_absolute():
            path = self.base_dir / path

        if path.is_dir():
            return [self._import_file(f) for f in self.find_test_files(path)], class_name
        if path.is_file():
            return [self._import_file(path)], class_name
        if target.endswith(".py"):
            raise FrameworkError(f'Cannot open file "{target}".')

        try:
            return [importlib.import_module(target)], class_name
        except ImportError as e:
            raise FrameworkError(f'Cannot load "{target}": {e}') from e

    def _module_name(self, path: Path) -> str:
        try:
            relative = path.relative_to(self.base_dir)
        except ValueError:
            relative = Path(path.name)
        return ".".join(relative.with_suffix("").parts)

    def _import_file(self, path: Path) -> ModuleType:
        path = path.resolve()
        name = self._module_name(path)

        existing = sys.modules.get(name)
        if existing is not None and getattr(existing, "__file__", None) == str(path):
            return existing

        # Test files import their neighbours as top-level modules.
        directory = str(path.parent)
        if directory not in sys.path:
            sys.path.insert(0, directory)

        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise FrameworkError(f'Cannot open file "{path}".')

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[name]
            raise FrameworkError(f'Cannot load "{path}": {type(e).__name__}: {e}') from e

        logger.debug("Imported %s from %s", name, path)
        return module

    def _test_classes(self, module: ModuleType, class_name: Optional[str]) -> list[type]:
        classes = []
        for name, obj in vars(module).items():
            if class_name is not None and name != class_name:
                continue
            if not inspect.isclass(obj) or not issubclass(obj, TestCase):
                continue
            if obj is TestCase or issubclass(obj, PlaceholderTestCase):
                continue
            if obj.__module__ != module.__name__ or inspect.isabstract(obj):
                continue
            classes.append(obj)
        return classes
