"""Loading, filtering and running test suites."""

from unitrunner.runner.filters import (
    FilterFactory,
    GroupExcludeFilter,
    GroupIncludeFilter,
    NameFilter,
)
from unitrunner.runner.loader import TestLoader
from unitrunner.runner.runner import BaseTestRunner, TestRunner

__all__ = [
    "BaseTestRunner",
    "FilterFactory",
    "GroupExcludeFilter",
    "GroupIncludeFilter",
    "NameFilter",
    "TestLoader",
    "TestRunner",
]
