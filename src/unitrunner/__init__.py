"""
UnitRunner - an xUnit-style test execution engine.

This package provides:
- Test cases with class and method fixture hooks
- Data providers and dependency-aware test chains
- Mock objects with verified expectations
- Result aggregation with listener notification and stop-on policies
"""

__version__ = "0.1.0"
__author__ = "UnitRunner Team"
