"""Data provider expansion."""

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from unitrunner.framework.exceptions import FrameworkError, SkippedTestError
from unitrunner.framework.metadata import get_descriptor

logger = logging.getLogger(__name__)

DataSetKey = Union[int, str]


def _is_row(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _data_set_label(key: DataSetKey) -> str:
    if isinstance(key, int):
        return f"#{key}"
    return f'"{key}"'


def _invoke_provider(cls: type, provider: Any) -> Any:
    if callable(provider):
        return provider()
    method = getattr(cls, provider, None)
    if method is None:
        raise FrameworkError(
            f"Data provider {cls.__name__}::{provider} does not exist."
        )
    if isinstance(cls.__dict__.get(provider), (staticmethod, classmethod)):
        return method()
    # Providers run on a throwaway instance so they never share fixture state.
    return getattr(cls(provider), provider)()


def get_provided_data(cls: type, method: str) -> Optional[dict[DataSetKey, tuple]]:
    """Expand the data provider declared on a test method.

    Returns:
        None when the method declares no provider, otherwise an ordered
        mapping of data set name (or 0-based index) to argument row.

    Raises:
        SkippedTestError: If the provider yields no data sets
        FrameworkError: If a data set is not a sequence
    """
    metadata = get_descriptor(cls).method(method)

    if metadata.test_with is not None:
        data: Any = metadata.test_with
    elif metadata.data_provider is not None:
        data = _invoke_provider(cls, metadata.data_provider)
    else:
        return None

    if data is None:
        return None

    if isinstance(data, Mapping):
        items = list(data.items())
    else:
        items = list(enumerate(data))

    if not items:
        raise SkippedTestError("no tests found")

    provided: dict[DataSetKey, tuple] = {}
    for key, row in items:
        if not _is_row(row):
            raise FrameworkError(f"Data set {_data_set_label(key)} is invalid.")
        provided[key] = tuple(row)

    logger.debug(
        "Data provider for %s::%s yielded %d data sets",
        cls.__name__,
        method,
        len(provided),
    )
    return provided
