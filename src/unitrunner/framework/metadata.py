"""Declarative test metadata.

Groups, dependencies, data providers, sizes and hook markers are attached
to methods with decorators (or to the class with the ``groups``,
``depends`` and ``size`` attributes) and read back once per class into a
cached :class:`ClassDescriptor`.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from unitrunner.framework.models import TestSize

META_ATTR = "__unitrunner__"

HOOK_KINDS = ("before_class", "before", "after", "after_class")

# Built-in template methods always run ahead of decorated hooks.
DEFAULT_HOOKS = {
    "before_class": "set_up_before_class",
    "before": "set_up",
    "after": "tear_down",
    "after_class": "tear_down_after_class",
}

SIZE_GROUPS = {"small": TestSize.SMALL, "medium": TestSize.MEDIUM, "large": TestSize.LARGE}


@dataclass
class ExpectedException:
    """Expectation on an exception thrown by a test body.

    Every facet is optional; each one that is set must hold.
    """

    exception: Optional[Union[type, str]] = None
    message: Optional[str] = None
    message_regex: Optional[str] = None
    code: Optional[int] = None

    @property
    def is_set(self) -> bool:
        return any(
            value is not None
            for value in (self.exception, self.message, self.message_regex, self.code)
        )


@dataclass
class MethodMetadata:
    """Metadata declared on a single test method."""

    name: str
    groups: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    data_provider: Optional[Union[str, Callable]] = None
    test_with: Optional[tuple] = None
    size: TestSize = TestSize.UNKNOWN
    todo: bool = False
    expected_exception: ExpectedException = field(default_factory=ExpectedException)
    use_error_handler: Optional[bool] = None


@dataclass
class ClassDescriptor:
    """Registration table for one test class, built once and cached."""

    test_class: type
    methods: dict[str, MethodMetadata] = field(default_factory=dict)
    hooks: dict[str, list[str]] = field(default_factory=dict)
    groups: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.test_class.__name__

    @property
    def test_methods(self) -> list[str]:
        return list(self.methods)

    def method(self, name: str) -> MethodMetadata:
        """Get metadata for a method, empty if the method is unknown."""
        if name in self.methods:
            return self.methods[name]
        return _build_method_metadata(self.test_class, name, None)


_descriptors: dict[type, ClassDescriptor] = {}


def _unwrap(obj: Any) -> Any:
    if isinstance(obj, (classmethod, staticmethod)):
        return obj.__func__
    return obj


def _meta(obj: Any) -> dict:
    return _unwrap(obj).__dict__.setdefault(META_ATTR, {})


def _read_meta(obj: Any) -> dict:
    func = _unwrap(obj)
    return getattr(func, META_ATTR, {}) if callable(func) else {}


def _unique(values) -> tuple:
    return tuple(dict.fromkeys(values))


# Decorators -----------------------------------------------------------------


def group(*names: str):
    """Put a test method into one or more groups."""

    def decorator(func):
        meta = _meta(func)
        meta["groups"] = meta.get("groups", ()) + names
        return func

    return decorator


def depends(*names: str):
    """Declare tests that must pass before this one runs.

    Names are either ``method`` (same class) or ``Class::method``. The
    return values of the prerequisites are passed as positional arguments,
    in declaration order.
    """

    def decorator(func):
        meta = _meta(func)
        meta["depends"] = meta.get("depends", ()) + names
        return func

    return decorator


def data_provider(provider: Union[str, Callable]):
    """Attach a data provider, given as a method name or a callable."""

    def decorator(func):
        _meta(func)["data_provider"] = provider
        return func

    return decorator


def test_with(*rows):
    """Attach inline data sets to a test method."""

    def decorator(func):
        _meta(func)["test_with"] = rows
        return func

    return decorator


def size(value: TestSize):
    """Declare the size classification of a test method or class."""

    def decorator(obj):
        if isinstance(obj, type):
            obj.size = value
        else:
            _meta(obj)["size"] = value
        return obj

    return decorator


small = size(TestSize.SMALL)
medium = size(TestSize.MEDIUM)
large = size(TestSize.LARGE)


def todo(func):
    """Mark a test as not finished; risky when strict about todo tests."""
    _meta(func)["todo"] = True
    return func


def test(func):
    """Mark a method as a test even though its name lacks the prefix."""
    _meta(func)["test"] = True
    return func


test.__test__ = False
test_with.__test__ = False


def expected_exception(
    exception: Optional[Union[type, str]] = None,
    message: Optional[str] = None,
    message_regex: Optional[str] = None,
    code: Optional[int] = None,
):
    """Expect the test body to raise a matching exception."""

    def decorator(func):
        _meta(func)["expected_exception"] = ExpectedException(
            exception, message, message_regex, code
        )
        return func

    return decorator


def use_error_handler(enabled: bool):
    """Override whether warnings are escalated to errors for this test."""

    def decorator(func):
        _meta(func)["use_error_handler"] = enabled
        return func

    return decorator


def _hook(kind: str, class_level: bool):
    def decorator(func):
        _meta(func)["hook"] = kind
        if class_level and inspect.isfunction(func):
            return classmethod(func)
        return func

    decorator.__name__ = kind
    return decorator


before_class = _hook("before_class", class_level=True)
before = _hook("before", class_level=False)
after = _hook("after", class_level=False)
after_class = _hook("after_class", class_level=True)


# Extraction -----------------------------------------------------------------


def is_test_method(name: str, obj: Any) -> bool:
    """Check whether a class attribute is a test method."""
    if not inspect.isfunction(obj):
        return False
    if _read_meta(obj).get("test"):
        return True
    return name.startswith("test")


def _class_members(cls: type) -> dict[str, Any]:
    """Class attributes in declaration order, base classes first."""
    from unitrunner.framework.testcase import TestCase

    members: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object or klass is TestCase or not issubclass(klass, TestCase):
            continue
        # Overrides keep the position of the first declaration.
        for name, value in vars(klass).items():
            members[name] = value
    return members


def get_class_groups(cls: type) -> tuple[str, ...]:
    return _unique(getattr(cls, "groups", ()) or ())


def get_class_dependencies(cls: type) -> tuple[str, ...]:
    return _unique(getattr(cls, "depends", ()) or ())


def _resolve_size(cls: type, method_size: Optional[TestSize], groups: tuple[str, ...]) -> TestSize:
    if method_size is not None:
        return TestSize(method_size)
    class_size = getattr(cls, "size", None)
    if isinstance(class_size, int):
        return TestSize(class_size)
    for name in ("large", "medium", "small"):
        if name in groups:
            return SIZE_GROUPS[name]
    return TestSize.UNKNOWN


def _build_method_metadata(cls: type, name: str, obj: Any) -> MethodMetadata:
    meta = _read_meta(obj) if obj is not None else {}
    groups = _unique(get_class_groups(cls) + tuple(meta.get("groups", ())))
    dependencies = _unique(get_class_dependencies(cls) + tuple(meta.get("depends", ())))
    return MethodMetadata(
        name=name,
        groups=groups,
        dependencies=dependencies,
        data_provider=meta.get("data_provider"),
        test_with=meta.get("test_with"),
        size=_resolve_size(cls, meta.get("size"), groups),
        todo=meta.get("todo", False),
        expected_exception=meta.get("expected_exception") or ExpectedException(),
        use_error_handler=meta.get("use_error_handler"),
    )


def get_descriptor(cls: type) -> ClassDescriptor:
    """Get the cached registration table for a test class."""
    if cls in _descriptors:
        return _descriptors[cls]

    descriptor = ClassDescriptor(
        test_class=cls,
        hooks={kind: [DEFAULT_HOOKS[kind]] for kind in HOOK_KINDS},
        groups=get_class_groups(cls),
    )

    for name, obj in _class_members(cls).items():
        meta = _read_meta(obj)
        kind = meta.get("hook")
        if kind in descriptor.hooks and name not in descriptor.hooks[kind]:
            descriptor.hooks[kind].append(name)
        elif is_test_method(name, obj):
            descriptor.methods[name] = _build_method_metadata(cls, name, obj)

    _descriptors[cls] = descriptor
    return descriptor


def get_hook_methods(cls: Optional[type]) -> dict[str, list[str]]:
    """Get the hook table for a class, or the defaults for a synthetic suite."""
    from unitrunner.framework.testcase import TestCase

    if not (isinstance(cls, type) and issubclass(cls, TestCase)):
        return {kind: [DEFAULT_HOOKS[kind]] for kind in HOOK_KINDS}
    return get_descriptor(cls).hooks


def get_groups(cls: type, method: str = "") -> tuple[str, ...]:
    if not method:
        return get_class_groups(cls)
    return get_descriptor(cls).method(method).groups


def get_dependencies(cls: type, method: str) -> tuple[str, ...]:
    return get_descriptor(cls).method(method).dependencies


def get_size(cls: type, method: str) -> TestSize:
    return get_descriptor(cls).method(method).size


def clear_cache() -> None:
    """Forget every cached class descriptor."""
    _descriptors.clear()


def describe(test: Any) -> tuple[str, str]:
    """Split a test into (class name, test name) for display."""
    from unitrunner.framework.testcase import TestCase

    if isinstance(test, TestCase):
        return type(test).__name__, test.get_name()
    return "", str(test)
