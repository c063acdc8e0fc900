"""Nested capture of standard output."""

import io
import sys
from typing import TextIO


class OutputBuffer:
    """Process-wide stack of ``sys.stdout`` capture buffers.

    Each level swaps ``sys.stdout`` for a fresh buffer and remembers the
    stream it replaced, so levels must be closed in reverse order.
    """

    _stack: list[tuple[io.StringIO, TextIO]] = []

    @classmethod
    def start(cls) -> int:
        """Open a new capture level and return the resulting depth."""
        buffer = io.StringIO()
        cls._stack.append((buffer, sys.stdout))
        sys.stdout = buffer
        return len(cls._stack)

    @classmethod
    def level(cls) -> int:
        return len(cls._stack)

    @classmethod
    def contents(cls) -> str:
        """Get what the innermost level captured so far."""
        if not cls._stack:
            return ""
        return cls._stack[-1][0].getvalue()

    @classmethod
    def end(cls) -> str:
        """Close the innermost level and return what it captured."""
        buffer, previous = cls._stack.pop()
        sys.stdout = previous
        return buffer.getvalue()

    @classmethod
    def unwind(cls, level: int = 0) -> None:
        """Close levels until the depth is ``level``."""
        while len(cls._stack) > level:
            cls.end()
