"""Indent-aware source buffer."""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple


class CodeWriter:
    """
    Accumulates lines of C# at a tracked nesting depth.

    Lines are stored with their depth and rendered with a configurable
    indent unit, so a body lowered on its own can later be spliced into a
    method at any depth (see extend()).

    Attributes:
        suspends: Set when a lowered statement yields (Wait). The assembler
            uses it to turn the enclosing method into a coroutine.
    """

    def __init__(self, depth: int = 0):
        self.depth = depth
        self.suspends = False
        self._lines: List[Tuple[int, str]] = []

    def line(self, text: str = "") -> None:
        """Append one line at the current depth."""
        self._lines.append((self.depth, text))

    def comment(self, text: str) -> None:
        """Append a // comment. Newlines in text are flattened."""
        flat = ' '.join(str(text).split())
        self.line(f"// {flat}")

    @contextmanager
    def indented(self) -> Iterator['CodeWriter']:
        self.depth += 1
        try:
            yield self
        finally:
            self.depth -= 1

    @contextmanager
    def block(self, header: Optional[str] = None) -> Iterator['CodeWriter']:
        """Emit `header`, then a braced block whose body is the with-suite."""
        if header is not None:
            self.line(header)
        self.line("{")
        with self.indented():
            yield self
        self.line("}")

    def extend(self, other: 'CodeWriter') -> None:
        """Splice another writer's lines in at the current depth."""
        base = self.depth - other.base_depth
        for depth, text in other._lines:
            self._lines.append((depth + base, text))
        self.suspends = self.suspends or other.suspends

    @property
    def base_depth(self) -> int:
        return min((depth for depth, _ in self._lines), default=self.depth)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def lines(self, indent: str = "    ") -> List[str]:
        """Rendered lines; blank lines carry no indentation."""
        return [indent * depth + text if text else "" for depth, text in self._lines]

    def render(self, indent: str = "    ") -> str:
        return "\n".join(self.lines(indent))
