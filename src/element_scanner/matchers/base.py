"""
Path Matching Strategies

Defines the interface every matching rule implements. The scanner only
talks to this interface, so the default XPath-like implementation can be
swapped for another strategy through the registry's matcher factory.

Design:
- Strategy Pattern: Matchers are interchangeable
- Two-phase matching: path shape first (no node needed), predicate last
"""

from abc import ABC, abstractmethod
from typing import Callable, Mapping, Optional

from lxml import etree


class PathMatcher(ABC):
    """
    Abstract base class for compiled path patterns.

    A matcher is created once per registration and never changes.
    match_path() is consulted when an element opens and must decide
    from the path (and open-time attributes) alone. match_node() is
    consulted when the element closes, with the built element at hand.
    """

    def __init__(self, expression: str):
        self._expression = expression

    @property
    def expression(self) -> str:
        """The pattern string this matcher was compiled from."""
        return self._expression

    @property
    def has_predicate(self) -> bool:
        """True if match_node() needs the built element to decide."""
        return False

    @abstractmethod
    def match_path(
        self,
        path: str,
        attrs: Optional[Mapping[str, str]] = None
    ) -> bool:
        """
        Structural match, decided when the element opens.

        Args:
            path: Element path, e.g. '/root/z/x'
            attrs: Attributes of the opening element keyed by
                   lxml-style names ('name' or '{uri}name')

        Returns:
            True if the element may match and must be built
        """
        pass

    @abstractmethod
    def match_node(self, path: str, element: etree._Element) -> bool:
        """
        Final match, decided when the element closes.

        Args:
            path: Element path
            element: The fully built element

        Returns:
            True if listeners registered with this matcher are notified
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._expression!r})"


MatcherFactory = Callable[..., PathMatcher]
