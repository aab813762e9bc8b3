"""
Rule registry: the ordered set of (pattern, listener) registrations.

Registration order is significant: matching rules are returned, and
listeners notified, in the order they were added.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Mapping, Optional

from element_scanner.exceptions import InvalidListenerError
from element_scanner.listeners import ListenerCallable
from element_scanner.matchers import MatcherFactory, PathMatcher, create_default_matcher


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """A compiled pattern bound to the listener it notifies."""
    matcher: PathMatcher
    listener: ListenerCallable

    @property
    def expression(self) -> str:
        return self.matcher.expression


class RuleRegistry:
    """
    Holds listener registrations and answers "which rules match here?".

    The same listener can be registered several times using different
    patterns and several listeners can be registered using the same
    pattern.

    Args:
        matcher_factory: Callable compiling (expression, namespaces) into a
                         PathMatcher. Default: create_default_matcher

    Example:
        >>> registry = RuleRegistry()
        >>> _ = registry.add(on_item, 'item')
        >>> [r.expression for r in registry.matching_rules('/list/item')]
        ['item']
    """

    def __init__(self, matcher_factory: MatcherFactory = create_default_matcher):
        self._matcher_factory = matcher_factory
        self._registrations: List[Registration] = []

    def add(
        self,
        listener: ListenerCallable,
        pattern: str,
        namespaces: Optional[Mapping[str, str]] = None
    ) -> Registration:
        """
        Register a listener for the elements selected by a pattern.

        Args:
            listener: Callable receiving (path, element)
            pattern: Pattern selecting the elements of interest
            namespaces: Optional prefix → URI mapping for the pattern test

        Returns:
            The new Registration

        Raises:
            InvalidListenerError: If listener is None or not callable
            PatternSyntaxError: If the pattern is invalid
        """
        if listener is None:
            raise InvalidListenerError("Invalid listener object: None")
        if not callable(listener):
            raise InvalidListenerError(
                f"Invalid listener object: {listener!r} is not callable"
            )

        matcher = self._matcher_factory(pattern, namespaces)
        registration = Registration(matcher=matcher, listener=listener)
        self._registrations.append(registration)

        logger.debug(f"Registered {listener!r} for pattern '{pattern}'")
        return registration

    def remove(
        self,
        listener: Optional[ListenerCallable] = None,
        pattern: Optional[str] = None
    ) -> int:
        """
        Remove registrations.

        - listener and pattern: registrations matching both
        - listener only: every registration of that listener
        - pattern only: every registration using that pattern
        - neither: no action

        Args:
            listener: Listener to remove (compared with ==)
            pattern: Pattern string to remove

        Returns:
            Number of registrations removed
        """
        if listener is None and pattern is None:
            return 0

        kept = [
            r for r in self._registrations
            if not (
                (listener is None or r.listener == listener)
                and (pattern is None or r.expression == pattern)
            )
        ]
        removed = len(self._registrations) - len(kept)
        self._registrations = kept

        logger.debug(
            f"Removed {removed} registration(s) "
            f"(listener={listener!r}, pattern={pattern!r})"
        )
        return removed

    def matching_rules(
        self,
        path: str,
        attrs: Optional[Mapping[str, str]] = None
    ) -> List[Registration]:
        """
        Return, in registration order, the registrations whose node
        selection matches the path.

        Args:
            path: Element path, e.g. '/root/x'
            attrs: Open-time attributes of the element

        Returns:
            Matching registrations (empty list if none)
        """
        return [
            r for r in self._registrations
            if r.matcher.match_path(path, attrs)
        ]

    def clear(self) -> None:
        self._registrations = []

    def __len__(self) -> int:
        return len(self._registrations)

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations))

    def __bool__(self) -> bool:
        return bool(self._registrations)
