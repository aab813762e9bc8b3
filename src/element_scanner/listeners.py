"""
Listener contract for matched elements.

A listener is any callable taking (path, element). ElementListener is the
object-oriented form: subclasses implement element_matched() and instances
are callable, so both forms register the same way.
"""

from abc import ABC, abstractmethod
from typing import Callable

from lxml import etree


ListenerCallable = Callable[[str, etree._Element], None]


class ElementListener(ABC):
    """
    Abstract base class for objects notified of matched elements.

    Example:
        >>> class TitlePrinter(ElementListener):
        ...     def element_matched(self, path, element):
        ...         print(path, element.text)
        >>> _ = scanner.add_listener(TitlePrinter(), 'book/title')
    """

    @abstractmethod
    def element_matched(self, path: str, element: etree._Element) -> None:
        """
        Receive a fully built element that matched a registered pattern.

        Args:
            path: Path of the element, e.g. '/catalog/book/title'
            element: The built lxml element (may be retained)

        Raises:
            Any exception aborts the parse (wrapped in ListenerError).
        """
        pass

    def __call__(self, path: str, element: etree._Element) -> None:
        self.element_matched(path, element)
