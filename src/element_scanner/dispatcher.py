"""
Listener notification for closed, matched elements.
"""

import logging
from typing import Iterable

from lxml import etree

from element_scanner.exceptions import ListenerError
from element_scanner.registry import Registration


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Notifies the listeners of the rules that were active for a path.

    Rules with a test are re-checked against the built element first and
    silently skipped if it does not hold. The first listener failure
    stops the dispatch and is raised as a ListenerError, which aborts
    the parse.
    """

    def dispatch(
        self,
        path: str,
        element: etree._Element,
        rules: Iterable[Registration]
    ) -> int:
        """
        Notify matching listeners in registration order.

        Args:
            path: Path of the closed element
            element: The built element
            rules: Registrations active for the path

        Returns:
            Number of listeners notified

        Raises:
            ListenerError: If a listener raises (remaining listeners are
                           not notified)
        """
        notified = 0

        for rule in rules:
            if rule.matcher.has_predicate and not rule.matcher.match_node(path, element):
                logger.debug(f"Test of '{rule.expression}' failed for {path}")
                continue

            try:
                rule.listener(path, element)
            except Exception as e:
                logger.error(
                    f"Listener {rule.listener!r} failed for {path} "
                    f"(pattern '{rule.expression}'): {e}"
                )
                raise ListenerError(
                    f"Listener failed for {path}: {e}",
                    e,
                    path=path,
                    listener=rule.listener
                ) from e

            notified += 1

        return notified
