"""
Per-parse statistics reported by ElementScanner.

A fresh ScanStatistics is created at every document start, so the object
always describes the current (or last completed) parse.
"""

from pydantic import BaseModel, Field


class ScanStatistics(BaseModel):
    """
    Counters collected while scanning one document.

    Attributes:
        elements_seen: Elements opened in the event stream
        elements_built: Elements materialized by the tree builder
        matches: Element closes that had at least one active rule
        notifications: Listener invocations performed
        max_active_rules: Largest number of simultaneously open matched paths

    Example:
        >>> scanner.parse_string('<root><x/></root>')
        >>> scanner.statistics.elements_seen
        2
        >>> scanner.statistics.elements_built
        1
    """

    elements_seen: int = Field(default=0, ge=0, description="Elements opened")
    elements_built: int = Field(default=0, ge=0, description="Elements materialized")
    matches: int = Field(default=0, ge=0, description="Closes with active rules")
    notifications: int = Field(default=0, ge=0, description="Listener invocations")
    max_active_rules: int = Field(
        default=0,
        ge=0,
        description="Peak number of simultaneously active matched paths"
    )

    @property
    def materialized(self) -> bool:
        """True if any element was built during the parse."""
        return self.elements_built > 0
