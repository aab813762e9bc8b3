"""
Per-parse bookkeeping: the current element path and the active rules.

Both structures move in lock-step with the event stream. Any inconsistency
means the upstream reader broke its contract, so they raise
ScannerStateError instead of trying to recover.
"""

from typing import Dict, List, Optional

from element_scanner.exceptions import ScannerStateError
from element_scanner.registry import Registration


SEPARATOR = '/'


class PathTracker:
    """
    The path of the element being parsed, e.g. '/root/z/x'.

    Kept as one string plus the stack of lengths it had before each
    push, so pop() restores exactly what push() added.

    Example:
        >>> tracker = PathTracker()
        >>> tracker.push('root')
        '/root'
        >>> tracker.push('x')
        '/root/x'
        >>> tracker.path
        '/root/x'
        >>> tracker.pop('x')
        '/root'
        >>> tracker.path
        '/root'
    """

    def __init__(self):
        self._path = ''
        self._marks: List[int] = []

    @property
    def path(self) -> str:
        return self._path

    @property
    def depth(self) -> int:
        return len(self._marks)

    def push(self, name: str) -> str:
        """Descend into an element; returns the new path."""
        if not name or SEPARATOR in name:
            raise ScannerStateError(f"Invalid element name for path: {name!r}")

        self._marks.append(len(self._path))
        self._path = f"{self._path}{SEPARATOR}{name}"
        return self._path

    def pop(self, name: Optional[str] = None) -> str:
        """
        Ascend out of the current element; returns the new path.

        Args:
            name: Local name of the closing element. If given, it must
                  equal the last path segment.

        Raises:
            ScannerStateError: On underflow or mismatched close
        """
        if not self._marks:
            raise ScannerStateError(
                f"Unbalanced end of element {name!r}: no element is open"
            )

        mark = self._marks[-1]
        if name is not None and self._path[mark + 1:] != name:
            raise ScannerStateError(
                f"Mismatched end of element {name!r} at path '{self._path}'"
            )

        self._marks.pop()
        self._path = self._path[:mark]
        return self._path

    def reset(self) -> None:
        self._path = ''
        self._marks = []


class ActiveRuleTable:
    """
    Open paths that matched at least one rule when they were entered.

    The table being non-empty means "building": every raw event must be
    forwarded to the tree builder. Nested matches each get their own
    entry since an open path string is unique per nesting level.
    """

    def __init__(self):
        self._entries: Dict[str, List[Registration]] = {}
        self.peak = 0

    @property
    def building(self) -> bool:
        return bool(self._entries)

    def activate(self, path: str, rules: List[Registration]) -> None:
        """
        Make rules active for an opening path.

        Raises:
            ScannerStateError: If the path is already active
        """
        if path in self._entries:
            raise ScannerStateError(f"Path '{path}' is already active")

        self._entries[path] = list(rules)
        self.peak = max(self.peak, len(self._entries))

    def release(self, path: str) -> Optional[List[Registration]]:
        """Remove and return the rules active for a closing path (None if none)."""
        return self._entries.pop(path, None)

    def is_active(self, path: str) -> bool:
        return path in self._entries

    def clear(self) -> None:
        self._entries = {}
        self.peak = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return self.building
