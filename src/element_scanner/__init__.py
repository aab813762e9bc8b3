"""
element-scanner: streaming XPath-like element selection over SAX.

Main package exports for user-facing API.
"""

from element_scanner.scanner import ElementScanner
from element_scanner.listeners import ElementListener
from element_scanner.config import ScannerSettings, get_settings
from element_scanner.models import ScanStatistics
from element_scanner.registry import Registration, RuleRegistry
from element_scanner.matchers import PathMatcher, XPathPatternMatcher, create_default_matcher
from element_scanner.exceptions import (
    ScannerError,
    RegistrationError,
    InvalidListenerError,
    PatternSyntaxError,
    ListenerError,
    ScannerStateError,
)

__version__ = "0.1.0"

__all__ = [
    'ElementScanner',
    'ElementListener',
    'ScannerSettings',
    'get_settings',
    'ScanStatistics',
    'Registration',
    'RuleRegistry',
    'PathMatcher',
    'XPathPatternMatcher',
    'create_default_matcher',
    'ScannerError',
    'RegistrationError',
    'InvalidListenerError',
    'PatternSyntaxError',
    'ListenerError',
    'ScannerStateError',
    'scan',
]


def scan(source, listeners) -> ScanStatistics:
    """
    Parse a document and notify listeners of the elements they selected.

    Convenience wrapper for one-off scans with default settings.

    Args:
        source: File name, URL, file object or InputSource
        listeners: Mapping of pattern → listener callable

    Returns:
        Statistics of the parse

    Example:
        >>> titles = []
        >>> scan('catalog.xml', {'book/title': lambda path, e: titles.append(e.text)})
        >>> titles
        ['XML in a Nutshell', 'Learning Python']
    """
    scanner = ElementScanner()
    for pattern, listener in listeners.items():
        scanner.add_listener(listener, pattern)
    scanner.parse(source)
    return scanner.statistics
