"""
Path pattern matchers.

- PathMatcher: interface of a compiled matching rule
- XPathPatternMatcher: default regex + XPath implementation
- create_default_matcher: factory used by the rule registry
"""

from typing import Mapping, Optional

from .base import PathMatcher, MatcherFactory
from .pattern import XPathPatternMatcher, split_expression, compile_selection

__all__ = [
    'PathMatcher',
    'MatcherFactory',
    'XPathPatternMatcher',
    'split_expression',
    'compile_selection',
    'create_default_matcher',
]


def create_default_matcher(
    expression: str,
    namespaces: Optional[Mapping[str, str]] = None
) -> PathMatcher:
    """
    Create default matching strategy.

    Args:
        expression: Pattern string, e.g. 'x', 'a//b', "y[@id='1']"
        namespaces: Optional prefix → URI mapping for XPath tests

    Returns:
        XPathPatternMatcher for the expression

    Raises:
        PatternSyntaxError: If the expression is invalid
    """
    return XPathPatternMatcher(expression, namespaces)
