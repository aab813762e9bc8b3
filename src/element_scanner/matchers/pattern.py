"""
XPath-like pattern matcher.

Patterns are split in two parts:
1. Node selection: 'x', 'a/b', 'a//b', '/*', 'y/*/t'
   Compiled to a regular expression over the element path, so matching
   never requires the element to be built.
2. Optional test: everything from the first unescaped '[' outside quotes,
   e.g. '[.//y]' in 'y[.//y]'. Compiled with lxml as the XPath
   'self::node()[.//y]' and evaluated on the built element.

Like XSLT match patterns (and unlike strict XPath), there is no context
node: a relative pattern matches at any depth, so 'x' == '//x'.
"""

import re
from typing import Dict, Mapping, Optional, Tuple

from lxml import etree

from element_scanner.exceptions import PatternSyntaxError
from .base import PathMatcher


# Name step with optional prefix (the prefix is ignored for path matching)
_NAME = r'[^\W\d][\w.\-]*'
_NAME_STEP = re.compile(rf'^(?:{_NAME}:)?({_NAME})$')

# '[@a]', '[@a="v"]' or "[@a='v']" with an unprefixed attribute name
_ATTRIBUTE_TEST = re.compile(
    rf'''^\[\s*@({_NAME})\s*(?:=\s*(?:'([^']*)'|"([^"]*)"))?\s*\]$'''
)

_ANY_SEGMENT = '[^/]+'
_CHILD = '/'
_DESCENDANT = '(?:/[^/]+)*/'


def split_expression(expression: str) -> Tuple[str, Optional[str]]:
    """
    Split a pattern into its node selection and test parts.

    The test starts at the first '[' that is neither escaped with a
    backslash nor inside a quoted string.

    Args:
        expression: Pattern string, e.g. "book[@lang='en']"

    Returns:
        (selection, test) where test is None if absent

    Example:
        >>> split_expression("book[@lang='en']")
        ('book', "[@lang='en']")
        >>> split_expression('a//b')
        ('a//b', None)
    """
    quote = None
    escaped = False

    for index, char in enumerate(expression):
        if escaped:
            escaped = False
        elif char == '\\':
            escaped = True
        elif quote is not None:
            if char == quote:
                quote = None
        elif char in ('"', "'"):
            quote = char
        elif char == '[':
            return expression[:index].strip(), expression[index:].strip()

    return expression.strip(), None


def _step_to_regex(step: str, expression: str) -> str:
    """Translate one location step into a regular expression fragment."""
    if step == '*':
        return _ANY_SEGMENT

    match = _NAME_STEP.match(step)
    if match:
        return re.escape(match.group(1))

    if not step:
        raise PatternSyntaxError(
            f"Empty location step in pattern '{expression}'",
            expression
        )
    if step in ('.', '..') or step.startswith('@') or '(' in step or '::' in step:
        raise PatternSyntaxError(
            f"Unsupported location step '{step}' in pattern '{expression}': "
            f"only element names and '*' are allowed",
            expression
        )
    raise PatternSyntaxError(
        f"Invalid element name '{step}' in pattern '{expression}'",
        expression
    )


def compile_selection(selection: str, expression: Optional[str] = None) -> re.Pattern:
    """
    Compile a node selection pattern into a path regular expression.

    Args:
        selection: Node selection part of a pattern, e.g. 'a//b'
        expression: Full pattern, used in error messages

    Returns:
        Compiled regex to be used with fullmatch() on element paths

    Raises:
        PatternSyntaxError: If the selection is empty or malformed

    Example:
        >>> compile_selection('x').fullmatch('/root/z/x') is not None
        True
        >>> compile_selection('/x').fullmatch('/root/x') is not None
        False
    """
    expression = expression if expression is not None else selection

    if not selection:
        raise PatternSyntaxError(
            f"Missing node selection in pattern '{expression}'",
            expression
        )
    if '|' in selection:
        raise PatternSyntaxError(
            f"Union operator '|' is not supported in pattern '{expression}'; "
            f"register the listener once per alternative",
            expression
        )

    # Relative patterns match at any depth
    absolute = selection if selection.startswith('/') else '//' + selection

    tokens = re.split(r'(/+)', absolute)
    fragments = []
    for separator, step in zip(tokens[1::2], tokens[2::2]):
        if separator == '/':
            fragments.append(_CHILD)
        elif separator == '//':
            fragments.append(_DESCENDANT)
        else:
            raise PatternSyntaxError(
                f"Invalid separator '{separator}' in pattern '{expression}'",
                expression
            )
        fragments.append(_step_to_regex(step, expression))

    return re.compile(''.join(fragments))


class XPathPatternMatcher(PathMatcher):
    """
    Default matcher: regex path selection + lxml XPath test.

    Args:
        expression: Pattern string
        namespaces: Optional prefix → URI mapping for the test part

    Raises:
        PatternSyntaxError: If either part cannot be compiled

    Example:
        >>> matcher = XPathPatternMatcher("*[contains(@name,'.1')]")
        >>> matcher.match_path('/doc/item')
        True
        >>> matcher.has_predicate
        True
    """

    def __init__(
        self,
        expression: str,
        namespaces: Optional[Mapping[str, str]] = None
    ):
        if not isinstance(expression, str):
            raise PatternSyntaxError(
                f"Pattern must be a string, got {type(expression).__name__}"
            )
        super().__init__(expression)

        selection, test = split_expression(expression)
        self._selection = compile_selection(selection, expression)
        self._namespaces: Dict[str, str] = dict(namespaces or {})

        self._test = None
        self._attribute_test: Optional[Tuple[str, Optional[str]]] = None
        if test is not None:
            self._test = self._compile_test(test)
            attribute = _ATTRIBUTE_TEST.match(test)
            if attribute:
                name, single, double = attribute.groups()
                value = single if single is not None else double
                self._attribute_test = (name, value)

    def _compile_test(self, test: str) -> etree.XPath:
        expression = self.expression

        if not test.endswith(']'):
            raise PatternSyntaxError(
                f"Location steps after a test are not supported in pattern "
                f"'{expression}'",
                expression
            )

        try:
            xpath = etree.XPath(
                'self::node()' + test,
                namespaces=self._namespaces or None
            )
            # Probe once so undefined prefixes/functions fail at registration
            xpath(etree.Element('probe'))
        except etree.XPathError as e:
            raise PatternSyntaxError(
                f"Invalid test '{test}' in pattern '{expression}': {e}",
                expression
            ) from e

        return xpath

    @property
    def has_predicate(self) -> bool:
        return self._test is not None

    def match_path(
        self,
        path: str,
        attrs: Optional[Mapping[str, str]] = None
    ) -> bool:
        if self._selection.fullmatch(path) is None:
            return False

        # Single attribute tests can reject the element before it is built
        if self._attribute_test is not None and attrs is not None:
            name, value = self._attribute_test
            actual = attrs.get(name)
            if actual is None:
                return False
            if value is not None and actual != value:
                return False

        return True

    def match_node(self, path: str, element: etree._Element) -> bool:
        if self._selection.fullmatch(path) is None:
            return False
        if self._test is None:
            return True
        return bool(self._test(element))
