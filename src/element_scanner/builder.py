"""
Selective tree builder: an adapter over lxml.etree.TreeBuilder.

The scanner feeds it only the events that fall inside matched subtrees.
Key properties:
- No document wrapper: every top-level built element is an independent
  root, several of them may come out of one parse
- completed_node() returns the element closed by the last end() call
- TreeBuilder.close() is never called, so an unmatched document never
  triggers "missing root element" errors
"""

from typing import Callable, Dict, List, Mapping, Optional

from lxml import etree

from element_scanner.config import ScannerSettings


XML_NAMESPACE = 'http://www.w3.org/XML/1998/namespace'


class ElementBuilder:
    """
    Builds lxml elements from SAX-shaped events.

    Namespace declarations are tracked for the whole document so that the
    first element of a built subtree carries every prefix in scope, even
    those declared on unbuilt ancestors.

    Args:
        settings: Whitespace/comment/PI policy
        element_factory: Optional callable (tag, attrib, nsmap) → element
                         used to build custom element classes, e.g.
                         parser.makeelement

    Example:
        >>> builder = ElementBuilder(ScannerSettings())
        >>> element = builder.start('x', {'id': '1'})
        >>> builder.data('hello')
        >>> builder.end('x').text
        'hello'
        >>> builder.completed_node().tag
        'x'
    """

    def __init__(
        self,
        settings: ScannerSettings,
        element_factory: Optional[Callable[..., etree._Element]] = None
    ):
        self._settings = settings
        self._element_factory = element_factory
        self.reset()

    def reset(self) -> None:
        """Discard all state and start a fresh TreeBuilder."""
        self._builder = etree.TreeBuilder(
            element_factory=self._make_element if self._element_factory else None,
            insert_comments=self._settings.insert_comments,
            insert_pis=self._settings.insert_pis
        )
        self._depth = 0
        self._text: List[str] = []
        self._scopes: Dict[Optional[str], List[str]] = {}
        self._pending: Dict[Optional[str], str] = {}
        self._completed: Optional[etree._Element] = None
        self._start_nsmap: Optional[Dict[Optional[str], str]] = None

    def _make_element(self, tag: str, attrib: Dict[str, str]) -> etree._Element:
        # TreeBuilder calls custom factories without the nsmap
        return self._element_factory(tag, attrib, self._start_nsmap)

    @property
    def depth(self) -> int:
        """Number of built elements currently open."""
        return self._depth

    def completed_node(self) -> Optional[etree._Element]:
        """Return the element most recently closed by end()."""
        return self._completed

    # ------------------------------------------------------------------
    # Namespace scopes (tracked whether or not building)
    # ------------------------------------------------------------------

    def start_prefix_mapping(self, prefix: Optional[str], uri: str) -> None:
        prefix = prefix or None
        self._scopes.setdefault(prefix, []).append(uri)
        self._pending[prefix] = uri

    def end_prefix_mapping(self, prefix: Optional[str]) -> None:
        prefix = prefix or None
        stack = self._scopes.get(prefix)
        if stack:
            stack.pop()
            if not stack:
                del self._scopes[prefix]

    def resolve_name(self, qname: str, attribute: bool = False) -> str:
        """
        Return the '{uri}local' form of a prefixed name using the
        declarations in scope.

        Used when the upstream reader does no namespace processing.
        Unprefixed attributes are never namespaced; names whose prefix is
        not declared fall back to their local name.

        Example:
            >>> builder.start_prefix_mapping('p', 'urn:p')
            >>> builder.resolve_name('p:x')
            '{urn:p}x'
            >>> builder.resolve_name('q:x')
            'x'
        """
        prefix, _, local_name = qname.rpartition(':')
        if not prefix:
            if attribute:
                return qname
            prefix = None
        elif prefix == 'xml':
            return f"{{{XML_NAMESPACE}}}{local_name}"

        stack = self._scopes.get(prefix)
        if stack and stack[-1]:
            return f"{{{stack[-1]}}}{local_name}"
        return local_name

    def skip_start(self) -> None:
        """An element opened without being built: drop its pending declarations."""
        self._pending = {}

    def _nsmap_for_start(self) -> Dict[Optional[str], str]:
        if self._depth == 0:
            declared = {prefix: stack[-1] for prefix, stack in self._scopes.items()}
        else:
            declared = self._pending
        # xmlns="" undeclares the default namespace, lxml has no nsmap entry for it
        return {prefix: uri for prefix, uri in declared.items() if uri}

    # ------------------------------------------------------------------
    # Content events
    # ------------------------------------------------------------------

    def _flush_text(self) -> None:
        if not self._text:
            return
        text = ''.join(self._text)
        self._text = []
        if self._settings.remove_blank_text and not text.strip():
            return
        self._builder.data(text)

    def start(
        self,
        tag: str,
        attrib: Mapping[str, str],
        nsmap: Optional[Mapping[Optional[str], str]] = None
    ) -> etree._Element:
        self._flush_text()
        if nsmap is None:
            nsmap = self._nsmap_for_start()
        self._pending = {}

        self._start_nsmap = dict(nsmap) or None
        element = self._builder.start(tag, dict(attrib), self._start_nsmap)
        self._depth += 1
        return element

    def end(self, tag: str) -> etree._Element:
        self._flush_text()
        element = self._builder.end(tag)
        self._depth -= 1
        self._completed = element
        return element

    def data(self, text: str) -> None:
        self._text.append(text)

    def ignorable_whitespace(self, text: str) -> None:
        if not self._settings.ignore_whitespace:
            self._text.append(text)

    def pi(self, target: str, data: Optional[str] = None) -> None:
        if not self._settings.insert_pis:
            return
        self._flush_text()
        self._builder.pi(target, data)

    def comment(self, text: str) -> None:
        if not self._settings.insert_comments:
            return
        self._flush_text()
        self._builder.comment(text)

    def skipped_entity(self, name: str) -> None:
        # Unresolved references stay visible as their literal text
        self._text.append(f"&{name};")
