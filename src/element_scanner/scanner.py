"""
ElementScanner: a SAX filter that builds and reports selected elements.

The scanner sits between a SAX reader and the application. It tracks the
path of the element being parsed, matches it against registered patterns
and builds lxml elements only for the matching subtrees. Each built
element is handed to its listeners as soon as its end tag is parsed.

Every SAX event is also passed on unchanged to the application's own
ContentHandler (standard XMLFilter chaining), so the scanner can be
combined with regular SAX processing.

Thread safety: an ElementScanner is NOT reentrant. One parse at a time per
instance; sequential parses on the same instance are fine.
"""

import io
import logging
from typing import Any, Callable, List, Mapping, Optional, Tuple
from xml.sax import SAXNotRecognizedException, SAXNotSupportedException, handler, make_parser
from xml.sax.saxutils import XMLFilterBase
from xml.sax.xmlreader import InputSource, XMLReader

from lxml import etree
from lxml.sax import saxify

from element_scanner.builder import ElementBuilder
from element_scanner.config import ScannerSettings, get_settings
from element_scanner.dispatcher import Dispatcher
from element_scanner.exceptions import ScannerStateError
from element_scanner.listeners import ListenerCallable
from element_scanner.matchers import MatcherFactory, create_default_matcher
from element_scanner.models import ScanStatistics
from element_scanner.registry import Registration, RuleRegistry
from element_scanner.tracking import ActiveRuleTable, PathTracker


logger = logging.getLogger(__name__)


def _clark_name(uri: Optional[str], local_name: str) -> str:
    """Return the lxml '{uri}local' form of a namespaced name."""
    return f"{{{uri}}}{local_name}" if uri else local_name


def _local_name(qname: str) -> str:
    return qname.rpartition(':')[2]


def _set_feature(parent: XMLReader, name: str, value: bool) -> None:
    """
    Set a reader feature unless it already has the requested value.

    expat refuses any setFeature() call after a parse that ended with an
    exception, even to the current value.
    """
    try:
        current = parent.getFeature(name)
    except SAXNotRecognizedException:
        current = None
    if current is None or bool(current) != value:
        parent.setFeature(name, value)


class ElementScanner(XMLFilterBase):
    """
    An XML filter that uses XPath-like patterns to select the elements
    to build and notifies listeners when they become available.

    Pattern syntax (see element_scanner.matchers.pattern):
        'x'          any element named x, at any depth ('//x')
        'a/b'        b whose parent is a
        'a//b'       b with an ancestor a
        '/*'         the root element
        'y/*/t'      t grandchildren of y
        "*[contains(@name,'.1')]"   XPath test on the built element

    Args:
        parent: Upstream SAX XMLReader. Default: xml.sax.make_parser()
        settings: Parsing/building options. Default: get_settings()
        element_factory: Optional callable (tag, attrib, nsmap) → element for
                         built elements, e.g. parser.makeelement
        matcher_factory: Pattern compiler. Default: create_default_matcher

    Example:
        >>> scanner = ElementScanner()
        >>> _ = scanner.add_listener(lambda path, elem: print(path), 'x')
        >>> scanner.parse_string('<root><x><y/></x><z><x/></z></root>')
        /root/x
        /root/z/x
    """

    def __init__(
        self,
        parent: Optional[XMLReader] = None,
        settings: Optional[ScannerSettings] = None,
        element_factory: Optional[Callable[..., etree._Element]] = None,
        matcher_factory: MatcherFactory = create_default_matcher
    ):
        super().__init__(parent)
        self._settings = settings if settings is not None else get_settings()
        self._registry = RuleRegistry(matcher_factory)
        self._builder = ElementBuilder(self._settings, element_factory)
        self._dispatcher = Dispatcher()
        self._path = PathTracker()
        self._active = ActiveRuleTable()
        self._statistics = ScanStatistics()
        self._lexical_handler: Optional[Any] = None
        self._declared: List[List[Optional[str]]] = []
        self._parsing = False

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    @property
    def listeners(self) -> RuleRegistry:
        """The registry of (pattern, listener) registrations."""
        return self._registry

    @property
    def settings(self) -> ScannerSettings:
        return self._settings

    @property
    def statistics(self) -> ScanStatistics:
        """Counters of the current or last parse."""
        return self._statistics

    def add_listener(
        self,
        listener: ListenerCallable,
        pattern: str,
        namespaces: Optional[Mapping[str, str]] = None
    ) -> Registration:
        """
        Add an element listener.

        The same listener can be registered several times using different
        patterns and several listeners can share the same pattern.

        Args:
            listener: Callable receiving (path, element)
            pattern: XPath-like expression selecting the elements
            namespaces: Prefix → URI mapping for prefixes used in the
                        pattern test

        Returns:
            The new Registration

        Raises:
            InvalidListenerError: If listener is None or not callable
            PatternSyntaxError: If the pattern is invalid
            ScannerStateError: If a parse is in progress
        """
        self._ensure_idle('add a listener')
        return self._registry.add(listener, pattern, namespaces)

    def remove_listener(
        self,
        listener: Optional[ListenerCallable] = None,
        pattern: Optional[str] = None
    ) -> int:
        """
        Remove element listeners.

        If pattern is None, removes every registration of listener.
        If listener is None, removes every listener registered for pattern.
        If both are None, does nothing.

        Returns:
            Number of registrations removed

        Raises:
            ScannerStateError: If a parse is in progress
        """
        self._ensure_idle('remove a listener')
        return self._registry.remove(listener, pattern)

    def _ensure_idle(self, action: str) -> None:
        if self._parsing:
            raise ScannerStateError(f"Cannot {action} while a parse is in progress")

    # ------------------------------------------------------------------
    # XMLReader interface
    # ------------------------------------------------------------------

    def parse(self, source: Any) -> None:
        """
        Parse an XML document.

        Synchronous: returns once the whole document has been parsed and
        every listener notified. To stop early, a listener raises; the
        parse then fails with ListenerError.

        Args:
            source: File name, URL, binary/text file object or InputSource

        Raises:
            ListenerError: If a listener failed
            SAXParseException: If the document is malformed
            ScannerStateError: If a parse is already in progress
        """
        self._ensure_idle('start a parse')

        parent = self.getParent()
        if parent is None:
            parent = make_parser()
            self.setParent(parent)
        self._configure_parent(parent)

        self._parsing = True
        try:
            super().parse(source)
        finally:
            self._parsing = False

    def parse_string(self, text: Any) -> None:
        """Parse a document held in a str or bytes object."""
        source = InputSource()
        if isinstance(text, str):
            source.setCharacterStream(io.StringIO(text))
        else:
            source.setByteStream(io.BytesIO(text))
        self.parse(source)

    def parse_tree(self, tree: Any) -> None:
        """
        Scan an already parsed lxml tree or element.

        Events are generated with lxml.sax.saxify, bypassing the parent
        reader. Comments of the source tree are not reported.
        """
        self._ensure_idle('start a parse')

        self._parsing = True
        try:
            saxify(tree, self)
        finally:
            self._parsing = False

    def _configure_parent(self, parent: XMLReader) -> None:
        _set_feature(parent, handler.feature_namespaces, self._settings.namespaces)
        if self._settings.validation:
            _set_feature(parent, handler.feature_validation, True)
        if self._settings.expand_entities:
            _set_feature(parent, handler.feature_external_ges, True)

        try:
            parent.setProperty(handler.property_lexical_handler, self)
        except (SAXNotRecognizedException, SAXNotSupportedException):
            logger.warning(
                f"{type(parent).__name__} does not report comments; "
                f"built elements will not contain them"
            )

    def getProperty(self, name: str) -> Any:
        if name == handler.property_lexical_handler:
            return self._lexical_handler
        return super().getProperty(name)

    def setProperty(self, name: str, value: Any) -> None:
        if name == handler.property_lexical_handler:
            self._lexical_handler = value
            return
        super().setProperty(name, value)

    # ------------------------------------------------------------------
    # ContentHandler interface (reserved to the SAX reader)
    # ------------------------------------------------------------------

    def startDocument(self) -> None:
        self._path.reset()
        self._active.clear()
        self._builder.reset()
        self._declared = []
        self._statistics = ScanStatistics()
        logger.debug(f"Scanning document with {len(self._registry)} registration(s)")

        super().startDocument()

    def endDocument(self) -> None:
        logger.debug(
            f"Scan complete: {self._statistics.elements_seen} elements seen, "
            f"{self._statistics.elements_built} built, "
            f"{self._statistics.notifications} notifications"
        )
        super().endDocument()

    def startPrefixMapping(self, prefix: Optional[str], uri: str) -> None:
        self._builder.start_prefix_mapping(prefix, uri)
        super().startPrefixMapping(prefix, uri)

    def endPrefixMapping(self, prefix: Optional[str]) -> None:
        self._builder.end_prefix_mapping(prefix)
        super().endPrefixMapping(prefix)

    def startElement(self, name: str, attrs: Any) -> None:
        # Without namespace processing declarations arrive as plain attributes
        declared = []
        others = []
        for qname, value in attrs.items():
            if qname == 'xmlns' or qname.startswith('xmlns:'):
                prefix = qname[6:] or None
                self._builder.start_prefix_mapping(prefix, value)
                declared.append(prefix)
            else:
                others.append((qname, value))
        self._declared.append(declared)

        attrib = {
            self._builder.resolve_name(qname, attribute=True): value
            for qname, value in others
        }
        self._open(_local_name(name), self._builder.resolve_name(name), attrib)
        super().startElement(name, attrs)

    def endElement(self, name: str) -> None:
        self._close(_local_name(name), self._builder.resolve_name(name))
        for prefix in self._declared.pop():
            self._builder.end_prefix_mapping(prefix)
        super().endElement(name)

    def startElementNS(self, name: Tuple[Optional[str], str], qname: Optional[str], attrs: Any) -> None:
        uri, local_name = name
        attrib = {
            _clark_name(attr_uri, attr_name): value
            for (attr_uri, attr_name), value in attrs.items()
        }
        self._open(local_name, _clark_name(uri, local_name), attrib)
        super().startElementNS(name, qname, attrs)

    def endElementNS(self, name: Tuple[Optional[str], str], qname: Optional[str]) -> None:
        uri, local_name = name
        self._close(local_name, _clark_name(uri, local_name))
        super().endElementNS(name, qname)

    def characters(self, content: str) -> None:
        if self._active.building:
            self._builder.data(content)
        super().characters(content)

    def ignorableWhitespace(self, whitespace: str) -> None:
        if self._active.building:
            self._builder.ignorable_whitespace(whitespace)
        super().ignorableWhitespace(whitespace)

    def processingInstruction(self, target: str, data: Optional[str]) -> None:
        if self._active.building:
            self._builder.pi(target, data)
        super().processingInstruction(target, data)

    def skippedEntity(self, name: str) -> None:
        if self._active.building:
            self._builder.skipped_entity(name)
        super().skippedEntity(name)

    # ------------------------------------------------------------------
    # LexicalHandler interface (reserved to the SAX reader)
    # ------------------------------------------------------------------

    def comment(self, content: str) -> None:
        if self._active.building:
            self._builder.comment(content)
        if self._lexical_handler is not None:
            self._lexical_handler.comment(content)

    def startCDATA(self) -> None:
        if self._lexical_handler is not None:
            self._lexical_handler.startCDATA()

    def endCDATA(self) -> None:
        if self._lexical_handler is not None:
            self._lexical_handler.endCDATA()

    def startDTD(self, name: str, public_id: Optional[str], system_id: Optional[str]) -> None:
        if self._lexical_handler is not None:
            self._lexical_handler.startDTD(name, public_id, system_id)

    def endDTD(self) -> None:
        if self._lexical_handler is not None:
            self._lexical_handler.endDTD()

    # ------------------------------------------------------------------
    # Matching and building
    # ------------------------------------------------------------------

    def _open(self, local_name: str, tag: str, attrib: Mapping[str, str]) -> None:
        self._statistics.elements_seen += 1
        path = self._path.push(local_name)

        rules = self._registry.matching_rules(path, attrib)
        if rules:
            # Matching rules found => make them active to trigger building
            self._active.activate(path, rules)
            self._statistics.max_active_rules = self._active.peak
            logger.debug(f"{len(rules)} rule(s) active for {path}")

        if self._active.building:
            self._builder.start(tag, attrib)
            self._statistics.elements_built += 1
        else:
            self._builder.skip_start()

    def _close(self, local_name: str, tag: str) -> None:
        path = self._path.path
        self._path.pop(local_name)

        # The end tag goes to the builder iff its start tag did
        building = self._active.building
        rules = self._active.release(path)
        if building:
            self._builder.end(tag)

        if rules is not None:
            self._statistics.matches += 1
            self._statistics.notifications += self._dispatcher.dispatch(
                path,
                self._builder.completed_node(),
                rules
            )
