"""
Unit tests for the selective tree builder adapter.
"""

import pytest
from lxml import etree

from element_scanner.builder import ElementBuilder
from element_scanner.config import ScannerSettings


@pytest.fixture
def builder(settings):
    return ElementBuilder(settings)


class TestElementBuilding:
    """Test element construction from SAX-shaped events."""

    def test_builds_element_with_attributes_and_text(self, builder):
        builder.start('x', {'id': '1'})
        builder.data('hel')
        builder.data('lo')
        element = builder.end('x')

        assert element.tag == 'x'
        assert element.get('id') == '1'
        assert element.text == 'hello'
        assert builder.completed_node() is element

    def test_nested_elements_and_tail(self, builder):
        builder.start('x', {})
        builder.start('y', {})
        inner = builder.end('y')
        builder.data('tail')
        outer = builder.end('x')

        assert inner.getparent() is outer
        assert inner.tail == 'tail'
        assert builder.completed_node() is outer
        assert builder.depth == 0

    def test_completed_node_is_the_inner_element_before_outer_close(self, builder):
        builder.start('x', {})
        builder.start('y', {})
        builder.end('y')

        assert builder.completed_node().tag == 'y'
        assert builder.depth == 1

    def test_top_level_elements_are_independent_roots(self, builder):
        """No document wrapper: every top-level element stands alone."""
        builder.start('a', {})
        first = builder.end('a')
        builder.start('b', {})
        second = builder.end('b')

        assert first.getparent() is None
        assert second.getparent() is None
        assert first.getroottree().getroot() is first
        assert second.getroottree().getroot() is second

    def test_processing_instruction_and_comment(self, builder):
        builder.start('x', {})
        builder.pi('target', 'data')
        builder.comment(' note ')
        element = builder.end('x')

        assert element[0].tag is etree.PI
        assert element[0].target == 'target'
        assert element[0].text == 'data'
        assert element[1].tag is etree.Comment
        assert element[1].text == ' note '

    def test_skipped_entity_is_kept_as_reference_text(self, builder):
        builder.start('x', {})
        builder.data('a ')
        builder.skipped_entity('ent')
        element = builder.end('x')

        assert element.text == 'a &ent;'

    def test_reset_discards_completed_node(self, builder):
        builder.start('x', {})
        builder.end('x')

        builder.reset()

        assert builder.completed_node() is None
        assert builder.depth == 0


class TestBuildingPolicy:
    """Test settings passed through to the builder."""

    def test_remove_blank_text(self):
        builder = ElementBuilder(ScannerSettings(_env_file=None, remove_blank_text=True))

        builder.start('x', {})
        builder.data('\n  ')
        builder.start('y', {})
        builder.data('v')
        builder.end('y')
        builder.data('\n')
        element = builder.end('x')

        assert element.text is None
        assert element[0].text == 'v'
        assert element[0].tail is None

    def test_blank_text_kept_by_default(self, builder):
        builder.start('x', {})
        builder.data('\n  ')
        element = builder.end('x')

        assert element.text == '\n  '

    def test_ignorable_whitespace_policy(self):
        keeping = ElementBuilder(ScannerSettings(_env_file=None))
        dropping = ElementBuilder(ScannerSettings(_env_file=None, ignore_whitespace=True))

        for builder in (keeping, dropping):
            builder.start('x', {})
            builder.ignorable_whitespace('  ')

        assert keeping.end('x').text == '  '
        assert dropping.end('x').text is None

    def test_comments_and_pis_can_be_dropped(self):
        builder = ElementBuilder(ScannerSettings(
            _env_file=None,
            insert_comments=False,
            insert_pis=False
        ))

        builder.start('x', {})
        builder.comment('c')
        builder.pi('t', 'd')
        element = builder.end('x')

        assert len(element) == 0

    def test_custom_element_factory(self, settings):
        class CustomElement(etree.ElementBase):
            pass

        parser = etree.XMLParser()
        parser.set_element_class_lookup(etree.ElementDefaultClassLookup(element=CustomElement))
        builder = ElementBuilder(settings, element_factory=parser.makeelement)

        builder.start('x', {})
        builder.start('y', {})
        builder.end('y')
        element = builder.end('x')

        assert isinstance(element, CustomElement)
        assert isinstance(element[0], CustomElement)


class TestNamespaceScopes:
    """Test prefix mappings declared inside and outside built subtrees."""

    def test_first_built_element_inherits_prefixes_in_scope(self, builder):
        # <r xmlns:p="urn:p"> is not built
        builder.start_prefix_mapping('p', 'urn:p')
        builder.skip_start()

        element_start = builder.start('{urn:p}x', {})
        builder.end('{urn:p}x')

        assert element_start.nsmap == {'p': 'urn:p'}
        assert element_start.prefix == 'p'

    def test_nested_element_receives_its_own_declarations(self, builder):
        builder.start('x', {})
        builder.start_prefix_mapping('q', 'urn:q')
        inner = builder.start('{urn:q}y', {})
        builder.end('{urn:q}y')
        builder.end_prefix_mapping('q')
        builder.end('x')

        assert inner.prefix == 'q'

    def test_ended_scope_is_not_inherited(self, builder):
        builder.start_prefix_mapping('p', 'urn:p')
        builder.skip_start()
        builder.end_prefix_mapping('p')

        element = builder.start('x', {})
        builder.end('x')

        assert element.nsmap == {}

    def test_default_namespace_undeclaration_is_ignored(self, builder):
        builder.start_prefix_mapping(None, 'urn:d')
        builder.skip_start()
        builder.start_prefix_mapping(None, '')
        element = builder.start('x', {})
        builder.end('x')

        assert element.nsmap == {}

    def test_element_factory_receives_nsmap(self, settings):
        calls = []

        def factory(tag, attrib, nsmap=None):
            calls.append((tag, nsmap))
            return etree.Element(tag, attrib, nsmap=nsmap)

        builder = ElementBuilder(settings, element_factory=factory)
        builder.start_prefix_mapping('p', 'urn:p')
        builder.skip_start()

        builder.start('{urn:p}x', {})
        element = builder.end('{urn:p}x')

        assert calls == [('{urn:p}x', {'p': 'urn:p'})]
        assert element.prefix == 'p'


class TestResolveName:
    """Test prefix resolution for readers without namespace processing."""

    def test_declared_prefix(self, builder):
        builder.start_prefix_mapping('p', 'urn:p')

        assert builder.resolve_name('p:x') == '{urn:p}x'
        assert builder.resolve_name('p:a', attribute=True) == '{urn:p}a'

    def test_default_namespace_applies_to_elements_only(self, builder):
        builder.start_prefix_mapping(None, 'urn:d')

        assert builder.resolve_name('x') == '{urn:d}x'
        assert builder.resolve_name('a', attribute=True) == 'a'

    def test_undeclared_prefix_falls_back_to_local_name(self, builder):
        assert builder.resolve_name('q:x') == 'x'

    def test_innermost_declaration_wins_until_it_ends(self, builder):
        builder.start_prefix_mapping('p', 'urn:outer')
        builder.start_prefix_mapping('p', 'urn:inner')

        assert builder.resolve_name('p:x') == '{urn:inner}x'

        builder.end_prefix_mapping('p')

        assert builder.resolve_name('p:x') == '{urn:outer}x'

    def test_xml_prefix_is_predeclared(self, builder):
        assert builder.resolve_name('xml:lang', attribute=True) == (
            '{http://www.w3.org/XML/1998/namespace}lang'
        )
