#!/usr/bin/env python3
"""
Tests for the transform registry, the default rules and the tree builder.

Rules are exercised on located spans directly (no pipeline) except where
the recursive capability is part of what is being tested.
"""

import pytest

from html_to_blocks.locator import locate_element
from html_to_blocks.registry import TransformRegistry, TransformRule
from html_to_blocks.transforms import DEFAULT_REGISTRY, build_default_registry
from html_to_blocks.tree_builder import build_list, build_table
from html_to_blocks.attribute_parser import block_attributes
from html_to_blocks.converter import HTMLToBlocksConverter
from html_to_blocks.block_factory import create_block
from html_to_blocks.exceptions import ExtractionError, RegistryFrozenError


def _rule_for(html: str, tag: str) -> TransformRule:
    return DEFAULT_REGISTRY.match(locate_element(html, tag))


# --- Registry ---

def test_pre_with_only_code_is_code():
    assert _rule_for('<pre><code>x = 1</code></pre>', 'pre').block_type == 'core/code'


def test_plain_pre_is_preformatted():
    assert _rule_for('<pre>plain</pre>', 'pre').block_type == 'core/preformatted'
    assert _rule_for('<pre><code>a</code><b>b</b></pre>', 'pre').block_type == 'core/preformatted'
    assert _rule_for('<pre>$ <code>ls</code></pre>', 'pre').block_type == 'core/preformatted'


def test_figure_rule_beats_bare_img_rule():
    figure = _rule_for('<figure><img src="a.jpg"></figure>', 'figure')
    img = _rule_for('<img src="a.jpg">', 'img')

    assert (figure.block_type, figure.priority) == ('core/image', 10)
    assert (img.block_type, img.priority) == ('core/image', 15)


def test_figure_without_img_has_no_rule():
    assert _rule_for('<figure><blockquote>q</blockquote></figure>', 'figure') is None


def test_unknown_element_has_no_rule():
    assert _rule_for('<div>x</div>', 'div') is None


def test_default_registry_is_frozen():
    assert DEFAULT_REGISTRY.frozen
    with pytest.raises(RegistryFrozenError):
        DEFAULT_REGISTRY.register(TransformRule(block_type='core/html', predicate=lambda span: True))


def test_lower_priority_wins_then_registration_order():
    registry = TransformRegistry()
    registry.register(TransformRule(block_type='first', priority=20, predicate=lambda span: True))
    registry.register(TransformRule(block_type='second', priority=20, predicate=lambda span: True))
    registry.register(TransformRule(block_type='third', priority=5, predicate=lambda span: span.tag == 'p'))

    assert [rule.block_type for rule in registry.rules] == ['third', 'first', 'second']
    assert registry.match(locate_element('<p>x</p>', 'p')).block_type == 'third'
    assert registry.match(locate_element('<div>x</div>', 'div')).block_type == 'first'


def test_losing_rule_builder_is_never_invoked():
    calls = []

    def build(name):
        def builder(span, inner):
            calls.append(name)
            return create_block('core/paragraph', {'content': name})
        return builder

    registry = TransformRegistry()
    registry.register(TransformRule(block_type='core/paragraph', priority=20,
                                    predicate=lambda span: span.tag == 'p', builder=build('loser')))
    registry.register(TransformRule(block_type='core/paragraph', priority=1,
                                    predicate=lambda span: span.tag == 'p', builder=build('winner')))
    registry.freeze()

    blocks = HTMLToBlocksConverter(registry=registry).raw_handler('<p>x</p>')

    assert calls == ['winner']
    assert blocks[0].inner_html == '<p>winner</p>'


def test_schema_driven_rule_keeps_markup():
    rule = TransformRule(
        block_type='core/preformatted',
        priority=5,
        predicate=lambda span: span.tag == 'div' and 'code-sample' in span.classes,
    )
    registry = build_default_registry([rule])
    html = '<div class="code-sample"><pre>x</pre></div>'

    blocks = HTMLToBlocksConverter(registry=registry).raw_handler(html)

    assert len(blocks) == 1
    assert blocks[0].name == 'core/preformatted'
    assert blocks[0].inner_html == html
    assert blocks[0].attributes == {}
    assert block_attributes(blocks[0])['content'] == 'x'


# --- Tree builder: lists ---

def test_nested_list():
    span = locate_element('<ul><li>one<ul><li>nested</li></ul></li><li>two</li></ul>', 'ul')
    node = build_list(span, remaining_depth=32)

    assert node.name == 'core/list'
    assert len(node.children) == 2

    first, second = node.children
    assert block_attributes(first)['content'] == 'one'
    assert len(first.children) == 1
    assert first.children[0].name == 'core/list'
    assert len(first.children[0].children) == 1
    assert block_attributes(first.children[0].children[0])['content'] == 'nested'
    assert block_attributes(second)['content'] == 'two'
    assert second.children == []


def test_list_item_keeps_text_after_nested_list():
    span = locate_element('<ol><li>before<ul><li>x</li></ul>after</li></ol>', 'ol')
    item = build_list(span, remaining_depth=32).children[0]

    assert block_attributes(item)['content'] == 'beforeafter'
    assert item.inner_content == ['<li>beforeafter', None, '</li>']


def test_list_attributes():
    span = locate_element('<ol id="steps" start="3" reversed type="i"><li>a</li></ol>', 'ol')
    node = build_list(span, remaining_depth=32)

    assert node.attributes == {'ordered': True, 'start': 3, 'reversed': True, 'type': 'lower-roman'}
    assert block_attributes(node)['anchor'] == 'steps'
    assert node.inner_content[0] == '<ol class="wp-block-list" id="steps" start="3" reversed type="i">'


def test_list_nesting_past_budget_raises():
    span = locate_element('<ul><li>a<ul><li>b</li></ul></li></ul>', 'ul')
    build_list(span, remaining_depth=1)
    with pytest.raises(ExtractionError):
        build_list(span, remaining_depth=0)


# --- Tree builder: tables ---

def test_table_rows_default_to_body():
    node = build_table(locate_element('<table><tr><td>1</td></tr></table>', 'table'))
    attributes = block_attributes(node)

    assert attributes['head'] == []
    assert attributes['foot'] == []
    assert attributes['body'] == [{'cells': [{'content': '1', 'tag': 'td'}]}]


def test_table_sections_caption_and_spans():
    html = ('<table><caption>Stats</caption>'
            '<thead><tr><th>A</th><th>B</th></tr></thead>'
            '<tbody><tr><td colspan="2">1</td></tr></tbody>'
            '<tfoot><tr><td>f</td><td rowspan="x">g</td></tr></tfoot></table>')
    attributes = block_attributes(build_table(locate_element(html, 'table')))

    assert attributes['caption'] == 'Stats'
    assert attributes['head'] == [{'cells': [{'content': 'A', 'tag': 'th'}, {'content': 'B', 'tag': 'th'}]}]
    assert attributes['body'] == [{'cells': [{'content': '1', 'tag': 'td', 'colspan': 2}]}]
    # A non-numeric rowspan is left out
    assert attributes['foot'] == [{'cells': [{'content': 'f', 'tag': 'td'}, {'content': 'g', 'tag': 'td'}]}]


def test_table_drops_rows_without_cells():
    node = build_table(locate_element('<table><tr></tr><tr><td>x</td></tr></table>', 'table'))
    assert len(block_attributes(node)['body']) == 1


def test_nested_table_stays_in_cell():
    html = '<table><tr><td><table><tr><td>in</td></tr></table></td></tr></table>'
    node = build_table(locate_element(html, 'table'))
    attributes = block_attributes(node)

    assert '<table><tr><td>in</td></tr></table>' in node.inner_html
    # Rows of the inner table stay inside the outer cell's content
    assert attributes['body'] == [{'cells': [{
        'content': '<table><tbody><tr><td>in</td></tr></tbody></table>',
        'tag': 'td',
    }]}]
    assert attributes['head'] == []


def test_table_text_outside_cells_raises():
    with pytest.raises(ExtractionError):
        build_table(locate_element('<table>stray<tr><td>1</td></tr></table>', 'table'))
