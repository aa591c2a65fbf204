#!/usr/bin/env python3
"""
Tests for block markup: factory, serializer, parser and attribute extraction.

The round-trip tests check that serialize → parse gives back the same
nodes and that block_attributes() recovers what the factory stripped.
"""

import pytest

from html_to_blocks import html_to_blocks
from html_to_blocks.schemas import BlockNode
from html_to_blocks.block_factory import create_block, add_class_name
from html_to_blocks.serializer import serialize_block, serialize_blocks, serialize_attributes
from html_to_blocks.block_parser import parse_blocks
from html_to_blocks.attribute_parser import get_block_attributes, block_attributes
from html_to_blocks.exceptions import BlockTypeError


# --- Block factory ---

def test_create_block_renders_and_sanitizes():
    block = create_block('core/heading', {'level': '3', 'content': 'T', 'bogus': 1, 'anchor': ''})

    assert block.attributes == {'level': 3}
    assert block.inner_html == '<h3 class="wp-block-heading">T</h3>'


def test_create_block_with_inner_blocks():
    item = create_block('core/list-item', {'content': 'a'})
    block = create_block('core/list', {'ordered': True}, [item])

    assert block.inner_content == ['<ol class="wp-block-list">', None, '</ol>']
    assert block.children == [item]


def test_unknown_block_type_is_an_error():
    with pytest.raises(BlockTypeError):
        create_block('no/such-block')


def test_add_class_name_merges_once():
    block = create_block('core/paragraph', {'content': 'x'})
    block = add_class_name(block, ['a', 'b'])
    block = add_class_name(block, ['b', 'c'])

    assert block.attributes == {'className': 'a b c'}
    assert block.inner_html == '<p class="a b c">x</p>'


# --- Serializer ---

def test_serialize_with_attributes():
    block = create_block('core/heading', {'level': 3, 'content': 'Title'})
    assert serialize_block(block) == (
        '<!-- wp:heading {"level":3} --><h3 class="wp-block-heading">Title</h3><!-- /wp:heading -->'
    )


def test_serialize_void_and_namespaced_blocks():
    assert serialize_block(BlockNode(name='core/spacer', attributes={'height': '10px'})) == \
        '<!-- wp:spacer {"height":"10px"} /-->'
    assert serialize_block(BlockNode(name='my-plugin/card')) == '<!-- wp:my-plugin/card /-->'


def test_serialize_attributes_escapes_comment_breakers():
    lt, gt, amp, dash, quote = ('\\' + 'u' + code for code in ('003c', '003e', '0026', '002d', '0022'))

    assert serialize_attributes({'a': '<b> & --'}) == f'{{"a":"{lt}b{gt} {amp} {dash}{dash}"}}'
    assert serialize_attributes({'a': 'say "hi"'}) == f'{{"a":"say {quote}hi{quote}"}}'


def test_freeform_serializes_verbatim():
    assert serialize_blocks([BlockNode(name=None, inner_content=['<p>x</p>'])]) == '<p>x</p>'


# --- Parser ---

def test_parse_plain_html_is_one_freeform_node():
    [node] = parse_blocks('<p>x</p>')
    assert node.name is None
    assert node.inner_html == '<p>x</p>'


def test_parse_void_block_between_freeform():
    nodes = parse_blocks('before<!-- wp:separator /-->after')

    assert [node.name for node in nodes] == [None, 'core/separator', None]
    assert nodes[0].inner_html == 'before'
    assert nodes[2].inner_html == 'after'


def test_parse_nested_blocks():
    markup = ('<!-- wp:quote --><blockquote class="wp-block-quote">'
              '<!-- wp:paragraph --><p>a</p><!-- /wp:paragraph -->'
              '</blockquote><!-- /wp:quote -->')
    [quote] = parse_blocks(markup)

    assert quote.name == 'core/quote'
    assert quote.inner_content == ['<blockquote class="wp-block-quote">', None, '</blockquote>']
    assert quote.children[0].name == 'core/paragraph'
    assert quote.children[0].inner_html == '<p>a</p>'


def test_parse_keeps_whitespace_between_blocks():
    markup = ('<!-- wp:paragraph -->\n<p>a</p>\n<!-- /wp:paragraph -->\n\n'
              '<!-- wp:paragraph {"align":"center"} --><p>b</p><!-- /wp:paragraph -->')
    nodes = parse_blocks(markup)

    assert [node.name for node in nodes] == ['core/paragraph', None, 'core/paragraph']
    assert nodes[2].attributes == {'align': 'center'}
    assert serialize_blocks(nodes) == markup


def test_parse_closes_unclosed_block_at_end():
    [node] = parse_blocks('<!-- wp:paragraph --><p>a</p>')
    assert node.name == 'core/paragraph'
    assert node.inner_html == '<p>a</p>'


def test_parse_invalid_json_gives_empty_attributes():
    [node] = parse_blocks('<!-- wp:paragraph {oops} --><p>a</p><!-- /wp:paragraph -->')
    assert node.attributes == {}


# --- Round trip ---

ROUND_TRIP_HTML = (
    '<h2 id="a">Head &amp; more</h2>'
    '<p style="text-align:center" class="lead">Para -- with <a href="/x?a=1&amp;b=2">link</a></p>'
    '<ol start="2"><li>one<ul><li>deep</li></ul></li><li>two</li></ol>'
    '<blockquote><p>q</p></blockquote>'
    '<figure class="alignright"><img src="/i.png" alt="&quot;quoted&quot;"></figure>'
    '<table><thead><tr><th>h</th></tr></thead><tr><td colspan="2">c</td></tr></table>'
    '<hr class="is-style-wide">'
    '<section>kept</section>'
)


def _fields(node: BlockNode) -> dict:
    return {
        'name': node.name,
        'attributes': node.attributes,
        'inner_content': node.inner_content,
        'children': [_fields(child) for child in node.children],
    }


def test_serialize_parse_round_trip():
    nodes = html_to_blocks(ROUND_TRIP_HTML)
    parsed = parse_blocks(serialize_blocks(nodes))

    assert [_fields(node) for node in parsed] == [_fields(node) for node in nodes]


def test_block_attributes_recovers_sourced_values():
    nodes = html_to_blocks(ROUND_TRIP_HTML)
    parsed = parse_blocks(serialize_blocks(nodes))

    heading = block_attributes(parsed[0])
    assert heading['content'] == 'Head &amp; more'
    assert heading['anchor'] == 'a'

    image = block_attributes(parsed[4])
    assert image['url'] == '/i.png'
    assert image['alt'] == '"quoted"'
    assert image['align'] == 'right'

    table = block_attributes(parsed[5])
    assert table['head'] == [{'cells': [{'content': 'h', 'tag': 'th'}]}]
    assert table['body'] == [{'cells': [{'content': 'c', 'tag': 'td', 'colspan': 2}]}]


# --- Attribute extraction ---

def test_get_block_attributes_uses_defaults_and_selectors():
    attributes = get_block_attributes('core/paragraph', '<p id="a" class="c">Hi <em>there</em></p>')

    assert attributes['content'] == 'Hi <em>there</em>'
    assert attributes['anchor'] == 'a'
    assert attributes['dropCap'] is False
    assert 'className' not in attributes


def test_missing_selector_leaves_attribute_out():
    attributes = get_block_attributes('core/image', '<figure></figure>')
    assert 'url' not in attributes
    assert 'caption' not in attributes


def test_overrides_win():
    attributes = get_block_attributes('core/heading', '<h4>x</h4>', {'level': 4})
    assert attributes['level'] == 4
    assert attributes['content'] == 'x'


def test_unknown_block_type_returns_overrides():
    assert get_block_attributes('my/unknown', '<p>x</p>', {'a': 1}) == {'a': 1}
