#!/usr/bin/env python3
"""
Tests for the tokenizer and the Locator/Extractor.

Covers offsets and depth of the token stream, exact balanced extraction
when several elements share a tag name, and the "exact or absent" contract
for unterminated and crossed elements.
"""

import pytest

from html_to_blocks.tokenizer import tokenize
from html_to_blocks.locator import (
    locate_element,
    child_elements,
    child_tags,
    has_text,
    iter_top_level,
    _verify_balanced,
    TOP_TEXT,
    TOP_ELEMENT,
    TOP_IGNORED,
    TOP_UNBALANCED,
)
from html_to_blocks.schemas import ElementSpan, Token, OPEN, CLOSE, TEXT, COMMENT
from html_to_blocks.exceptions import BalancedMatchError, ExtractionError


# --- Tokenizer ---

def test_quoted_gt_inside_attribute():
    """A '>' inside a quoted attribute value does not end the tag."""
    source = '<p class="a>b">x</p>'
    tokens = tokenize(source)

    assert [t.kind for t in tokens] == [OPEN, TEXT, CLOSE]
    assert source[tokens[0].start:tokens[0].end] == '<p class="a>b">'
    assert dict(tokens[0].attrs) == {'class': 'a>b'}
    assert source[tokens[1].start:tokens[1].end] == 'x'


def test_markup_inside_comment_is_not_tokenized():
    source = '<!-- <p>x</p> --><p>y</p>'
    tokens = tokenize(source)

    assert [t.kind for t in tokens] == [COMMENT, OPEN, TEXT, CLOSE]
    assert source[tokens[0].start:tokens[0].end] == '<!-- <p>x</p> -->'


def test_depth_and_void_elements():
    tokens = tokenize('<div><p>a<br>b</p></div>')

    assert [(t.kind, t.tag, t.depth) for t in tokens] == [
        (OPEN, 'div', 0),
        (OPEN, 'p', 1),
        (TEXT, '', 2),
        (OPEN, 'br', 2),
        (TEXT, '', 2),
        (CLOSE, 'p', 1),
        (CLOSE, 'div', 0),
    ]


def test_tag_names_are_lower_cased():
    tokens = tokenize('<P>x</P>')
    assert [t.tag for t in tokens] == ['p', '', 'p']


def test_empty_input():
    assert tokenize('') == []
    assert tokenize(None) == []


# --- Locator ---

def test_duplicate_tag_occurrences():
    source = '<p>A</p><div>X</div><p>B</p>'

    assert locate_element(source, 'p', 0).outer_html == '<p>A</p>'
    assert locate_element(source, 'p', 1).outer_html == '<p>B</p>'
    assert locate_element(source, 'p', 2) is None


def test_nested_same_tag():
    source = '<div><div>in</div>out</div>'

    outer = locate_element(source, 'div', 0)
    inner = locate_element(source, 'div', 1)

    assert outer.outer_html == source
    assert outer.inner_html == '<div>in</div>out'
    assert inner.outer_html == '<div>in</div>'
    assert inner.depth == 1


def test_gt_in_attribute_does_not_mislead_extraction():
    span = locate_element('<a title="1 > 0">go</a>', 'a')
    assert span.inner_html == 'go'
    assert span.get_attribute('title') == '1 > 0'


def test_void_and_self_closing_spans():
    img = locate_element('<p><img src="a.png"></p>', 'img')
    assert img.outer_html == '<img src="a.png">'
    assert img.inner_html == ''

    widget = locate_element('<x-widget data-id="1"/><p>x</p>', 'x-widget')
    assert widget.outer_html == '<x-widget data-id="1"/>'


def test_unterminated_element_is_absent():
    assert locate_element('<div><p>x</p>', 'div') is None


def test_crossed_nesting_is_absent():
    source = '<b><i>x</b></i>'
    assert locate_element(source, 'i') is None
    assert locate_element(source, 'b').outer_html == '<b><i>x</b>'


def test_case_insensitive_tag_lookup():
    assert locate_element('<DIV>x</DIV>', 'div').outer_html == '<DIV>x</DIV>'


def test_inconsistent_span_is_fatal():
    source = '<p>x'
    span = ElementSpan(
        tag='p',
        source=source,
        outer_start=0,
        outer_end=4,
        inner_start=3,
        inner_end=4,
        tokens=(Token(OPEN, 'p', 0, 0, 3), Token(TEXT, '', 1, 3, 4)),
    )
    with pytest.raises(BalancedMatchError):
        _verify_balanced(span)


# --- Shape helpers ---

def test_child_tags_and_text():
    span = locate_element('<pre> <code>x</code> </pre>', 'pre')
    assert child_tags(span) == ['code']
    assert not has_text(span)

    span = locate_element('<div>hi<span>x</span></div>', 'div')
    assert has_text(span)


def test_child_elements_filters_by_tag():
    span = locate_element('<ul><li>a</li><li>b</li></ul>', 'ul')
    items = child_elements(span, 'li')
    assert [item.inner_html for item in items] == ['a', 'b']


def test_unclosed_child_raises():
    span = locate_element('<ul><li>a<li>b</ul>', 'ul')
    with pytest.raises(ExtractionError):
        child_elements(span, 'li')


# --- Top-level walk ---

def test_top_level_walk():
    source = 'text<p>a</p><!-- c --><div>'
    items = list(iter_top_level(source))

    assert [item.kind for item in items] == [TOP_TEXT, TOP_ELEMENT, TOP_IGNORED, TOP_UNBALANCED]
    assert items[1].markup(source) == '<p>a</p>'
    assert items[3].markup(source) == '<div>'


def test_top_level_occurrence_counts_nested_openers():
    source = '<div><p>a</p></div><p>b</p>'
    items = [item for item in iter_top_level(source) if item.kind == TOP_ELEMENT]

    assert [(item.tag, item.occurrence) for item in items] == [('div', 0), ('p', 1)]
    assert locate_element(source, 'p', items[1].occurrence).outer_html == '<p>b</p>'


def test_unbalanced_item_keeps_markup_up_to_next_top_level_token():
    source = '<section><p>x</p>'
    items = list(iter_top_level(source))

    assert len(items) == 1
    assert items[0].kind == TOP_UNBALANCED
    assert items[0].markup(source) == source
