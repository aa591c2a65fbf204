#!/usr/bin/env python3
"""
Tests for the Normalizer (paragraph wrapping of top-level inline content).
"""

from html_to_blocks.normalizer import normalize_blocks


def test_inline_run_then_explicit_paragraph():
    """Double <br> ends the synthesized paragraph and both breaks go away."""
    html = 'Hello <strong>world</strong><br><br><p>Already block</p>'
    assert normalize_blocks(html) == '<p>Hello <strong>world</strong></p><p>Already block</p>'


def test_single_break_stays_inside_paragraph():
    assert normalize_blocks('a<br>b') == '<p>a<br>b</p>'


def test_break_outside_paragraph_is_dropped():
    assert normalize_blocks('<br><p>x</p>') == '<p>x</p>'


def test_double_break_splits_paragraphs():
    assert normalize_blocks('one<br><br>two') == '<p>one</p><p>two</p>'


def test_whitespace_between_blocks_is_dropped():
    assert normalize_blocks('<h2>T</h2>\n\n<p>x</p>\n') == '<h2>T</h2><p>x</p>'


def test_comments_are_dropped():
    assert normalize_blocks('<!-- note --><p>x</p>') == '<p>x</p>'


def test_block_elements_pass_through_unchanged():
    html = '<div class="a"  data-x=\'1\'>\n  <span>in</span>\n</div>'
    assert normalize_blocks(html) == html


def test_text_after_block_opens_new_paragraph():
    assert normalize_blocks('<p>x</p> tail <em>end</em> ') == '<p>x</p><p>tail <em>end</em></p>'


def test_whitespace_only_input():
    assert normalize_blocks('  \n ') == ''
    assert normalize_blocks('') == ''


def test_tag_cut_off_at_end_is_copied_unchanged():
    assert normalize_blocks('<p>x</p><div class="x') == '<p>x</p><div class="x'
    assert normalize_blocks('text <b') == '<p>text</p><b'
