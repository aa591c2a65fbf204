"""
Default transform rules: shape predicates and block builders.

Predicates are pure functions of an ElementSpan. Builders take the span and
an InnerConverter and return exactly one block; they never touch the
registry or any other shared state.

Priorities (lower wins):
  10  heading, list, figure with img, quote, pre > code, separator, table
  11  any other pre
  15  bare img
  20  paragraph
"""

import html
import re
from typing import Optional

from .schemas import BlockNode, ElementSpan, OPEN, TEXT
from .registry import TransformRegistry, TransformRule, InnerConverter
from .locator import child_tags, child_elements, find_descendants, has_text
from .tree_builder import build_list, build_table
from .block_factory import create_block
from .markup import escape_text

HEADING_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6')

_TEXT_ALIGN = re.compile(r'text-align:\s*(left|center|right)', re.IGNORECASE)
_ALIGN_CLASS = re.compile(r'(?:^|\s)align(left|center|right)(?:$|\s)')
_IMAGE_ID_CLASS = re.compile(r'(?:^|\s)wp-image-(\d+)(?:$|\s)')


# --- Shared helpers ---

def _anchor(span: ElementSpan, attributes: dict) -> None:
    if span.get_attribute('id'):
        attributes['anchor'] = span.get_attribute('id')


def _text_align(span: ElementSpan) -> Optional[str]:
    match = _TEXT_ALIGN.search(span.get_attribute('style') or '')
    return match.group(1).lower() if match else None


def _contains(span: ElementSpan, tag: str) -> bool:
    return any(token.kind == OPEN and token.tag == tag for token in span.tokens[1:])


def _image_attributes(img: ElementSpan, class_name: str) -> dict:
    attributes = {'url': img.get_attribute('src') or ''}
    if img.has_attribute('alt'):
        attributes['alt'] = img.get_attribute('alt')
    if img.has_attribute('title'):
        attributes['title'] = img.get_attribute('title')

    align = _ALIGN_CLASS.search(class_name)
    if align:
        attributes['align'] = align.group(1)
    image_id = _IMAGE_ID_CLASS.search(class_name)
    if image_id:
        attributes['id'] = int(image_id.group(1))

    return attributes


# --- Predicates ---

def is_heading(span: ElementSpan) -> bool:
    return span.tag in HEADING_TAGS


def is_list(span: ElementSpan) -> bool:
    return span.tag in ('ol', 'ul')


def is_figure_image(span: ElementSpan) -> bool:
    return span.tag == 'figure' and _contains(span, 'img')


def is_quote(span: ElementSpan) -> bool:
    return span.tag == 'blockquote'


def is_code(span: ElementSpan) -> bool:
    """A <pre> holding one <code> element and no text of its own."""
    return span.tag == 'pre' and child_tags(span) == ['code'] and not has_text(span)


def is_preformatted(span: ElementSpan) -> bool:
    return span.tag == 'pre'


def is_separator(span: ElementSpan) -> bool:
    return span.tag == 'hr'


def is_table(span: ElementSpan) -> bool:
    return span.tag == 'table'


def is_image(span: ElementSpan) -> bool:
    return span.tag == 'img'


def is_paragraph(span: ElementSpan) -> bool:
    return span.tag == 'p'


# --- Builders ---

def build_heading(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    attributes = {'level': int(span.tag[1]), 'content': span.inner_html.strip()}
    _anchor(span, attributes)
    align = _text_align(span)
    if align:
        attributes['textAlign'] = align
    return create_block('core/heading', attributes)


def build_list_block(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    return build_list(span, inner.remaining_depth)


def build_figure_image(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    img = find_descendants(span, 'img')[0]
    class_name = ' '.join(span.classes + img.classes)
    attributes = _image_attributes(img, class_name)

    captions = find_descendants(span, 'figcaption')
    if captions:
        attributes['caption'] = captions[0].inner_html.strip()

    _anchor(span, attributes)

    links = find_descendants(span, 'a')
    if links and links[0].has_attribute('href'):
        link = links[0]
        attributes['href'] = link.get_attribute('href')
        attributes['linkDestination'] = 'custom'
        if link.has_attribute('rel'):
            attributes['rel'] = link.get_attribute('rel')
        if link.has_attribute('class'):
            attributes['linkClass'] = link.get_attribute('class')

    return create_block('core/image', attributes)


def build_image(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    return create_block('core/image', _image_attributes(span, ' '.join(span.classes)))


def build_quote(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    """Quote content goes back through the whole pipeline."""
    attributes = {}
    _anchor(span, attributes)
    return create_block('core/quote', attributes, inner.convert(span.inner_html))


def build_code(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    # Tags inside <code> (highlighting spans) are dropped; the text is kept
    code = child_elements(span, 'code')[0]
    text = ''.join(code.source[t.start:t.end] for t in code.tokens if t.kind == TEXT)
    return create_block('core/code', {'content': escape_text(html.unescape(text))})


def build_preformatted(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    attributes = {'content': span.inner_html.strip()}
    _anchor(span, attributes)
    return create_block('core/preformatted', attributes)


def build_separator(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    attributes = {}
    class_name = span.get_attribute('class') or ''
    if 'is-style-wide' in class_name:
        attributes['className'] = 'is-style-wide'
    elif 'is-style-dots' in class_name:
        attributes['className'] = 'is-style-dots'
    return create_block('core/separator', attributes)


def build_table_block(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    return build_table(span)


def build_paragraph(span: ElementSpan, inner: InnerConverter) -> BlockNode:
    attributes = {'content': span.inner_html.strip()}
    _anchor(span, attributes)
    align = _text_align(span)
    if align:
        attributes['style'] = {'typography': {'textAlign': align}}
    return create_block('core/paragraph', attributes)


DEFAULT_RULES = [
    TransformRule(block_type='core/heading', priority=10, predicate=is_heading, builder=build_heading),
    TransformRule(block_type='core/list', priority=10, predicate=is_list, builder=build_list_block),
    TransformRule(block_type='core/image', priority=10, predicate=is_figure_image, builder=build_figure_image),
    TransformRule(block_type='core/quote', priority=10, predicate=is_quote, builder=build_quote),
    TransformRule(block_type='core/code', priority=10, predicate=is_code, builder=build_code),
    TransformRule(block_type='core/preformatted', priority=11, predicate=is_preformatted, builder=build_preformatted),
    TransformRule(block_type='core/separator', priority=10, predicate=is_separator, builder=build_separator),
    TransformRule(block_type='core/table', priority=10, predicate=is_table, builder=build_table_block),
    TransformRule(block_type='core/image', priority=15, predicate=is_image, builder=build_image),
    TransformRule(block_type='core/paragraph', priority=20, predicate=is_paragraph, builder=build_paragraph),
]


def build_default_registry(extra_rules: Optional[list[TransformRule]] = None, freeze: bool = True) -> TransformRegistry:
    """
    Build a registry with the default rules (plus ``extra_rules``).

    Args:
        extra_rules: Rules registered after the defaults
        freeze: Freeze the registry before returning it

    Returns:
        The populated registry
    """
    registry = TransformRegistry()
    for rule in DEFAULT_RULES + list(extra_rules or []):
        registry.register(rule)
    if freeze:
        registry.freeze()
    return registry


# Process-wide registry, built once at import
DEFAULT_REGISTRY = build_default_registry()
