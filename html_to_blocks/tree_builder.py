"""
Recursive Tree Builder for lists and tables.

Both builders work on an element's own tokens: lists descend through
direct <li> children and nested <ol>/<ul>, tables make one forward pass
tracking the current section and row. Any piece that cannot be balanced
raises ExtractionError so the whole element falls back to core/html
instead of losing content.
"""

from typing import Optional

from .schemas import BlockNode, ElementSpan, OPEN, CLOSE, TEXT
from .locator import child_elements, span_at
from .block_factory import create_block, coerce_value
from .serializer import LIST_TYPES
from .exceptions import ExtractionError
from .logger import get_module_logger

logger = get_module_logger("tree_builder")

LIST_TAGS = ('ol', 'ul')
TABLE_SECTIONS = {'thead': 'head', 'tbody': 'body', 'tfoot': 'foot'}


# --- Lists ---

def list_attributes(span: ElementSpan) -> dict:
    """Block attributes carried by an <ol>/<ul> element."""
    attributes = {'ordered': span.tag == 'ol'}

    if span.get_attribute('id'):
        attributes['anchor'] = span.get_attribute('id')
    if span.has_attribute('start'):
        start = coerce_value('integer', span.get_attribute('start'))
        if start is not None:
            attributes['start'] = start
    if span.has_attribute('reversed'):
        attributes['reversed'] = True
    if span.get_attribute('type') in LIST_TYPES:
        attributes['type'] = LIST_TYPES[span.get_attribute('type')]

    return attributes


def build_list(span: ElementSpan, remaining_depth: int) -> BlockNode:
    """
    Build a core/list block, nested lists included.

    Args:
        span: The <ol> or <ul> element
        remaining_depth: How many more nested list levels may be descended

    Raises:
        ExtractionError: if an item cannot be balanced or nesting runs
                         past ``remaining_depth``
    """
    if remaining_depth < 0:
        raise ExtractionError(f"<{span.tag}> is nested too deeply", tag=span.tag,
                              details={"offset": span.outer_start})

    items = [build_list_item(item, remaining_depth) for item in child_elements(span, 'li')]
    return create_block('core/list', list_attributes(span), items)


def build_list_item(span: ElementSpan, remaining_depth: int) -> BlockNode:
    """
    Build a core/list-item.

    The item's content is its inner markup with every nested list cut out;
    each nested list becomes a child block, in document order.
    """
    nested = [child for child in child_elements(span) if child.tag in LIST_TAGS]

    content = ''
    cursor = span.inner_start
    for child in nested:
        content += span.source[cursor:child.outer_start]
        cursor = child.outer_end
    content += span.source[cursor:span.inner_end]

    inner_blocks = [build_list(child, remaining_depth - 1) for child in nested]

    attributes = {'content': content.strip()}
    if span.get_attribute('class'):
        attributes['className'] = ' '.join(span.classes)

    return create_block('core/list-item', attributes, inner_blocks)


# --- Tables ---

def build_table(span: ElementSpan) -> BlockNode:
    """
    Build a core/table block with one pass over the table's tokens.

    Rows outside <thead>/<tbody>/<tfoot> go to the body. Rows without cells
    are dropped. A <caption> becomes the caption attribute. Cell content is
    kept verbatim, nested tables included.

    Raises:
        ExtractionError: for unclosed cells or captions, a table nested
                         outside a cell, or text outside any cell
    """
    sections: dict[str, list] = {'head': [], 'body': [], 'foot': []}
    section = 'body'
    row: Optional[dict] = None
    caption = None

    tokens = list(span.tokens)
    index = 1
    while index < len(tokens) - 1:
        token = tokens[index]

        if token.kind == OPEN and token.tag in ('td', 'th', 'caption', 'table'):
            element = span_at(span.source, tokens, index)
            if element is None:
                raise ExtractionError(f"<{token.tag}> inside <table> is not closed",
                                      tag=token.tag, details={"offset": token.start})
            if token.tag == 'table':
                raise ExtractionError("Nested <table> outside a cell",
                                      tag='table', details={"offset": token.start})

            if token.tag == 'caption':
                caption = element.inner_html.strip()
            else:
                if row is None:
                    row = {'cells': []}
                    sections[section].append(row)
                row['cells'].append(_cell(element))

            index += len(element.tokens)
            continue

        if token.kind == OPEN:
            if token.tag in TABLE_SECTIONS:
                section = TABLE_SECTIONS[token.tag]
                row = None
            elif token.tag == 'tr':
                row = {'cells': []}
                sections[section].append(row)
        elif token.kind == CLOSE:
            if token.tag in TABLE_SECTIONS:
                section = 'body'
                row = None
            elif token.tag == 'tr':
                row = None
        elif token.kind == TEXT and span.source[token.start:token.end].strip():
            raise ExtractionError("Text outside table cells", tag='table',
                                  details={"offset": token.start})

        index += 1

    attributes = {name: [r for r in rows if r['cells']] for name, rows in sections.items()}

    if span.get_attribute('id'):
        attributes['anchor'] = span.get_attribute('id')
    if caption:
        attributes['caption'] = caption
    if 'has-fixed-layout' in span.classes:
        attributes['hasFixedLayout'] = True

    logger.debug(f"Table: {len(attributes['head'])} head, {len(attributes['body'])} body, "
                 f"{len(attributes['foot'])} foot rows")
    return create_block('core/table', attributes)


def _cell(element: ElementSpan) -> dict:
    cell = {'content': element.inner_html.strip(), 'tag': element.tag}
    for name in ('colspan', 'rowspan'):
        if element.has_attribute(name):
            value = coerce_value('integer', element.get_attribute(name))
            if value is not None:
                cell[name] = value
    return cell
