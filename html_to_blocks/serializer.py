"""
Block Serializer.

Two jobs:
  1. Render a block type's markup from its attributes (render_block_html /
     render_wrapper_html). This is the exact inverse of the "sourced"
     attributes in block_types.py: whatever a schema reads from markup is
     written here.
  2. Serialize BlockNode trees to comment-delimited block markup:

       <!-- wp:heading {"level":3} --><h3 ...>Title</h3><!-- /wp:heading -->
       <!-- wp:separator /-->                          (no inner content)

     The "core/" namespace is implied and left out of the delimiter.
"""

import json
import re
from typing import Any, Callable, Optional

from .schemas import BlockNode
from .markup import escape_attribute

# Ordered-list "type" attribute ↔ list-style names stored on core/list
LIST_TYPES = {
    'A': 'upper-alpha',
    'a': 'lower-alpha',
    'I': 'upper-roman',
    'i': 'lower-roman',
}
_LIST_TYPE_MARKERS = {style: marker for marker, style in LIST_TYPES.items()}


# --- Attribute helpers ---

def _class_attr(*names: Optional[str]) -> str:
    classes = ' '.join(name for name in names if name)
    return f' class="{escape_attribute(classes)}"' if classes else ''


def _attr(name: str, value: Any) -> str:
    if value is None or value == '':
        return ''
    return f' {name}="{escape_attribute(value)}"'


def _text_align_class(attributes: dict) -> Optional[str]:
    align = ((attributes.get('style') or {}).get('typography') or {}).get('textAlign')
    return f'has-text-align-{align}' if align else None


# --- Leaf renderers: attributes → markup ---

def _render_paragraph(attributes: dict) -> str:
    classes = _class_attr(_text_align_class(attributes), attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    return f'<p{classes}{anchor}>{attributes.get("content", "")}</p>'


def _render_heading(attributes: dict) -> str:
    level = attributes.get('level') or 2
    align = attributes.get('textAlign')
    classes = _class_attr('wp-block-heading',
                          f'has-text-align-{align}' if align else None,
                          attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    return f'<h{level}{classes}{anchor}>{attributes.get("content", "")}</h{level}>'


def _render_list_item(attributes: dict) -> str:
    opening, closing = _wrap_list_item(attributes)
    return opening + closing


def _render_image(attributes: dict) -> str:
    url = attributes.get('url')
    if not url:
        return ''

    image_class = f'wp-image-{attributes["id"]}' if attributes.get('id') else None
    img = (f'<img src="{escape_attribute(url)}" alt="{escape_attribute(attributes.get("alt") or "")}"'
           f'{_attr("title", attributes.get("title"))}{_class_attr(image_class)}/>')

    if attributes.get('href'):
        img = (f'<a href="{escape_attribute(attributes["href"])}"'
               f'{_attr("rel", attributes.get("rel"))}'
               f'{_attr("class", attributes.get("linkClass"))}>{img}</a>')

    caption = ''
    if attributes.get('caption'):
        caption = f'<figcaption class="wp-element-caption">{attributes["caption"]}</figcaption>'

    align = f'align{attributes["align"]}' if attributes.get('align') else None
    classes = _class_attr('wp-block-image', align, attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    return f'<figure{classes}{anchor}>{img}{caption}</figure>'


def _render_code(attributes: dict) -> str:
    # content is already escaped rich text
    classes = _class_attr('wp-block-code', attributes.get('className'))
    return f'<pre{classes}><code>{attributes.get("content", "")}</code></pre>'


def _render_preformatted(attributes: dict) -> str:
    classes = _class_attr('wp-block-preformatted', attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    return f'<pre{classes}{anchor}>{attributes.get("content", "")}</pre>'


def _render_separator(attributes: dict) -> str:
    classes = _class_attr('wp-block-separator', 'has-alpha-channel-opacity', attributes.get('className'))
    return f'<hr{classes}/>'


def _render_table_section(tag: str, rows: list, default_cell: str) -> str:
    if not rows:
        return ''
    html = f'<{tag}>'
    for row in rows:
        html += '<tr>'
        for cell in row.get('cells', []):
            cell_tag = cell.get('tag') or default_cell
            spans = _attr('colspan', cell.get('colspan')) + _attr('rowspan', cell.get('rowspan'))
            html += f'<{cell_tag}{spans}>{cell.get("content", "")}</{cell_tag}>'
        html += '</tr>'
    return html + f'</{tag}>'


def _render_table(attributes: dict) -> str:
    classes = _class_attr('wp-block-table', attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    table_class = _class_attr('has-fixed-layout' if attributes.get('hasFixedLayout') else None)

    html = f'<figure{classes}{anchor}><table{table_class}>'
    html += _render_table_section('thead', attributes.get('head') or [], 'th')
    html += _render_table_section('tbody', attributes.get('body') or [], 'td')
    html += _render_table_section('tfoot', attributes.get('foot') or [], 'td')
    html += '</table>'

    if attributes.get('caption'):
        html += f'<figcaption class="wp-element-caption">{attributes["caption"]}</figcaption>'

    return html + '</figure>'


def _render_raw(key: str) -> Callable[[dict], str]:
    return lambda attributes: attributes.get(key) or ''


_LEAF_RENDERERS: dict[str, Callable[[dict], str]] = {
    'core/paragraph': _render_paragraph,
    'core/heading': _render_heading,
    'core/list-item': _render_list_item,
    'core/image': _render_image,
    'core/code': _render_code,
    'core/preformatted': _render_preformatted,
    'core/separator': _render_separator,
    'core/table': _render_table,
    'core/html': _render_raw('content'),
    'core/shortcode': _render_raw('text'),
}


# --- Wrapper renderers: markup around inner blocks ---

def _wrap_list(attributes: dict) -> tuple[str, str]:
    tag = 'ol' if attributes.get('ordered') else 'ul'
    extra = (_attr('id', attributes.get('anchor'))
             + _attr('start', attributes.get('start'))
             + (' reversed' if attributes.get('reversed') else '')
             + _attr('type', _LIST_TYPE_MARKERS.get(attributes.get('type'))))
    classes = _class_attr('wp-block-list', attributes.get('className'))
    return f'<{tag}{classes}{extra}>', f'</{tag}>'


def _wrap_list_item(attributes: dict) -> tuple[str, str]:
    classes = _class_attr(attributes.get('className'))
    return f'<li{classes}>{attributes.get("content", "")}', '</li>'


def _wrap_quote(attributes: dict) -> tuple[str, str]:
    classes = _class_attr('wp-block-quote', attributes.get('className'))
    anchor = _attr('id', attributes.get('anchor'))
    return f'<blockquote{classes}{anchor}>', '</blockquote>'


_WRAPPER_RENDERERS: dict[str, Callable[[dict], tuple[str, str]]] = {
    'core/list': _wrap_list,
    'core/list-item': _wrap_list_item,
    'core/quote': _wrap_quote,
}


def render_block_html(name: str, attributes: dict) -> str:
    """Markup of a block without inner blocks ('' for unknown types)."""
    renderer = _LEAF_RENDERERS.get(name)
    if renderer is None and name in _WRAPPER_RENDERERS:
        opening, closing = _WRAPPER_RENDERERS[name](attributes)
        return opening + closing
    return renderer(attributes) if renderer else ''


def render_wrapper_html(name: str, attributes: dict) -> tuple[str, str]:
    """Opening and closing markup placed around a block's inner blocks."""
    renderer = _WRAPPER_RENDERERS.get(name)
    return renderer(attributes) if renderer else ('', '')


# --- Comment-delimited serialization ---

# A quote preceded by an odd number of backslashes is an escaped quote
_ESCAPED_QUOTE = re.compile(r'(?<!\\)((?:\\\\)*)\\"')


def serialize_attributes(attributes: dict) -> str:
    """
    JSON for a block delimiter.

    Characters that could end the HTML comment or be read as markup are
    written as unicode escapes, so the delimiter survives HTML filters.
    """
    encoded = json.dumps(attributes, ensure_ascii=False, separators=(',', ':'))
    encoded = encoded.replace('--', '\\u002d\\u002d')
    encoded = encoded.replace('<', '\\u003c').replace('>', '\\u003e').replace('&', '\\u0026')
    return _ESCAPED_QUOTE.sub(lambda m: m.group(1) + '\\u0022', encoded)


def strip_core_namespace(name: str) -> str:
    return name[len('core/'):] if name.startswith('core/') else name


def get_comment_delimited_block_content(name: Optional[str], attributes: dict, content: str) -> str:
    """Wrap rendered content in block delimiters."""
    if name is None:
        return content

    serialized_name = strip_core_namespace(name)
    serialized_attributes = serialize_attributes(attributes) + ' ' if attributes else ''

    if not content:
        return f'<!-- wp:{serialized_name} {serialized_attributes}/-->'

    return (f'<!-- wp:{serialized_name} {serialized_attributes}-->'
            f'{content}'
            f'<!-- /wp:{serialized_name} -->')


def render_block(node: BlockNode, delimiters: bool = True) -> str:
    """
    Render one block and its inner blocks.

    Walks the tree with an explicit stack: trees parsed from block markup
    can nest far deeper than the interpreter's recursion limit.

    Args:
        node: Block to render
        delimiters: Wrap each block in its comment delimiters

    Returns:
        The rendered markup
    """
    stack = [(node, iter(node.inner_content), iter(node.children), [])]
    while True:
        current, chunks, children, parts = stack[-1]
        for chunk in chunks:
            if chunk is None:
                child = next(children, None)
                if child is not None:
                    stack.append((child, iter(child.inner_content), iter(child.children), []))
                    break
            else:
                parts.append(chunk)
        else:
            stack.pop()
            content = ''.join(parts)
            if delimiters:
                content = get_comment_delimited_block_content(current.name, current.attributes, content)
            if not stack:
                return content
            stack[-1][3].append(content)


def serialize_block(node: BlockNode) -> str:
    """Serialize one block and its inner blocks."""
    return render_block(node)


def serialize_blocks(nodes: list[BlockNode]) -> str:
    """Serialize a block list to block markup."""
    return ''.join(serialize_block(node) for node in nodes)
