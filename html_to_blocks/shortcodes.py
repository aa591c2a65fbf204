"""
Shortcode segmentation.

Splits a fragment into literal HTML spans and core/shortcode blocks, in
order. Shortcodes are matched with the WordPress shortcode grammar:

  [tag attrs]            [tag attrs /]
  [tag attrs]content[/tag]
  [[tag]]                escaped: kept as literal text

Only the configured tag names are recognised.
"""

import re
from typing import Union

from .schemas import BlockNode
from .block_factory import create_block
from .logger import get_module_logger

logger = get_module_logger("shortcodes")

Piece = Union[str, BlockNode]


def shortcode_regex(tags: list[str]) -> re.Pattern:
    """
    Compile the shortcode pattern for ``tags``.

    Groups: 1 extra opening bracket, 2 tag, 3 attributes, 4 self-closing
    slash, 5 enclosed content, 6 extra closing bracket.
    """
    tag_pattern = '|'.join(re.escape(tag) for tag in tags)
    return re.compile(
        r'\['
        r'(\[?)'
        rf'({tag_pattern})'
        r'(?![\w-])'
        r'('
        r'[^\]/]*'
        r'(?:/(?!\])[^\]/]*)*?'
        r')'
        r'(?:'
        r'(/)\]'
        r'|'
        r'\](?:('
        r'[^\[]*'
        r'(?:\[(?!/\2\])[^\[]*)*'
        r')\[/\2\])?'
        r')'
        r'(\]?)'
    )


def split_shortcodes(html: str, tags: list[str]) -> list[Piece]:
    """
    Split ``html`` around shortcodes.

    Args:
        html: HTML fragment
        tags: Shortcode names to recognise

    Returns:
        Literal strings and core/shortcode blocks in document order
    """
    if not html or not tags or '[' not in html:
        return [html] if html else []

    pieces: list[Piece] = []
    literal = ''
    last_index = 0

    for match in shortcode_regex(tags).finditer(html):
        literal += html[last_index:match.start()]
        last_index = match.end()

        if match.group(1) == '[' and match.group(6) == ']':
            # [[tag]] is an escaped shortcode
            literal += match.group(0)
            continue

        if literal:
            pieces.append(literal)
            literal = ''

        logger.debug(f"Shortcode [{match.group(2)}] at {match.start()}")
        pieces.append(create_block('core/shortcode', {'text': match.group(0)}))

    literal += html[last_index:]
    if literal:
        pieces.append(literal)

    return pieces
