"""
Normalizer: wrap top-level inline content in paragraphs.

After normalization every top-level item is an element, so the registry
never sees a bare run of text or phrasing markup. Block-level elements pass
through byte for byte.
"""

import re
from typing import Optional

from .locator import iter_top_level, TOP_TEXT, TOP_ELEMENT, TOP_UNBALANCED
from .tokenizer import tokenize
from .logger import get_module_logger

logger = get_module_logger("normalizer")

# Phrasing content that belongs inside a paragraph (<br> is handled apart)
PHRASING_TAGS = frozenset([
    'a', 'abbr', 'b', 'bdi', 'bdo', 'cite', 'code', 'data', 'dfn', 'em',
    'i', 'kbd', 'mark', 'q', 'rp', 'rt', 'ruby', 's', 'samp', 'small',
    'span', 'strong', 'sub', 'sup', 'time', 'u', 'var', 'wbr',
])

# html.parser reports a tag cut off by the end of input as text
UNTERMINATED_TAG = re.compile(r'<[a-zA-Z]')


class _ParagraphWriter:
    """Output buffer with an optional open paragraph."""

    def __init__(self):
        self.output: list[str] = []
        self.paragraph: Optional[list[str]] = None
        self.pending_break: Optional[int] = None   # index of the last <br> appended

    @property
    def is_open(self) -> bool:
        return self.paragraph is not None

    def append(self, markup: str) -> None:
        if self.paragraph is None:
            self.paragraph = []
        self.paragraph.append(markup)

    def close(self) -> None:
        if self.paragraph is not None:
            content = ''.join(self.paragraph).strip()
            if content:
                self.output.append(f'<p>{content}</p>')
        self.paragraph = None
        self.pending_break = None

    def emit(self, markup: str) -> None:
        self.close()
        self.output.append(markup)


def normalize_blocks(html: str) -> str:
    """
    Wrap inline runs in <p> elements.

    Rules:
      - non-whitespace text and phrasing elements open a paragraph (if
        none is open) and are appended to it
      - whitespace is kept only inside an open paragraph
      - <br><br> ends the paragraph and both breaks are dropped; a single
        <br> stays in the paragraph (and is dropped outside one)
      - comments, declarations and stray end tags are dropped
      - a tag cut off by the end of input is copied unchanged
      - any other element closes the paragraph and is copied unchanged

    Args:
        html: HTML fragment

    Returns:
        The normalized fragment
    """
    if not html:
        return ''

    writer = _ParagraphWriter()
    previous_was_break = False
    tokens = tokenize(html)

    for item in iter_top_level(html, tokens):
        markup = item.markup(html)

        if item.kind == TOP_TEXT:
            cut = UNTERMINATED_TAG.search(markup)
            text = markup[:cut.start()] if cut else markup
            if text.strip():
                writer.append(text)
                previous_was_break = False
            elif writer.is_open:
                writer.append(text)
            if cut:
                writer.emit(markup[cut.start():])
                previous_was_break = False
            continue

        if item.kind not in (TOP_ELEMENT, TOP_UNBALANCED):
            continue

        if item.tag == 'br':
            if previous_was_break:
                # Paragraph boundary: drop the first break along with this one
                if writer.is_open and writer.pending_break is not None:
                    del writer.paragraph[writer.pending_break:]
                writer.close()
                previous_was_break = False
            else:
                if writer.is_open:
                    writer.pending_break = len(writer.paragraph)
                    writer.append(markup)
                previous_was_break = True
            continue

        previous_was_break = False

        if item.tag in PHRASING_TAGS:
            writer.append(markup)
        else:
            writer.emit(markup)

    writer.close()
    normalized = ''.join(writer.output)
    logger.debug(f"Normalized {len(html)} chars into {len(writer.output)} top-level items")
    return normalized
