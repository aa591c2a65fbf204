"""
BeautifulSoup helpers for the places that need a real parse tree.

The top-level walk never builds a tree (see tokenizer.py / locator.py).
Attribute extraction and text content do, and they go through make_soup(),
which keeps the parser fallback chain: html5lib → lxml → html.parser.
"""

import html
import re

from bs4 import BeautifulSoup, Tag

from .logger import get_module_logger

logger = get_module_logger("markup")


def make_soup(markup: str) -> BeautifulSoup:
    """
    Parse a fragment, degrading through the available tree builders.

    html5lib implements the WHATWG algorithm and copes with the worst
    markup; lxml is the fast tolerant fallback; html.parser ships with
    Python and is always there.
    """
    try:
        return BeautifulSoup(markup, 'html5lib')
    except Exception as e:
        logger.warning(f"html5lib parsing failed, trying lxml: {e}")

    try:
        return BeautifulSoup(markup, 'lxml')
    except Exception as e:
        logger.warning(f"lxml parsing also failed: {e}")

    return BeautifulSoup(markup, 'html.parser')


def fragment_root(soup: BeautifulSoup) -> Tag:
    """The element that holds the fragment's nodes (<body> when the builder adds one)."""
    return soup.body or soup


def inner_html(element: Tag) -> str:
    """Serialized children of ``element``, trimmed."""
    return element.decode_contents().strip()


def text_content(markup: str) -> str:
    """Text of a fragment with tags removed and entities decoded."""
    if not markup:
        return ''
    return fragment_root(make_soup(markup)).get_text()


def visible_text_length(markup: str) -> int:
    """Number of non-whitespace text characters in a fragment."""
    return len(re.sub(r'\s+', '', text_content(markup)))


def escape_text(text: str) -> str:
    """Escape text for use as element content."""
    return html.escape(text, quote=False)


def escape_attribute(value: str) -> str:
    """Escape a value for a double-quoted attribute."""
    return html.escape(str(value), quote=True)
