"""
Streaming tokenizer with absolute offsets.

Produces a flat Token list for a fragment: start tags, end tags, comments
and the raw text runs between them, each with its [start, end) range in
the source and the number of open elements enclosing it.

Built on html.parser.HTMLParser (the same parser BeautifulSoup's
"html.parser" builder drives), so quoted '>' inside attribute values,
markup inside comments and the contents of <script>/<style> never produce
tag tokens. No tree is built: depth comes from a stack of open tag names.

Depth rules:
  - void elements and <x/> do not open a level
  - an end tag closes back to its most recent matching open element,
    implicitly closing anything opened after it
  - an end tag with no matching open element closes nothing
"""

import re
from html.parser import HTMLParser
from typing import Optional

from .schemas import Token, OPEN, CLOSE, TEXT, COMMENT

# Elements that never have content or a closing tag
VOID_TAGS = frozenset([
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
    'link', 'meta', 'param', 'source', 'track', 'wbr',
])

# HTMLParser accepts "--!>" and "-- >" as comment terminators
_COMMENT_CLOSE = re.compile(r'--!?\s*>')


class _TokenCollector(HTMLParser):
    """HTMLParser subclass that records tokens instead of building a tree."""

    def __init__(self, source: str):
        # Entities are left in the raw text; text tokens are source slices
        super().__init__(convert_charrefs=True)
        self.source = source
        self.tokens: list[Token] = []
        self._stack: list[str] = []
        self._text_start = 0
        # getpos() reports (line, column); map lines back to absolute offsets
        self._line_starts = [0] + [m.end() for m in re.finditer('\n', source)]

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    def _flush_text(self, until: int) -> None:
        """Emit the raw text between the previous token and ``until``."""
        if until > self._text_start:
            self.tokens.append(Token(TEXT, '', len(self._stack), self._text_start, until))

    def _emit(self, token: Token) -> None:
        self._flush_text(token.start)
        self.tokens.append(token)
        self._text_start = max(self._text_start, token.end)

    # --- HTMLParser callbacks ---

    def handle_starttag(self, tag, attrs):
        self._start_tag(tag, attrs, self_closing=False)

    def handle_startendtag(self, tag, attrs):
        self._start_tag(tag, attrs, self_closing=True)

    def _start_tag(self, tag: str, attrs: list, self_closing: bool) -> None:
        start = self._offset()
        end = start + len(self.get_starttag_text() or '')

        # First occurrence of a repeated attribute wins, as in browsers
        unique = {}
        for name, value in attrs:
            unique.setdefault(name, value)

        self._emit(Token(OPEN, tag, len(self._stack), start, end,
                         tuple(unique.items()), self_closing))

        if not self_closing and tag not in VOID_TAGS:
            self._stack.append(tag)

    def handle_endtag(self, tag):
        start = self._offset()
        close = self.source.find('>', start)
        end = close + 1 if close != -1 else len(self.source)

        # Flush text at the inner depth before the stack shrinks
        self._flush_text(start)

        if tag in self._stack:
            # Pop back to the matching opener; anything above it is left unclosed
            index = len(self._stack) - 1 - self._stack[::-1].index(tag)
            del self._stack[index:]
            depth = index
        else:
            depth = len(self._stack)

        self.tokens.append(Token(CLOSE, tag, depth, start, end))
        self._text_start = max(self._text_start, end)

    def handle_comment(self, data):
        start = self._offset()
        if self.source.startswith('<!-->', start):
            end = start + 5
        elif self.source.startswith('<!--->', start):
            end = start + 6
        else:
            match = _COMMENT_CLOSE.search(self.source, start + 4)
            end = match.end() if match else len(self.source)
        self._emit(Token(COMMENT, '', len(self._stack), start, end))

    def handle_decl(self, decl):
        self._markup_declaration('>')

    def handle_pi(self, data):
        self._markup_declaration('>')

    def unknown_decl(self, data):
        self._markup_declaration(']]>' if data.upper().startswith('CDATA[') else '>')

    def _markup_declaration(self, terminator: str) -> None:
        start = self._offset()
        close = self.source.find(terminator, start)
        end = close + len(terminator) if close != -1 else len(self.source)
        self._emit(Token(COMMENT, '', len(self._stack), start, end))

    def finish(self) -> list[Token]:
        self.close()
        self._flush_text(len(self.source))
        return self.tokens


def tokenize(source: Optional[str]) -> list[Token]:
    """
    Tokenize an HTML fragment.

    Args:
        source: HTML fragment (may be empty or None)

    Returns:
        Tokens in document order; an empty list for empty input
    """
    if not source:
        return []

    collector = _TokenCollector(source)
    collector.feed(source)
    return collector.finish()
