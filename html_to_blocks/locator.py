"""
Locator/Extractor: exact balanced spans of elements inside a fragment.

Given a tag name and an occurrence index, return the substring from that
occurrence's opening tag to its own closing tag. Matching counts nested
same-named tags (so <ul> inside <ul> closes correctly) using nothing but
the token stream; no tree is materialized.

A span is either exact or absent:
  - unterminated elements          → None (caller demotes to core/html)
  - crossed nesting (<b><i></b></i>) → None
  - a "balanced" span that re-checks as unbalanced → BalancedMatchError
"""

from typing import Iterator, NamedTuple, Optional

from .schemas import ElementSpan, Token, OPEN, CLOSE, TEXT, COMMENT
from .tokenizer import tokenize, VOID_TAGS
from .exceptions import BalancedMatchError, ExtractionError
from .logger import get_module_logger

logger = get_module_logger("locator")


def find_opener(tokens: list[Token], tag: str, occurrence: int) -> Optional[int]:
    """Index of the Nth (0-based, document order) opening tag named ``tag``."""
    tag = tag.lower()
    seen = 0
    for index, token in enumerate(tokens):
        if token.kind == OPEN and token.tag == tag:
            if seen == occurrence:
                return index
            seen += 1
    return None


def match_close(tokens: list[Token], index: int) -> Optional[int]:
    """
    Index of the closing token that balances the opener at ``index``.

    The same-name depth counter starts at 0, goes up on every opening tag
    of the name and down on every closing one; the element ends when it
    returns to 0.
    """
    name = tokens[index].tag
    depth = 0
    for position in range(index, len(tokens)):
        token = tokens[position]
        if token.tag != name:
            continue
        if token.kind == OPEN and not token.self_closing:
            depth += 1
        elif token.kind == CLOSE:
            depth -= 1
            if depth == 0:
                return position
    return None


def span_at(source: str, tokens: list[Token], index: int) -> Optional[ElementSpan]:
    """
    Build the ElementSpan for the opening token at ``tokens[index]``.

    Returns None when the element has no balanced closing tag.
    """
    opener = tokens[index]
    attributes = dict(opener.attrs)

    if opener.tag in VOID_TAGS or opener.self_closing:
        return ElementSpan(
            tag=opener.tag,
            attributes=attributes,
            source=source,
            outer_start=opener.start,
            outer_end=opener.end,
            inner_start=opener.end,
            inner_end=opener.end,
            depth=opener.depth,
            tokens=(opener,),
        )

    close_index = match_close(tokens, index)
    if close_index is None:
        logger.debug(f"<{opener.tag}> at {opener.start} is unterminated")
        return None

    closer = tokens[close_index]
    if closer.depth != opener.depth:
        # The closer belongs to a different nesting level: crossed tags
        logger.debug(f"<{opener.tag}> at {opener.start} closes across nesting levels")
        return None

    span = ElementSpan(
        tag=opener.tag,
        attributes=attributes,
        source=source,
        outer_start=opener.start,
        outer_end=closer.end,
        inner_start=opener.end,
        inner_end=closer.start,
        depth=opener.depth,
        tokens=tuple(tokens[index:close_index + 1]),
    )
    _verify_balanced(span)
    return span


def _verify_balanced(span: ElementSpan) -> None:
    """Re-check a span before handing it out; a failure is a bug."""
    opens = sum(1 for t in span.tokens
                if t.kind == OPEN and t.tag == span.tag and not t.self_closing)
    closes = sum(1 for t in span.tokens if t.kind == CLOSE and t.tag == span.tag)

    first, last = span.tokens[0], span.tokens[-1]
    if (opens != closes
            or first.kind != OPEN or last.kind != CLOSE
            or first.tag != span.tag or last.tag != span.tag
            or first.start != span.outer_start or last.end != span.outer_end):
        raise BalancedMatchError(
            f"Span for <{span.tag}> is not balanced ({opens} open, {closes} close)",
            tag=span.tag,
            span=(span.outer_start, span.outer_end),
        )


def locate_element(
    source: str,
    tag: str,
    occurrence: int = 0,
    tokens: Optional[list[Token]] = None
) -> Optional[ElementSpan]:
    """
    Locate the Nth element with the given tag name.

    Args:
        source: HTML fragment
        tag: Tag name (case-insensitive)
        occurrence: 0-based index among all opening tags of that name
        tokens: Token stream of ``source`` when the caller already has one

    Returns:
        ElementSpan of the element, or None if it is missing or unbalanced
    """
    if tokens is None:
        tokens = tokenize(source)

    index = find_opener(tokens, tag, occurrence)
    if index is None:
        return None
    return span_at(source, tokens, index)


# --- Shape helpers over an extracted span ---

def _direct_children(span: ElementSpan) -> Iterator[tuple[int, Token]]:
    child_depth = span.depth + 1
    for index in range(1, len(span.tokens) - 1):
        token = span.tokens[index]
        if token.depth == child_depth:
            yield index, token


def child_tags(span: ElementSpan) -> list[str]:
    """Tag names of the direct element children, in order."""
    return [token.tag for _, token in _direct_children(span) if token.kind == OPEN]


def has_text(span: ElementSpan) -> bool:
    """True if the element directly contains non-whitespace text."""
    return any(
        token.kind == TEXT and span.source[token.start:token.end].strip()
        for _, token in _direct_children(span)
    )


def child_elements(span: ElementSpan, tag: Optional[str] = None) -> list[ElementSpan]:
    """
    Direct element children of ``span`` (optionally only those named ``tag``).

    Raises:
        ExtractionError: if a child has no balanced span
    """
    tokens = list(span.tokens)
    children = []
    for index, token in _direct_children(span):
        if token.kind != OPEN or (tag and token.tag != tag):
            continue
        child = span_at(span.source, tokens, index)
        if child is None:
            raise ExtractionError(
                f"<{token.tag}> inside <{span.tag}> is not closed",
                tag=token.tag,
                details={"offset": token.start},
            )
        children.append(child)
    return children


def find_descendants(span: ElementSpan, tag: str) -> list[ElementSpan]:
    """
    All descendant elements named ``tag`` in document order.

    Raises:
        ExtractionError: if one of them has no balanced span
    """
    tokens = list(span.tokens)
    found = []
    for index in range(1, len(tokens) - 1):
        token = tokens[index]
        if token.kind != OPEN or token.tag != tag:
            continue
        element = span_at(span.source, tokens, index)
        if element is None:
            raise ExtractionError(
                f"<{tag}> inside <{span.tag}> is not closed",
                tag=tag,
                details={"offset": token.start},
            )
        found.append(element)
    return found


# --- Top-level walk ---

TOP_TEXT = "text"
TOP_ELEMENT = "element"
TOP_UNBALANCED = "unbalanced"
TOP_IGNORED = "ignored"


class TopLevelItem(NamedTuple):
    """One direct child of the fragment's implicit root."""
    kind: str                          # text | element | unbalanced | ignored
    start: int
    end: int
    tag: str = ''
    occurrence: int = 0                # index among all opening tags of this name
    span: Optional[ElementSpan] = None

    def markup(self, source: str) -> str:
        return source[self.start:self.end]


def iter_top_level(source: str, tokens: Optional[list[Token]] = None) -> Iterator[TopLevelItem]:
    """
    Walk the fragment's top-level children once, in document order.

    Balanced elements come with their span. An element that cannot be
    balanced is reported as "unbalanced" and covers the raw markup up to the
    next top-level token, so nothing between two top-level items is lost.
    Comments, declarations and stray end tags are reported as "ignored".
    """
    if tokens is None:
        tokens = tokenize(source)

    occurrences: dict[str, int] = {}
    resume_at = 0

    for index, token in enumerate(tokens):
        # Count every opener, including nested ones, so occurrence indexes
        # agree with locate_element()
        occurrence = 0
        if token.kind == OPEN:
            occurrence = occurrences.get(token.tag, 0)
            occurrences[token.tag] = occurrence + 1

        if index < resume_at or token.depth != 0:
            continue

        if token.kind == TEXT:
            yield TopLevelItem(TOP_TEXT, token.start, token.end)
        elif token.kind == OPEN:
            span = span_at(source, tokens, index)
            if span is not None:
                resume_at = index + len(span.tokens)
                yield TopLevelItem(TOP_ELEMENT, span.outer_start, span.outer_end,
                                   token.tag, occurrence, span)
            else:
                resume_at = _next_top_level(tokens, index)
                end = tokens[resume_at].start if resume_at < len(tokens) else len(source)
                yield TopLevelItem(TOP_UNBALANCED, token.start, end, token.tag, occurrence)
        else:
            kind = "comment" if token.kind == COMMENT else f"stray </{token.tag}>"
            logger.debug(f"Ignoring top-level {kind} at {token.start}")
            yield TopLevelItem(TOP_IGNORED, token.start, token.end, token.tag)


def _next_top_level(tokens: list[Token], index: int) -> int:
    for position in range(index + 1, len(tokens)):
        if tokens[position].depth == 0:
            return position
    return len(tokens)
