"""
Block Parser: comment-delimited block markup → BlockNode trees.

The inverse of serializer.serialize_blocks(). Markup outside any block
delimiter becomes a freeform node (name=None) so that serializing the
result gives back the input exactly.

Parsing is a single forward scan over delimiter comments with a stack of
open blocks; unclosed blocks are closed at end of input.
"""

import json
import re
from typing import NamedTuple, Optional

from .schemas import BlockNode
from .logger import get_module_logger

logger = get_module_logger("block_parser")

BLOCK_MARKER = '<!-- wp:'

_DELIMITER = re.compile(
    r'<!--\s+'
    r'(?P<closer>/)?'
    r'wp:(?P<namespace>[a-z][a-z0-9_-]*/)?(?P<name>[a-z][a-z0-9_-]*)\s+'
    r'(?P<attrs>\{.*?\}\s+)?'
    r'(?P<void>/)?-->',
    re.DOTALL,
)

NO_MORE_TOKENS = "no-more-tokens"
VOID_BLOCK = "void-block"
BLOCK_OPENER = "block-opener"
BLOCK_CLOSER = "block-closer"


class _Delimiter(NamedTuple):
    kind: str
    name: Optional[str] = None
    attrs: Optional[dict] = None
    start: int = 0
    length: int = 0


class _Frame:
    """An open block waiting for its closer."""

    def __init__(self, block: BlockNode, token_start: int, token_length: int,
                 prev_offset: int, leading_html_start: Optional[int]):
        self.block = block
        self.token_start = token_start
        self.token_length = token_length
        self.prev_offset = prev_offset                # where the next inner HTML chunk starts
        self.leading_html_start = leading_html_start  # freeform HTML before a top-level opener


def is_block_markup(html: str) -> bool:
    """True if the text contains block delimiters."""
    return BLOCK_MARKER in html


def freeform(html: str) -> BlockNode:
    return BlockNode(name=None, inner_content=[html])


class BlockParser:
    """Stack-based parser over block delimiter comments."""

    def parse(self, document: str) -> list[BlockNode]:
        self.document = document
        self.offset = 0
        self.output: list[BlockNode] = []
        self.stack: list[_Frame] = []

        while self._proceed():
            pass

        return self.output

    def _proceed(self) -> bool:
        token = self._next_token()
        depth = len(self.stack)
        leading_html_start = self.offset if token.start > self.offset else None

        if token.kind == NO_MORE_TOKENS:
            if depth == 0:
                self._add_freeform()
            else:
                while self.stack:
                    self._add_block_from_stack()
            return False

        if token.kind == VOID_BLOCK:
            block = BlockNode(name=token.name, attributes=token.attrs or {})
            if depth == 0:
                if leading_html_start is not None:
                    self.output.append(freeform(self.document[leading_html_start:token.start]))
                self.output.append(block)
            else:
                self._add_inner_block(block, token.start, token.length)
            self.offset = token.start + token.length
            return True

        if token.kind == BLOCK_OPENER:
            block = BlockNode(name=token.name, attributes=token.attrs or {})
            self.stack.append(_Frame(block, token.start, token.length,
                                     token.start + token.length, leading_html_start))
            self.offset = token.start + token.length
            return True

        # Block closer
        if depth == 0:
            # A closer with no opener: keep the rest as freeform HTML
            logger.warning(f"Unexpected block closer '{token.name}' at {token.start}")
            self._add_freeform()
            return False

        if depth == 1:
            self._add_block_from_stack(token.start)
            self.offset = token.start + token.length
            return True

        frame = self.stack.pop()
        self._append_html(frame, self.document[frame.prev_offset:token.start])
        frame.prev_offset = token.start + token.length
        self._add_inner_block(frame.block, frame.token_start, frame.token_length,
                              token.start + token.length)
        self.offset = token.start + token.length
        return True

    def _next_token(self) -> _Delimiter:
        match = _DELIMITER.search(self.document, self.offset)
        if match is None:
            return _Delimiter(NO_MORE_TOKENS, start=len(self.document))

        namespace = match.group('namespace') or 'core/'
        name = namespace + match.group('name')
        start = match.start()
        length = match.end() - match.start()

        if match.group('closer'):
            return _Delimiter(BLOCK_CLOSER, name, start=start, length=length)

        attrs = {}
        if match.group('attrs'):
            try:
                attrs = json.loads(match.group('attrs'))
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid attributes for block '{name}': {e}")
                attrs = {}

        kind = VOID_BLOCK if match.group('void') else BLOCK_OPENER
        return _Delimiter(kind, name, attrs, start, length)

    @staticmethod
    def _append_html(frame: _Frame, html: str) -> None:
        if html:
            frame.block.inner_content.append(html)

    def _add_freeform(self) -> None:
        if self.offset < len(self.document):
            self.output.append(freeform(self.document[self.offset:]))

    def _add_inner_block(self, block: BlockNode, token_start: int, token_length: int,
                         last_offset: Optional[int] = None) -> None:
        parent = self.stack[-1]
        parent.block.children.append(block)
        self._append_html(parent, self.document[parent.prev_offset:token_start])
        parent.block.inner_content.append(None)
        parent.prev_offset = last_offset if last_offset else token_start + token_length

    def _add_block_from_stack(self, end_offset: Optional[int] = None) -> None:
        frame = self.stack.pop()
        end = end_offset if end_offset is not None else len(self.document)
        self._append_html(frame, self.document[frame.prev_offset:end])

        if frame.leading_html_start is not None:
            self.output.append(freeform(self.document[frame.leading_html_start:frame.token_start]))

        self.output.append(frame.block)


def parse_blocks(document: str) -> list[BlockNode]:
    """Parse block markup into nodes (freeform runs get name=None)."""
    if not document:
        return []
    return BlockParser().parse(document)
