"""
Main orchestrator for the HTML to Blocks converter.

Coordinates the pipeline for one fragment:

  1. Idempotence: markup already in block format is parsed, not converted
  2. Shortcodes: the fragment is split into literal spans and shortcode blocks
  3. Normalizer: inline runs in each literal span are wrapped in paragraphs
  4. Tokenizer + Locator: one walk over the top-level elements
  5. Registry: the best rule builds each element's block; anything without a
     rule, or that cannot be extracted, is kept verbatim as core/html

Builders convert nested markup through an InnerConverter bound to the next
depth, so recursion is bounded by ConverterSettings.max_depth.
"""

from typing import Optional

from .schemas import BlockNode, ConversionResult, ConverterSettings, ElementSpan
from .registry import TransformRegistry, InnerConverter
from .transforms import DEFAULT_REGISTRY
from .block_types import BlockType
from .block_factory import create_block, add_class_name
from .attribute_parser import get_block_attributes
from .block_parser import parse_blocks, is_block_markup
from .serializer import serialize_blocks, render_block
from .shortcodes import split_shortcodes
from .normalizer import normalize_blocks, UNTERMINATED_TAG
from .tokenizer import tokenize
from .locator import iter_top_level, TOP_TEXT, TOP_ELEMENT, TOP_UNBALANCED
from .markup import visible_text_length
from .exceptions import ExtractionError
from .logger import get_module_logger, setup_logger

logger = get_module_logger("converter")


def fallback_block(markup: str) -> BlockNode:
    """Opaque block that keeps ``markup`` byte for byte."""
    return create_block('core/html', {'content': markup})


def render_html(nodes: list[BlockNode]) -> str:
    """Block markup without delimiters (children spliced into their parents)."""
    return ''.join(render_block(node, delimiters=False) for node in nodes)


def _parsed_blocks(html: str) -> Optional[list[BlockNode]]:
    """Blocks of markup that is already in block format, else None."""
    if not is_block_markup(html):
        return None
    blocks = parse_blocks(html)
    if len(blocks) == 1 and blocks[0].name is None:
        return None
    return blocks


class _ConversionRun(InnerConverter):
    """
    State of one conversion call at one nesting depth.

    Every depth of the same call shares the warnings list; nothing here is
    shared between calls.
    """

    def __init__(self, converter: "HTMLToBlocksConverter", depth: int = 0,
                 warnings: Optional[list[str]] = None):
        super().__init__(depth, converter.settings.max_depth)
        self.converter = converter
        self.warnings = warnings if warnings is not None else []

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def convert(self, html: str) -> list[BlockNode]:
        nested = _ConversionRun(self.converter, self.depth + 1, self.warnings)
        if nested.depth > self.max_depth:
            self.warn(f"Nesting deeper than {self.max_depth} levels; kept as HTML")
            return [fallback_block(html.strip())] if html.strip() else []
        return nested.run(html)

    def run(self, html: str) -> list[BlockNode]:
        if not html:
            return []

        parsed = _parsed_blocks(html)
        if parsed is not None:
            logger.debug(f"Input already in block format ({len(parsed)} blocks)")
            return parsed

        blocks = []
        for piece in split_shortcodes(html, self.converter.settings.shortcode_tags):
            if isinstance(piece, BlockNode):
                blocks.append(piece)
            else:
                blocks.extend(self._convert_literal(piece))

        return [block for block in blocks if not block.is_empty()]

    def _convert_literal(self, html: str) -> list[BlockNode]:
        if not html.strip():
            return []

        normalized = normalize_blocks(html)
        tokens = tokenize(normalized)

        blocks = []
        for item in iter_top_level(normalized, tokens):
            markup = item.markup(normalized)

            if item.kind == TOP_TEXT:
                # Only whitespace and cut-off tags survive normalization at the top level
                if UNTERMINATED_TAG.match(markup):
                    self.warn(f"Tag at {item.start} is cut off by the end of input; kept as HTML")
                    blocks.append(fallback_block(markup))
                elif markup.strip():
                    blocks.append(create_block('core/paragraph', {'content': markup.strip()}))
            elif item.kind == TOP_ELEMENT:
                blocks.append(self._transform(item.span))
            elif item.kind == TOP_UNBALANCED:
                self.warn(f"<{item.tag}> at {item.start} is not closed; kept as HTML")
                blocks.append(fallback_block(markup))

        return blocks

    def _transform(self, span: ElementSpan) -> BlockNode:
        """Build the block for one top-level element."""
        rule = self.converter.registry.match(span)
        if rule is None:
            return fallback_block(span.outer_html)

        block_types = self.converter.block_types
        try:
            if rule.builder is not None:
                block = rule.builder(span, self)
            else:
                attributes = get_block_attributes(rule.block_type, span.outer_html,
                                                  block_types=block_types)
                block = create_block(rule.block_type, attributes, markup=span.outer_html,
                                     block_types=block_types)
        except ExtractionError as e:
            self.warn(f"Could not convert <{span.tag}> to {rule.block_type}: {e.message}; kept as HTML")
            return fallback_block(span.outer_html)

        if span.classes:
            block = add_class_name(block, span.classes, block_types)
        return block


class HTMLToBlocksConverter:
    """
    Main orchestrator for HTML to block conversion.

    Holds only read-only collaborators (registry, block types, settings), so
    one instance can be shared between threads.
    """

    def __init__(
        self,
        registry: Optional[TransformRegistry] = None,
        settings: Optional[ConverterSettings] = None,
        block_types: Optional[dict[str, BlockType]] = None
    ):
        if settings is not None:
            setup_logger(level=settings.log_level)

        self.settings = settings or ConverterSettings()
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.block_types = block_types

        logger.debug(f"HTMLToBlocksConverter initialized ({len(self.registry)} rules)")

    def raw_handler(self, html: str) -> list[BlockNode]:
        """Convert a fragment to blocks (no diagnostics)."""
        return _ConversionRun(self).run(html)

    def convert(self, html: str) -> ConversionResult:
        """
        Convert an HTML fragment.

        Args:
            html: HTML fragment

        Returns:
            ConversionResult with the blocks and any warnings
        """
        if not html:
            return ConversionResult()

        logger.info(f"Starting conversion ({len(html)} chars)")

        run = _ConversionRun(self)
        blocks = run.run(html)

        result = ConversionResult(
            blocks=blocks,
            warnings=run.warnings,
            input_text_length=visible_text_length(html),
            output_text_length=visible_text_length(render_html(blocks)),
        )

        if result.fidelity_ratio < self.settings.fidelity_warning_ratio:
            result.warnings.append(
                f"Only {result.fidelity_ratio:.0%} of the visible text survived conversion "
                f"({result.output_text_length} of {result.input_text_length} characters)"
            )
            logger.warning(result.warnings[-1])

        logger.info(f"Complete: {len(blocks)} blocks")
        return result

    def convert_to_markup(self, html: str) -> str:
        """Convert a fragment and serialize it; block markup is returned as is."""
        if _parsed_blocks(html) is not None:
            return html
        return serialize_blocks(self.convert(html).blocks)


def html_to_blocks(html: str) -> list[BlockNode]:
    """Convenience function to convert HTML to blocks."""
    return HTMLToBlocksConverter().raw_handler(html)
