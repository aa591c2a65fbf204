"""
HTML to Blocks Converter

Converts HTML fragments into trees of typed editor blocks (paragraph,
heading, list, quote, image, code, preformatted, separator, table) and
keeps anything it cannot type as an opaque core/html block.
- Tokenizer / Locator: exact balanced element spans, no DOM
- Normalizer: wraps inline runs in paragraphs
- Registry + transforms: pick one rule per element and build its block
- Serializer / Parser: comment-delimited block markup in both directions

Public API surface:
  Entry points       : HTMLToBlocksConverter, html_to_blocks
  Data models        : BlockNode, ConversionResult, ConverterSettings, ElementSpan
  Rules              : TransformRegistry, TransformRule, InnerConverter
  Block markup       : serialize_blocks, parse_blocks, block_attributes
  Error types        : ExtractionError (recovered), BalancedMatchError (fatal)
"""

# --- Pipeline entry points ---
from .converter import HTMLToBlocksConverter, html_to_blocks

# --- Data models ---
from .schemas import BlockNode, ConversionResult, ConverterSettings, ElementSpan

# --- Rules (for callers that register their own) ---
from .registry import TransformRegistry, TransformRule, InnerConverter
from .transforms import build_default_registry

# --- Lower-level building blocks ---
from .locator import locate_element
from .block_factory import create_block
from .attribute_parser import get_block_attributes, block_attributes
from .serializer import serialize_block, serialize_blocks
from .block_parser import parse_blocks

# --- Exceptions ---
from .exceptions import (
    HTMLToBlocksError,
    ExtractionError,
    BalancedMatchError,
    BlockTypeError,
    RegistryFrozenError,
)

__version__ = "0.1.0"
__all__ = [
    "HTMLToBlocksConverter",
    "html_to_blocks",
    "BlockNode",
    "ConversionResult",
    "ConverterSettings",
    "ElementSpan",
    "TransformRegistry",
    "TransformRule",
    "InnerConverter",
    "build_default_registry",
    "locate_element",
    "create_block",
    "get_block_attributes",
    "block_attributes",
    "serialize_block",
    "serialize_blocks",
    "parse_blocks",
    "HTMLToBlocksError",
    "ExtractionError",
    "BalancedMatchError",
    "BlockTypeError",
    "RegistryFrozenError",
]
