"""
Pydantic schemas defining the contracts between modules.

Token / ElementSpan: produced by the tokenizer and locator, consumed by the
                     normalizer, the registry predicates and the builders.
BlockNode:           the typed output unit every builder returns.
ConversionResult:    the final product of one conversion call.

Data flow through the pipeline:
  fragment → Token stream → ElementSpan per top-level element
  ElementSpan → TransformRule builder → BlockNode
  BlockNode list + warnings → ConversionResult
"""

import logging
import os
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Token stream ---

OPEN = "open"
CLOSE = "close"
TEXT = "text"
COMMENT = "comment"


class Token(NamedTuple):
    """One lexical unit of the fragment with its absolute offsets."""
    kind: str                                       # open | close | text | comment
    tag: str                                        # lower-case tag name, "" for text/comment
    depth: int                                      # open elements enclosing this token
    start: int
    end: int
    attrs: tuple[tuple[str, Optional[str]], ...] = ()
    self_closing: bool = False


# --- Located elements ---

class ElementSpan(BaseModel):
    """
    The exact balanced span of one element inside a fragment.

    Offsets index into ``source``; ``tokens`` holds the opener, everything
    inside it and the closer, so predicates and builders can inspect the
    element's shape without tokenizing again.
    """
    model_config = ConfigDict(frozen=True)

    tag: str
    attributes: dict[str, Optional[str]] = Field(default_factory=dict)
    source: str
    outer_start: int
    outer_end: int
    inner_start: int
    inner_end: int
    depth: int = 0
    tokens: tuple[Token, ...] = ()

    @property
    def outer_html(self) -> str:
        return self.source[self.outer_start:self.outer_end]

    @property
    def inner_html(self) -> str:
        return self.source[self.inner_start:self.inner_end]

    def get_attribute(self, name: str) -> Optional[str]:
        """Attribute value, "" for a bare attribute, None when absent."""
        name = name.lower()
        if name not in self.attributes:
            return None
        value = self.attributes[name]
        return "" if value is None else value

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.attributes

    @property
    def classes(self) -> list[str]:
        return (self.get_attribute("class") or "").split()


# --- Output model ---

class BlockNode(BaseModel):
    """
    A typed block with attributes and ordered children.

    ``inner_content`` holds the block's own markup split around its
    children: each ``None`` marks where the next child is serialized.
    ``attributes`` only carries values that are not sourced from that
    markup (see block_types.py); the others are recovered with
    attribute_parser.block_attributes().

    ``name`` is None only for freeform HTML found between block delimiters
    when parsing markup that is already in block format.
    """
    name: Optional[str]
    attributes: dict[str, Any] = Field(default_factory=dict)
    children: list["BlockNode"] = Field(default_factory=list)
    inner_content: list[Optional[str]] = Field(default_factory=list)

    @property
    def inner_html(self) -> str:
        """The block's own markup without its children."""
        return "".join(chunk for chunk in self.inner_content if chunk is not None)

    def is_empty(self) -> bool:
        return not self.name and not self.inner_html.strip() and not self.children


BlockNode.model_rebuild()


class ConversionResult(BaseModel):
    """Output from the converter: the blocks plus non-fatal diagnostics."""
    blocks: list[BlockNode] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    input_text_length: int = 0       # Visible characters in the fragment (whitespace excluded)
    output_text_length: int = 0      # Visible characters in the serialized blocks

    @property
    def fidelity_ratio(self) -> float:
        """Share of the input's visible text that survived conversion."""
        if not self.input_text_length:
            return 1.0
        return self.output_text_length / self.input_text_length


# --- Configuration ---

DEFAULT_SHORTCODE_TAGS = ["caption", "gallery", "audio", "video", "playlist", "embed"]


class ConverterSettings(BaseModel):
    """Tunables for one converter instance."""
    max_depth: int = 32                     # Nested pipeline re-entries before content stays opaque
    fidelity_warning_ratio: float = 0.5     # Warn when less visible text than this survives
    shortcode_tags: list[str] = Field(default_factory=lambda: list(DEFAULT_SHORTCODE_TAGS))
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "ConverterSettings":
        """
        Build settings from HTML_TO_BLOCKS_* environment variables.

        Unset variables keep their defaults; the CLI loads a .env file
        before calling this.
        """
        values: dict[str, Any] = {}

        max_depth = os.getenv("HTML_TO_BLOCKS_MAX_DEPTH")
        if max_depth:
            values["max_depth"] = int(max_depth)

        ratio = os.getenv("HTML_TO_BLOCKS_FIDELITY_RATIO")
        if ratio:
            values["fidelity_warning_ratio"] = float(ratio)

        shortcodes = os.getenv("HTML_TO_BLOCKS_SHORTCODES")
        if shortcodes is not None:
            values["shortcode_tags"] = [tag.strip() for tag in shortcodes.split(",") if tag.strip()]

        log_level = os.getenv("HTML_TO_BLOCKS_LOG_LEVEL")
        if log_level:
            # Accept both names ("DEBUG") and numbers ("10")
            values["log_level"] = int(log_level) if log_level.isdigit() else logging.getLevelName(log_level.upper())

        return cls(**values)
