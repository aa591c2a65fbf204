"""
Custom exceptions for the HTML to Blocks converter.

Error philosophy:
  - ExtractionError     → RECOVERED: the element is demoted to a core/html
                          block that keeps its raw markup.
  - BalancedMatchError  → FAIL HARD: the locator produced an inconsistent
                          span. This is a bug, never a property of the input.
  - BlockTypeError      → FAIL HARD: a builder asked for a block type that
                          has no schema.
  - RegistryFrozenError → FAIL HARD: rules registered after start-up.

Everything the input can do wrong is recovered locally, so a conversion
always returns a (possibly degraded) block list.
"""

from typing import Optional


class HTMLToBlocksError(Exception):
    """Base exception for all converter errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- RECOVERED: the driver turns these into fallback blocks ---

class ExtractionError(HTMLToBlocksError):
    """
    Raised when an element (or one of its children) has no balanced span.

    The driver catches it and emits a core/html block carrying the
    element's raw markup instead.
    """

    def __init__(
        self,
        message: str,
        tag: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.tag = tag


# --- FAIL HARD: programming errors ---

class BalancedMatchError(HTMLToBlocksError):
    """
    Raised when a span reported as balanced is not.

    The locator re-checks every span it returns; a mismatch means the
    tokenizer and the locator disagree, which must never happen.
    """

    def __init__(self, message: str, tag: str, span: tuple[int, int]):
        super().__init__(message, {"tag": tag, "span": span})
        self.tag = tag
        self.span = span


class BlockTypeError(HTMLToBlocksError):
    """Raised when a block is created for a type with no schema."""

    def __init__(self, block_name: str):
        super().__init__(f"Unknown block type: {block_name}", {"block_name": block_name})
        self.block_name = block_name


class RegistryFrozenError(HTMLToBlocksError):
    """Raised when a rule is registered on a frozen registry."""
    pass
