"""
Block Factory: build BlockNode values from attributes.

create_block() renders the block's markup, splits it around the inner
blocks and strips every attribute the block type reads from markup, so a
node never stores the same value twice.
"""

import re
from typing import Any, Optional

from .schemas import BlockNode, OPEN
from .block_types import BlockType, get_block_type
from .serializer import render_block_html, render_wrapper_html
from .tokenizer import tokenize
from .exceptions import BlockTypeError
from .markup import escape_attribute
from .logger import get_module_logger

logger = get_module_logger("block_factory")


def create_block(
    name: str,
    attributes: Optional[dict] = None,
    inner_blocks: Optional[list[BlockNode]] = None,
    markup: Optional[str] = None,
    block_types: Optional[dict[str, BlockType]] = None
) -> BlockNode:
    """
    Create a block node.

    Args:
        name: Block type name (e.g. 'core/paragraph')
        attributes: Attribute values, sourced ones included
        inner_blocks: Child nodes
        markup: Use this markup instead of rendering one (schema-driven
                block types without a renderer)
        block_types: Extra block types to look up before the built-in ones

    Returns:
        BlockNode with rendered inner content and sanitized attributes

    Raises:
        BlockTypeError: if ``name`` has no schema
    """
    block_type = get_block_type(name, block_types)
    if block_type is None:
        raise BlockTypeError(name)

    attributes = attributes or {}
    inner_blocks = inner_blocks or []
    inner_content: list[Optional[str]] = []

    if inner_blocks:
        opening, closing = render_wrapper_html(name, attributes)
        inner_content.append(opening)
        inner_content.extend([None] * len(inner_blocks))
        inner_content.append(closing)
    else:
        block_html = markup if markup is not None else render_block_html(name, attributes)
        if block_html:
            inner_content.append(block_html)

    return BlockNode(
        name=name,
        attributes=sanitize_attributes(block_type, attributes),
        children=inner_blocks,
        inner_content=inner_content,
    )


def sanitize_attributes(block_type: BlockType, attributes: dict) -> dict:
    """
    Keep only the attributes that belong in the block delimiter.

    Unknown keys, sourced (markup-derived) keys and empty values are
    dropped; the rest are coerced to their schema type.
    """
    if not block_type.attributes:
        return dict(attributes)

    sanitized = {}
    for key, value in attributes.items():
        schema = block_type.attributes.get(key)
        if schema is None or schema.is_sourced or schema.type == 'rich-text':
            continue
        if value is None or value == '':
            continue

        coerced = coerce_value(schema.type, value)
        if coerced is not None:
            sanitized[key] = coerced

    return sanitized


def coerce_value(type_name: Optional[str], value: Any) -> Any:
    """Coerce a value to a schema type; None when it cannot be."""
    if type_name in ('integer', 'number'):
        try:
            return int(value) if type_name == 'integer' else float(value)
        except (TypeError, ValueError):
            return None
    if type_name == 'string':
        return str(value)
    if type_name == 'boolean':
        return bool(value)
    if type_name == 'array':
        return value if isinstance(value, list) else [value]
    if type_name == 'object':
        return value if isinstance(value, dict) else {}
    return value


def add_class_name(node: BlockNode, class_names: list[str], block_types: Optional[dict[str, BlockType]] = None) -> BlockNode:
    """
    Add extra classes to a block's className and to its root element.

    Classes the root element or className already carry are skipped, so
    converting a block's own output does not duplicate them.
    """
    block_type = get_block_type(node.name, block_types) if node.name else None
    if block_type is None or 'className' not in block_type.attributes:
        return node

    root_classes = _root_classes(node)
    existing = (node.attributes.get('className') or '').split()
    missing = [name for name in class_names if name not in root_classes and name not in existing]
    if not missing:
        return node

    logger.debug(f"Adding classes {missing} to {node.name}")
    attributes = dict(node.attributes)
    attributes['className'] = ' '.join(existing + missing)

    inner_content = list(node.inner_content)
    if inner_content and inner_content[0]:
        inner_content[0] = _add_root_classes(inner_content[0], missing)

    return node.model_copy(update={'attributes': attributes, 'inner_content': inner_content})


def _root_opener(markup: Optional[str]):
    for token in tokenize(markup):
        if token.kind == OPEN:
            return token
    return None


def _root_classes(node: BlockNode) -> list[str]:
    first = node.inner_content[0] if node.inner_content else None
    opener = _root_opener(first)
    if opener is None:
        return []
    return (dict(opener.attrs).get('class') or '').split()


def _add_root_classes(markup: str, class_names: list[str]) -> str:
    """Rewrite the class attribute of the first start tag in ``markup``."""
    opener = _root_opener(markup)
    if opener is None:
        return markup

    tag_text = markup[opener.start:opener.end]
    current = dict(opener.attrs).get('class') or ''
    merged = escape_attribute(' '.join(current.split() + class_names))

    tag_text, replaced = re.subn(r'''\sclass\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)''',
                                 lambda m: f' class="{merged}"', tag_text, count=1, flags=re.IGNORECASE)
    if not replaced:
        close = len(tag_text) - (2 if tag_text.endswith('/>') else 1)
        tag_text = f'{tag_text[:close]} class="{merged}"{tag_text[close:]}'

    return markup[:opener.start] + tag_text + markup[opener.end:]
