"""
Attribute Schema Extractor.

Reads block attributes out of markup according to the block type schema
(see block_types.py). Used for rules that have no dedicated builder and to
recover the markup-derived attributes of an existing node.

A selector that matches nothing simply leaves the attribute out; it is
never an error for the whole block.
"""

from typing import Any, Optional

from bs4 import Tag

from .schemas import BlockNode
from .block_types import AttributeSchema, BlockType, get_block_type
from .block_factory import coerce_value
from .markup import make_soup, fragment_root, inner_html
from .logger import get_module_logger

logger = get_module_logger("attribute_parser")


def get_block_attributes(
    block_name: str,
    markup: str,
    overrides: Optional[dict] = None,
    block_types: Optional[dict[str, BlockType]] = None
) -> dict:
    """
    Extract a block's attributes from its markup.

    Args:
        block_name: Block type name
        markup: The block's markup
        overrides: Values that win over anything extracted
        block_types: Extra block types to look up before the built-in ones

    Returns:
        Attribute dict (extracted values and schema defaults, then overrides)
    """
    overrides = overrides or {}
    block_type = get_block_type(block_name, block_types)

    if block_type is None or not block_type.attributes or not markup:
        return dict(overrides)

    root = fragment_root(make_soup(markup))
    # Selector-less attributes read the block's root element
    block_root = next((child for child in root.children if isinstance(child, Tag)), None)

    attributes = {}
    for key, schema in block_type.attributes.items():
        value = parse_attribute(root, block_root, schema, markup)
        if value is not None:
            attributes[key] = value

    attributes.update(overrides)
    return attributes


def block_attributes(node: BlockNode, block_types: Optional[dict[str, BlockType]] = None) -> dict:
    """
    Full attribute view of a node: markup-derived values plus stored ones.

    This is the inverse of block_factory.sanitize_attributes().
    """
    if node.name is None:
        return dict(node.attributes)
    return get_block_attributes(node.name, node.inner_html, node.attributes, block_types)


def parse_attribute(scope: Tag, default: Optional[Tag], schema: AttributeSchema, markup: str) -> Any:
    """
    Evaluate one attribute schema.

    Args:
        scope: Element whose descendants the selector searches
        default: Element used when the schema has no selector
        schema: Attribute schema
        markup: Markup of the block (for source="raw")

    Returns:
        The value, or None when the selector matches nothing
    """
    source = schema.source

    if source == 'raw':
        return markup

    if source == 'query':
        return [_query_item(match, schema.query or {}) for match in _select_all(scope, schema.selector)]

    if source in ('html', 'text', 'attribute', 'tag'):
        node = _select_one(scope, schema.selector, default)
        if node is None:
            return None

        if source == 'html':
            return inner_html(node)
        if source == 'text':
            return node.get_text().strip()
        if source == 'tag':
            return node.name.lower()

        value = node.get(schema.attribute or '')
        if value is None:
            return None
        if isinstance(value, list):
            # bs4 splits multi-valued attributes such as class
            value = ' '.join(value)
        return coerce_value(schema.type, value) if schema.type in ('integer', 'number') else value

    return schema.default


def _query_item(element: Tag, query: dict[str, AttributeSchema]) -> dict:
    item = {}
    for key, sub_schema in query.items():
        value = parse_attribute(element, element, sub_schema, str(element))
        if value is not None:
            item[key] = value
    return item


def _select_one(scope: Tag, selector: Optional[str], default: Optional[Tag]) -> Optional[Tag]:
    if not selector:
        return default
    try:
        return scope.select_one(selector)
    except Exception as e:
        logger.warning(f"Invalid selector '{selector}': {e}")
        return None


def _select_all(scope: Tag, selector: Optional[str]) -> list[Tag]:
    if not selector:
        return []
    try:
        return scope.select(selector)
    except Exception as e:
        logger.warning(f"Invalid selector '{selector}': {e}")
        return []
