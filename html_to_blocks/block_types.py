"""
Block type schemas.

Each block type declares its attributes and, for the ones that live in the
block's markup, where to read them from:

  source="html"       inner markup of the first element matching ``selector``
  source="text"       text content of that element
  source="attribute"  the named HTML attribute of that element
  source="raw"        the block's whole markup
  source="query"      a list, one ``query`` sub-schema result per match
  source="tag"        the matched element's tag name
  no source           stored in the block delimiter JSON; ``default`` applies

Attributes with a source are never stored on BlockNode.attributes: the
factory renders them into markup and attribute_parser reads them back.

Selectors are CSS (tag, .class, #id, [attr] / [attr=value], descendant
combinators, comma alternatives).
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AttributeSchema(BaseModel):
    """How one block attribute is typed and where its value comes from."""
    model_config = ConfigDict(frozen=True)

    type: Optional[str] = None            # string | integer | number | boolean | array | object | rich-text
    source: Optional[str] = None          # html | text | attribute | raw | query | tag
    selector: Optional[str] = None
    attribute: Optional[str] = None
    query: Optional[dict[str, "AttributeSchema"]] = None
    default: Any = None

    @property
    def is_sourced(self) -> bool:
        """True when the value is derived from markup."""
        return self.source is not None


AttributeSchema.model_rebuild()


class BlockType(BaseModel):
    """A named block type and its attribute schema."""
    model_config = ConfigDict(frozen=True)

    name: str
    attributes: dict[str, AttributeSchema] = Field(default_factory=dict)


def _string(**kwargs) -> AttributeSchema:
    return AttributeSchema(type="string", **kwargs)


def _rich_text(selector: Optional[str]) -> AttributeSchema:
    return AttributeSchema(type="rich-text", source="html", selector=selector)


def _anchor(selector: str) -> AttributeSchema:
    return _string(source="attribute", selector=selector, attribute="id")


# Rows and captions of a table nested in a cell belong to that cell's content
_OUTSIDE_CELLS = ":not(td *, th *)"


def _table_section(section: str) -> AttributeSchema:
    cell = {
        "content": _rich_text(None),
        "tag": _string(source="tag"),
        "colspan": AttributeSchema(type="integer", source="attribute", attribute="colspan"),
        "rowspan": AttributeSchema(type="integer", source="attribute", attribute="rowspan"),
    }
    row = {
        "cells": AttributeSchema(type="array", source="query", selector=":scope > td, :scope > th",
                                 query=cell, default=[]),
    }
    selector = f"table > {section} > tr{_OUTSIDE_CELLS}"
    return AttributeSchema(type="array", source="query", selector=selector, query=row, default=[])


_HEADINGS = "h1,h2,h3,h4,h5,h6"

_DEFINITIONS: list[BlockType] = [
    BlockType(name="core/paragraph", attributes={
        "content": _rich_text("p"),
        "anchor": _anchor("p"),
        "dropCap": AttributeSchema(type="boolean", default=False),
        "style": AttributeSchema(type="object"),
        "className": _string(),
    }),
    BlockType(name="core/heading", attributes={
        "content": _rich_text(_HEADINGS),
        "level": AttributeSchema(type="integer", default=2),
        "anchor": _anchor(_HEADINGS),
        "textAlign": _string(),
        "className": _string(),
    }),
    BlockType(name="core/list", attributes={
        "ordered": AttributeSchema(type="boolean", default=False),
        "anchor": _anchor("ol,ul"),
        "start": AttributeSchema(type="integer"),
        "reversed": AttributeSchema(type="boolean"),
        "type": _string(),
        "className": _string(),
    }),
    BlockType(name="core/list-item", attributes={
        "content": _rich_text("li"),
        "className": _string(),
    }),
    BlockType(name="core/quote", attributes={
        "anchor": _anchor("blockquote"),
        "className": _string(),
    }),
    BlockType(name="core/image", attributes={
        "url": _string(source="attribute", selector="img", attribute="src"),
        "alt": _string(source="attribute", selector="img", attribute="alt", default=""),
        "title": _string(source="attribute", selector="img", attribute="title"),
        "caption": _rich_text("figcaption"),
        "href": _string(source="attribute", selector="figure a", attribute="href"),
        "rel": _string(source="attribute", selector="figure a", attribute="rel"),
        "linkClass": _string(source="attribute", selector="figure a", attribute="class"),
        "anchor": _anchor("figure"),
        "id": AttributeSchema(type="integer"),
        "align": _string(),
        "linkDestination": _string(),
        "className": _string(),
    }),
    BlockType(name="core/code", attributes={
        "content": _rich_text("code"),
        "className": _string(),
    }),
    BlockType(name="core/preformatted", attributes={
        "content": _rich_text("pre"),
        "anchor": _anchor("pre"),
        "className": _string(),
    }),
    BlockType(name="core/separator", attributes={
        "className": _string(),
    }),
    BlockType(name="core/table", attributes={
        "head": _table_section("thead"),
        "body": _table_section("tbody"),
        "foot": _table_section("tfoot"),
        "caption": _rich_text(f"figure > figcaption{_OUTSIDE_CELLS}"),
        "anchor": _anchor("figure"),
        "hasFixedLayout": AttributeSchema(type="boolean", default=False),
        "className": _string(),
    }),
    BlockType(name="core/html", attributes={
        "content": _string(source="raw"),
    }),
    BlockType(name="core/shortcode", attributes={
        "text": _string(source="raw"),
    }),
]

# Process-wide table, built once at import and only read afterwards
BLOCK_TYPES: dict[str, BlockType] = {block_type.name: block_type for block_type in _DEFINITIONS}


def get_block_type(name: str, block_types: Optional[dict[str, BlockType]] = None) -> Optional[BlockType]:
    """Look up a block type, in ``block_types`` first when given."""
    if block_types and name in block_types:
        return block_types[name]
    return BLOCK_TYPES.get(name)
