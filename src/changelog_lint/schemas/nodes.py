"""Markdown node models shared by the parser, the section tree and the engine."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class Text(BaseModel):
    """Literal inline text, kept with its original escapes."""

    type: Literal["text"] = "text"
    value: str


class Emphasis(BaseModel):
    type: Literal["emphasis"] = "emphasis"
    value: str
    marker: str = "_"


class Strong(BaseModel):
    type: Literal["strong"] = "strong"
    value: str
    marker: str = "**"


class InlineCode(BaseModel):
    type: Literal["inlineCode"] = "inlineCode"
    value: str


class Link(BaseModel):
    """Inline link with the URL embedded, e.g. ``[1.0.0](https://...)``."""

    type: Literal["link"] = "link"
    url: str
    title: str | None = None
    children: list[Inline] = Field(default_factory=list)


class LinkReference(BaseModel):
    """Link resolved through a separate definition, e.g. ``[1.0.0]``."""

    type: Literal["linkReference"] = "linkReference"
    identifier: str
    label: str
    reference_type: Literal["shortcut", "collapsed", "full"] = "shortcut"
    children: list[Inline] = Field(default_factory=list)


Inline = Annotated[
    Union[Text, Emphasis, Strong, InlineCode, Link, LinkReference],
    Field(discriminator="type"),
]


class Heading(BaseModel):
    """ATX heading block."""

    type: Literal["heading"] = "heading"
    depth: int = Field(..., ge=1, le=6)
    children: list[Inline] = Field(default_factory=list)
    line: int | None = None


class Definition(BaseModel):
    """Link reference definition, e.g. ``[1.0.0]: https://...``.

    ``identifier`` is the lower-cased label and is used for lookups; ``label``
    keeps the original spelling for serialization.
    """

    type: Literal["definition"] = "definition"
    identifier: str
    label: str
    url: str
    title: str | None = None
    line: int | None = None


class RawBlock(BaseModel):
    """Any other block, kept verbatim."""

    type: Literal["raw"] = "raw"
    value: str
    line: int | None = None


class ListBlock(BaseModel):
    """Bullet list whose items are Markdown strings."""

    type: Literal["list"] = "list"
    items: list[str] = Field(default_factory=list)
    line: int | None = None


Block = Annotated[
    Union[Heading, Definition, RawBlock, ListBlock],
    Field(discriminator="type"),
]


class Root(BaseModel):
    """A parsed Markdown document: a flat sequence of blocks."""

    type: Literal["root"] = "root"
    children: list[Block] = Field(default_factory=list)


Link.model_rebuild()
LinkReference.model_rebuild()
Heading.model_rebuild()
Root.model_rebuild()
