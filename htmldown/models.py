"""Core data models for htmldown.

Provides the render context threaded through the element renderer, the
closed set of tag kinds the renderer dispatches on, and the errors a
conversion can raise.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from htmldown.config import LIST_INDENT

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConversionError(Exception):
    """Base class for failures that abort a whole conversion."""


class NoRootElement(ConversionError):
    """The parsed document has nothing to render."""

    def __init__(self, message: str = "Document has no root element"):
        super().__init__(message)


class InvalidHTML(ConversionError):
    """The input could not be read as HTML text (e.g. not UTF-8)."""


# ---------------------------------------------------------------------------
# TagKind
# ---------------------------------------------------------------------------


class TagKind(Enum):
    PARAGRAPH = "paragraph"
    LINE_BREAK = "line_break"
    STRONG = "strong"
    EMPHASIS = "emphasis"
    CODE = "code"
    PREFORMATTED = "preformatted"
    LINK = "link"
    HEADING = "heading"
    UNORDERED_LIST = "unordered_list"
    ORDERED_LIST = "ordered_list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    RULE = "rule"
    IMAGE = "image"
    TABLE = "table"
    CONTAINER = "container"

    @staticmethod
    def for_tag(name: str | None) -> TagKind:
        """Look up the kind for a tag name; unknown tags are containers."""
        if not name:
            return TagKind.CONTAINER
        return TAG_KINDS.get(name.lower(), TagKind.CONTAINER)


TAG_KINDS: dict[str, TagKind] = {
    "p": TagKind.PARAGRAPH,
    "br": TagKind.LINE_BREAK,
    "strong": TagKind.STRONG,
    "b": TagKind.STRONG,
    "em": TagKind.EMPHASIS,
    "i": TagKind.EMPHASIS,
    "code": TagKind.CODE,
    "pre": TagKind.PREFORMATTED,
    "a": TagKind.LINK,
    **{f"h{level}": TagKind.HEADING for level in range(1, 7)},
    "ul": TagKind.UNORDERED_LIST,
    "ol": TagKind.ORDERED_LIST,
    "li": TagKind.LIST_ITEM,
    "blockquote": TagKind.BLOCKQUOTE,
    "hr": TagKind.RULE,
    "img": TagKind.IMAGE,
    "table": TagKind.TABLE,
    "div": TagKind.CONTAINER,
    "span": TagKind.CONTAINER,
    "body": TagKind.CONTAINER,
    "html": TagKind.CONTAINER,
}


# ---------------------------------------------------------------------------
# RenderContext
# ---------------------------------------------------------------------------


@dataclass
class RenderContext:
    """Mutable state for one conversion.

    Only list nesting is tracked.  Depth changes go through
    ``nested_list()`` so every exit path restores the previous depth.
    """

    list_depth: int = 0

    @property
    def in_list(self) -> bool:
        return self.list_depth > 0

    @property
    def indent(self) -> str:
        """Leading whitespace for items of the innermost active list."""
        return LIST_INDENT * max(self.list_depth - 1, 0)

    @property
    def is_outermost_list(self) -> bool:
        return self.list_depth == 1

    @contextmanager
    def nested_list(self) -> Iterator[RenderContext]:
        self.list_depth += 1
        try:
            yield self
        finally:
            self.list_depth -= 1
