"""HTML to Markdown converter."""

import logging
import re

from bs4 import BeautifulSoup
from bs4.builder import builder_registry
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from htmldown.config import (
    BULLET_MARKER,
    CODE_FENCE,
    DEFAULT_PARSER,
    LANGUAGE_CLASS_PREFIX,
    validate_parser,
)
from htmldown.models import InvalidHTML, NoRootElement, RenderContext, TagKind

logger = logging.getLogger(__name__)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_LIST_KINDS = {TagKind.UNORDERED_LIST, TagKind.ORDERED_LIST}


def _is_text(node: PageElement) -> bool:
    """True for character data; comments, doctypes and CDATA are skipped."""
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def _has_content(soup: BeautifulSoup) -> bool:
    for node in soup.descendants:
        if isinstance(node, Tag):
            return True
        if _is_text(node) and node.strip():
            return True
    return False


def _language_of(code: Tag) -> str:
    """Extract ``X`` from a ``language-X`` class token, or ``""``."""
    classes = code.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    for token in classes:
        if token.startswith(LANGUAGE_CLASS_PREFIX):
            return token[len(LANGUAGE_CLASS_PREFIX) :]
    return ""


def _fence(code: str, language: str = "") -> str:
    return f"{CODE_FENCE}{language}\n{code}\n{CODE_FENCE}\n\n"


def _table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |\n"


def normalize(markdown: str) -> str:
    """Collapse blank-line runs, trim, and end with a single newline.

    ``normalize(normalize(x)) == normalize(x)`` for any string.
    """
    result = markdown
    while "\n\n\n" in result:
        result = _EXCESS_NEWLINES.sub("\n\n", result)
    return result.strip() + "\n"


def contains_markup(html: str, parser: str = DEFAULT_PARSER) -> bool:
    """Return whether *html* has at least one element in it."""
    return BeautifulSoup(html, parser).find(True) is not None


class HTMLToMarkdown:
    """Convert HTML to clean Markdown.

    Rendering walks the BeautifulSoup tree depth first.  Every element
    is classified by ``TagKind`` and handed to the matching
    ``_render_*`` method; the per-call ``RenderContext`` carries the
    list depth used for indentation.
    """

    def __init__(self, parser: str = DEFAULT_PARSER):
        self.parser = validate_parser(parser)
        if builder_registry.lookup(self.parser) is None:
            raise ValueError(
                f"HTML parser '{self.parser}' is not installed. "
                "Install it with: pip install htmldown[parsers]"
            )
        self._handlers = {
            TagKind.PARAGRAPH: self._render_paragraph,
            TagKind.LINE_BREAK: self._render_line_break,
            TagKind.STRONG: self._render_strong,
            TagKind.EMPHASIS: self._render_emphasis,
            TagKind.CODE: self._render_code,
            TagKind.PREFORMATTED: self._render_preformatted,
            TagKind.LINK: self._render_link,
            TagKind.HEADING: self._render_heading,
            TagKind.UNORDERED_LIST: self._render_unordered_list,
            TagKind.ORDERED_LIST: self._render_ordered_list,
            TagKind.LIST_ITEM: self.render_children,
            TagKind.BLOCKQUOTE: self._render_blockquote,
            TagKind.RULE: self._render_rule,
            TagKind.IMAGE: self._render_image,
            TagKind.TABLE: self._render_table,
            TagKind.CONTAINER: self.render_children,
        }

    def convert(self, html: str | bytes) -> str:
        """Convert HTML to Markdown.

        Raises NoRootElement when the document has nothing to render and
        InvalidHTML when byte input is not UTF-8.
        """
        if isinstance(html, bytes):
            try:
                html = html.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidHTML(f"Input is not valid UTF-8: {e}") from e

        soup = BeautifulSoup(html, self.parser)
        if not _has_content(soup):
            raise NoRootElement()

        root = soup.find("body")
        if root is None:
            logger.debug(f"No <body> found, rendering document root ({self.parser})")
            root = soup

        context = RenderContext()
        return normalize(self.render_element(root, context))

    # -- dispatch ---------------------------------------------------------

    def render_element(self, element: Tag, context: RenderContext) -> str:
        kind = TagKind.for_tag(element.name)
        return self._handlers[kind](element, context)

    def render_children(self, element: Tag, context: RenderContext) -> str:
        parts = []
        for child in element.children:
            if isinstance(child, Tag):
                parts.append(self.render_element(child, context))
            elif _is_text(child):
                parts.append(str(child))
        return "".join(parts)

    # -- inline -----------------------------------------------------------

    def _render_line_break(self, element, context):
        return "\n"

    def _render_strong(self, element, context):
        return f"**{self.render_children(element, context)}**"

    def _render_emphasis(self, element, context):
        return f"*{self.render_children(element, context)}*"

    def _render_code(self, element, context):
        return f"`{element.get_text()}`"

    def _render_link(self, element, context):
        text = self.render_children(element, context)
        href = element.get("href", "")
        # Autolink: [x](x) collapses to x
        if text == href:
            return href
        return f"[{text}]({href})"

    def _render_image(self, element, context):
        alt = element.get("alt", "")
        src = element.get("src", "")
        return f"![{alt}]({src})"

    # -- blocks -----------------------------------------------------------

    def _render_paragraph(self, element, context):
        content = self.render_children(element, context).strip()
        if not content:
            return ""
        return f"{content}\n\n"

    def _render_heading(self, element, context):
        level = int(element.name[1])
        content = self.render_children(element, context).strip()
        return f"{'#' * level} {content}\n\n"

    def _render_preformatted(self, element, context):
        code = element.find("code", recursive=False)
        if code is not None:
            return _fence(code.get_text(), _language_of(code))
        return _fence(element.get_text())

    def _render_blockquote(self, element, context):
        content = self.render_children(element, context)
        quoted = "\n".join(f"> {line}" for line in content.split("\n"))
        return quoted + "\n\n"

    def _render_rule(self, element, context):
        return "\n\n---\n\n"

    # -- lists ------------------------------------------------------------

    def _render_unordered_list(self, element, context):
        return self._render_list(element, context, lambda _: BULLET_MARKER)

    def _render_ordered_list(self, element, context):
        return self._render_list(element, context, lambda index: f"{index}.")

    def _render_list(self, element, context, marker):
        with context.nested_list():
            indent = context.indent
            lines = []
            for index, item in enumerate(
                element.find_all("li", recursive=False), start=1
            ):
                content = self._render_item(item, context)
                lines.append(f"{indent}{marker(index)} {content}\n")
            if context.is_outermost_list:
                lines.append("\n")
            else:
                # Nested lists start on their own line under the parent item
                lines.insert(0, "\n")
        return "".join(lines)

    def _render_item(self, item, context):
        parts = []
        for child in item.children:
            if isinstance(child, Tag):
                if TagKind.for_tag(child.name) in _LIST_KINDS:
                    # Source whitespace before a nested list would leave a blank line
                    parts = ["".join(parts).rstrip()]
                parts.append(self.render_element(child, context))
            elif _is_text(child):
                parts.append(str(child))
        return "".join(parts).strip()

    # -- tables -----------------------------------------------------------

    def _cell_texts(self, cells: list[Tag], context: RenderContext) -> list[str]:
        return [self.render_children(cell, context).strip() for cell in cells]

    def _render_table(self, element, context):
        result = []

        thead = element.find("thead", recursive=False)
        if thead is not None:
            first_row = thead.find("tr", recursive=False)
            headers = []
            if first_row is not None:
                headers = first_row.find_all("th", recursive=False)
            if headers:
                result.append(_table_row(self._cell_texts(headers, context)))
                result.append(_table_row(["---"] * len(headers)))

        body = element.find("tbody", recursive=False)
        if body is None:
            body = element
        for row in body.find_all("tr", recursive=False):
            cells = row.find_all("td", recursive=False)
            # Header rows misplaced in the body have no <td> cells
            if cells:
                result.append(_table_row(self._cell_texts(cells, context)))

        return "".join(result) + "\n"


def convert(html: str | bytes, parser: str | None = None) -> str:
    """Convert *html* to Markdown with a one-off converter."""
    return HTMLToMarkdown(parser or DEFAULT_PARSER).convert(html)
