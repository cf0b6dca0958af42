import argparse
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from htmldown.config import (
    DEFAULT_SOURCE_PRIORITY,
    PREVIEW_LENGTH,
    SUPPORTED_PARSERS,
    SUPPORTED_SOURCES,
    get_parser,
    parse_source_list,
)
from htmldown.html_converter import HTMLToMarkdown, contains_markup
from htmldown.log import configure_logging, truncate
from htmldown.models import ConversionError, InvalidHTML

logger = logging.getLogger(__name__)


def get_version() -> str:
    try:
        return version("htmldown")
    except PackageNotFoundError:
        return "unknown"


def read_input(file: str | None) -> bytes:
    """Read raw input from *file*, or stdin when no file is given; exit on failure."""
    try:
        return Path(file).read_bytes() if file else sys.stdin.buffer.read()
    except OSError as e:
        logger.error(f"Cannot read {file}: {e}")
        raise SystemExit(1)


def decode_input(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidHTML(f"Input is not valid UTF-8: {e}") from e


def make_converter(args) -> HTMLToMarkdown:
    """Build a converter from --parser, falling back to the config file."""
    try:
        parser = args.parser or get_parser()
        return HTMLToMarkdown(parser)
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1)


def convert_from(data: bytes, source: str, converter: HTMLToMarkdown) -> str:
    """Convert raw *data* treating it as the given source type.

    Raises ConversionError when the input is not UTF-8 or HTML conversion fails.
    """
    if source == "text":
        return decode_input(data)
    return converter.convert(data)


def convert_with_priority(
    content: str, priority: list[str], converter: HTMLToMarkdown
) -> tuple[str, str]:
    """Return ``(markdown, source)`` for the first source type that works."""
    for source in priority:
        if source == "html":
            if not contains_markup(content, converter.parser):
                logger.debug("Input has no markup, skipping html")
                continue
            try:
                return converter.convert(content), source
            except ConversionError as e:
                logger.debug(f"HTML conversion failed, trying next source: {e}")
        elif source == "text" and content:
            return content, source
    raise ConversionError("No convertible content found")


def write_output(markdown: str, output: str | None) -> None:
    if output:
        Path(output).write_text(markdown, encoding="utf-8")
        logger.info(f"Wrote {len(markdown)} chars to {output}")
    else:
        sys.stdout.write(markdown)


def run_convert(args):
    """HTML -> Markdown: convert a file or stdin."""
    converter = make_converter(args)
    data = read_input(args.file)

    try:
        if args.source:
            markdown = convert_from(data, args.source, converter)
        else:
            priority = (
                parse_source_list(args.priority)
                if args.priority
                else DEFAULT_SOURCE_PRIORITY
            )
            content = decode_input(data)
            markdown, source = convert_with_priority(content, priority, converter)
            logger.debug(f"Converted from {source}")
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1)
    except ConversionError as e:
        logger.error(f"Conversion failed: {e}")
        raise SystemExit(1)

    write_output(markdown, args.output)


def build_report(content: str, converter: HTMLToMarkdown) -> dict:
    """Describe the input and its Markdown conversion.

    The ``target.markdown`` entry carries either the converted content or
    an ``error`` message when there is nothing to convert.
    """
    has_markup = contains_markup(content, converter.parser)
    source = {
        "type": "html" if has_markup else "text",
        "size": len(content),
        "content": content,
    }

    if has_markup:
        markdown = converter.convert(content)
        target = {"size": len(markdown), "content": markdown, "source": "html"}
    elif content:
        target = {"size": len(content), "content": content, "source": "plain_text"}
    else:
        target = {"error": "No convertible content", "source": "none"}

    return {"source": source, "target": {"markdown": target}}


def format_report(report: dict) -> str:
    source = report["source"]
    markdown = report["target"]["markdown"]
    lines = [
        "SOURCE",
        f"{source['type'].upper()} ({source['size']} chars):",
        truncate(source["content"], PREVIEW_LENGTH),
        "",
        "TARGET",
    ]
    if "error" in markdown:
        lines.append(f"Markdown: {markdown['error']}")
    else:
        lines.append(f"Markdown ({markdown['source']}, {markdown['size']} chars):")
        lines.append(truncate(markdown["content"], PREVIEW_LENGTH))
    return "\n".join(lines) + "\n"


def run_inspect(args):
    """Show the input and what it converts to."""
    converter = make_converter(args)
    try:
        content = decode_input(read_input(args.file))
    except ConversionError as e:
        logger.error(str(e))
        raise SystemExit(1)
    report = build_report(content, converter)

    if args.json:
        sys.stdout.write(json.dumps(report, indent=2, ensure_ascii=False) + "\n")
    else:
        sys.stdout.write(format_report(report))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="htmldown",
        description="Convert HTML to clean Markdown",
        epilog="A FILE given without a command is converted: htmldown page.html",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"htmldown version {get_version()}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--parser",
        "-p",
        choices=SUPPORTED_PARSERS,
        help="BeautifulSoup tree builder (default: from .htmldown or html.parser)",
    )
    # Running without a subcommand converts stdin; a bare FILE means "convert FILE"
    parser.set_defaults(
        handler=run_convert, file=None, output=None, source=None, priority=None
    )

    subparsers = parser.add_subparsers(dest="command")

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert HTML to Markdown (default)",
    )
    convert_parser.add_argument(
        "file",
        nargs="?",
        metavar="FILE",
        help="HTML file to convert (default: stdin)",
    )
    convert_parser.add_argument(
        "--output",
        "-o",
        help="Write Markdown to this file instead of stdout",
    )
    convert_parser.add_argument(
        "--from",
        dest="source",
        choices=SUPPORTED_SOURCES,
        help="Force the input type (text passes input through unchanged)",
    )
    convert_parser.add_argument(
        "--priority",
        help='Source types to try in order (default: "html,text")',
    )
    convert_parser.set_defaults(handler=run_convert)

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show the input and its Markdown conversion",
    )
    inspect_parser.add_argument(
        "file",
        nargs="?",
        metavar="FILE",
        help="HTML file to inspect (default: stdin)",
    )
    inspect_parser.add_argument(
        "--json",
        "-j",
        action="store_true",
        help="Print the report as JSON",
    )
    inspect_parser.set_defaults(handler=run_inspect)

    return parser


COMMANDS = {"convert", "inspect"}

# Global options that take a value
_VALUE_OPTIONS = {"--parser", "-p"}


def default_to_convert(argv: list[str]) -> list[str]:
    """Insert ``convert`` before a bare FILE argument (``htmldown page.html``)."""
    skip_next = False
    for index, arg in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if arg in _VALUE_OPTIONS:
            skip_next = True
            continue
        if arg.startswith("-"):
            continue
        if arg in COMMANDS:
            return argv
        return [*argv[:index], "convert", *argv[index:]]
    return argv


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = build_parser()
    args = parser.parse_args(default_to_convert(argv))

    log_level = logging.DEBUG if args.debug else logging.INFO
    configure_logging(stream_level=log_level, ignore_libs=["bs4"])

    args.handler(args)


if __name__ == "__main__":
    main()
