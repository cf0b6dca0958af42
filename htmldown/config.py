"""Configuration for HTML to Markdown conversion."""

import configparser
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILE = ".htmldown"

DEFAULT_PARSER = "html.parser"

# Tree builders BeautifulSoup knows about; only html.parser ships with Python
SUPPORTED_PARSERS = ["html.parser", "lxml", "html5lib"]

# Input types the CLI can convert from, in default priority order
SUPPORTED_SOURCES = ["html", "text"]
DEFAULT_SOURCE_PRIORITY = ["html", "text"]

PREVIEW_LENGTH = 200

LIST_INDENT = "  "
BULLET_MARKER = "-"
CODE_FENCE = "```"
LANGUAGE_CLASS_PREFIX = "language-"


def _read_config(path: Path) -> configparser.ConfigParser:
    """Read and return the parsed config file."""
    config = configparser.ConfigParser()
    config.read(path)
    return config


def validate_parser(name: str) -> str:
    """Return *name* if BeautifulSoup can be asked for it.

    Raises ValueError for unknown tree builders.
    """
    if name not in SUPPORTED_PARSERS:
        raise ValueError(
            f"Unknown HTML parser '{name}'. "
            f"Choose one of: {', '.join(SUPPORTED_PARSERS)}"
        )
    return name


def get_parser(config_dir: Path | None = None) -> str:
    """Return the tree builder name configured for this directory.

    Looks for ``[htmldown] parser = ...`` in ``.htmldown`` inside
    *config_dir* (default: current working directory).
    """
    directory = config_dir if config_dir is not None else Path.cwd()
    path = directory / CONFIG_FILE
    if not path.exists():
        return DEFAULT_PARSER
    config = _read_config(path)
    name = config.get("htmldown", "parser", fallback=DEFAULT_PARSER).strip()
    logger.debug(f"Using parser '{name}' from {path}")
    return validate_parser(name)


def parse_source_list(value: str) -> list[str]:
    """Split a comma-separated list of source types (``"html, text"``)."""
    sources = [part.strip().lower() for part in value.split(",") if part.strip()]
    unknown = [s for s in sources if s not in SUPPORTED_SOURCES]
    if unknown:
        raise ValueError(
            f"Unknown source type(s): {unknown}. "
            f"Choose from: {', '.join(SUPPORTED_SOURCES)}"
        )
    return sources
