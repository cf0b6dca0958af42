"""Logging setup shared by the CLI."""

import logging
import sys

_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(
    stream_level: int = logging.INFO,
    ignore_libs: list[str] | None = None,
) -> None:
    """Send log records to stderr at *stream_level*.

    Loggers named in *ignore_libs* are raised to WARNING so their
    chatter does not drown out our own debug output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(stream_level)
    if stream_level <= logging.DEBUG:
        handler.setFormatter(logging.Formatter("%(name)s %(levelname)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(_FORMAT))

    root.addHandler(handler)
    root.setLevel(stream_level)

    for lib in ignore_libs or []:
        logging.getLogger(lib).setLevel(logging.WARNING)


def truncate(content: str, max_length: int) -> str:
    """Shorten *content* for previews, noting how much was cut."""
    if len(content) <= max_length:
        return content
    return f"{content[:max_length]}... ({len(content) - max_length} more chars)"
