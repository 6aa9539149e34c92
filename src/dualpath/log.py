"""
Console output for both programs. Every record is a single line prefixed
with a severity tag, e.g. "[SEND] Message sent via 192.168.100.2: ...".

SEND and RECV are registered as real logging levels sitting between INFO
and WARNING so they pass the same level filter as INFO.
"""
import logging
import logging.config
import sys
import click
from ._types import Tag

SEND = 21
RECV = 22
logging.addLevelName(SEND, "SEND")
logging.addLevelName(RECV, "RECV")

TAGS: dict[int, Tag | str] = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SEND: "SEND",
    RECV: "RECV",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}

TAG_COLORS = {
    "DEBUG": "blue",
    "INFO": "green",
    "SEND": "cyan",
    "RECV": "magenta",
    "WARN": "yellow",
    "ERROR": "red",
    "HEX": "white",
    "ASCII": "white",
}

LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

BANNER_WIDTH = 60


def tag_for(levelno: int) -> str:
    if levelno in TAGS:
        return TAGS[levelno]
    # custom levels in between fall back to the nearest lower known level
    known = [lvl for lvl in TAGS if lvl <= levelno]
    return TAGS[max(known)] if known else "DEBUG"


class TaggedFormatter(logging.Formatter):

    def __init__(self, fmt=None, datefmt=None, use_colors=None):
        if use_colors is None:
            use_colors = sys.stdout.isatty()
        self.use_colors = use_colors
        super().__init__(fmt=fmt or "[%(tag)s] %(message)s", datefmt=datefmt)

    def color_tag(self, tag: str) -> str:
        return click.style(tag, fg=TAG_COLORS.get(tag), bold=True)

    def formatMessage(self, record: logging.LogRecord) -> str:
        # dump lines name their own tag through extra={"line_tag": ...}
        tag = record.__dict__.get("line_tag") or tag_for(record.levelno)
        record.__dict__["tag"] = self.color_tag(tag) if self.use_colors else tag
        if self.use_colors and "color_message" in record.__dict__:
            record.message = record.__dict__["color_message"] % record.args
        return super().formatMessage(record)


class MaxLevelFilter(logging.Filter):
    """Keeps records strictly below ``level``."""

    def __init__(self, level):
        super().__init__()
        if isinstance(level, str):
            level = logging.getLevelName(level)
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


LOGGING_CONFIG: dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "below_warning": {
            "()": "dualpath.log.MaxLevelFilter",
            "level": logging.WARNING,
        },
    },
    "formatters": {
        "tagged": {
            "()": "dualpath.log.TaggedFormatter",
            "use_colors": None,
        },
    },
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "tagged",
            "filters": ["below_warning"],
            "stream": "ext://sys.stdout",
        },
        "stderr": {
            "class": "logging.StreamHandler",
            "formatter": "tagged",
            "level": "WARNING",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "dualpath": {"handlers": ["stdout", "stderr"], "level": "INFO", "propagate": False},
    },
}


def configure_logging(log_level="info", use_colors=None) -> None:
    config = {
        **LOGGING_CONFIG,
        "formatters": {"tagged": {**LOGGING_CONFIG["formatters"]["tagged"], "use_colors": use_colors}},
    }
    logging.config.dictConfig(config)
    if isinstance(log_level, str):
        log_level = LOG_LEVELS[log_level.lower()]
    logging.getLogger("dualpath").setLevel(log_level)


def print_banner(title: str) -> None:
    click.echo("=" * BANNER_WIDTH)
    click.echo(f"  {title}")
    click.echo("=" * BANNER_WIDTH)


def log_listening(logger: logging.Logger, listener) -> None:
    host, port = listener.getsockname()[:2]
    addr_format = "%s:%d"
    logger.info(
        f"Listening on {addr_format}",
        host,
        port,
        extra={"color_message": "Listening on " + click.style(addr_format, bold=True)},
    )
