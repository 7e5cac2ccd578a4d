# cf_reconciler/logging_setup.py
from __future__ import annotations

import logging
from typing import Optional, Union


class LogColors:
    GRAY = "\x1b[90m"
    BRIGHT_BLUE = "\x1b[94m"
    YELLOW = "\x1b[33;1m"
    RED = "\x1b[31;1m"
    MAGENTA = "\x1b[35m"
    RESET = "\x1b[0m"
    CYAN = "\x1b[36;1m"


_LEVEL_COLORS = {
    logging.DEBUG: LogColors.CYAN,
    logging.INFO: LogColors.BRIGHT_BLUE,
    logging.WARNING: LogColors.YELLOW,
    logging.ERROR: LogColors.RED,
    logging.CRITICAL: LogColors.RED,
}

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


CONSOLE_FORMAT = (
    "[" + LogColors.GRAY + "%(asctime)s" + LogColors.RESET + "] "
    "[%(levelname)-8s" + LogColors.RESET + "] "
    "%(name)s" + LogColors.RESET + ": %(message)s"
)


class CustomFormatter(logging.Formatter):
    FORMAT = CONSOLE_FORMAT

    COLOR_FORMAT = {
        level: CONSOLE_FORMAT.replace("%(levelname)-8s", color + "%(levelname)-8s").replace(
            "%(name)s", LogColors.MAGENTA + "%(name)s"
        )
        for level, color in _LEVEL_COLORS.items()
    }

    def format(self, record: logging.LogRecord) -> str:
        log_fmt = self.COLOR_FORMAT.get(record.levelno, self.FORMAT)
        formatter = logging.Formatter(log_fmt, datefmt=DATE_FORMAT)
        return formatter.format(record)


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    if not value:
        return default
    level = logging.getLevelName(str(value).strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    *,
    level: Union[str, int] = logging.INFO,
    logfile: str = "cf_reconciler.log",
    add_file_handler: bool = False,
    colored: bool = True,
    stream: Optional[object] = None,
) -> None:
    """
    Configure root logging for the reconciler:
      - Console handler (stderr unless a stream is given), colored by default
      - Optional file handler with plain formatter

    Stdout is left alone so the CLI can emit its JSON response there.
    Safe to call multiple times: it clears existing handlers first.
    """
    root_logger = logging.getLogger()

    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    root_logger.setLevel(parse_level(level))

    console = logging.StreamHandler(stream)
    if colored:
        console.setFormatter(CustomFormatter())
    else:
        console.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if add_file_handler:
        file_handler = logging.FileHandler(logfile)
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    # urllib3 connection chatter drowns the request log at DEBUG.
    logging.getLogger("urllib3").setLevel(max(root_logger.level, logging.INFO))
