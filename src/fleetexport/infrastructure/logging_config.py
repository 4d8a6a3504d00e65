"""
Logging configuration module.

Colored console output plus an optional plain log file. Only the CLI calls
``setup_logging``; library code just logs through module loggers.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("openpyxl", "asyncio")

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s"


class Colors:
    """ANSI escape sequences for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    WHITE = "\033[37m"
    CYAN = "\033[36m"
    YELLOW = "\033[33m"
    BRIGHT_RED = "\033[91m"
    BG_RED = "\033[41m"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name and dims the logger name.

    Colors:
        DEBUG    - Dim/Gray
        INFO     - Cyan
        WARNING  - Yellow
        ERROR    - Red
        CRITICAL - Bold White on Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.WHITE,
        logging.INFO: Colors.CYAN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.WHITE + Colors.BG_RED,
    }

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        levelname, name = record.levelname, record.name
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{levelname:8}{Colors.RESET}"
        record.name = f"{Colors.DIM}{name}{Colors.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers (the log file) see the record unchanged
            record.levelname, record.name = levelname, name


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Console level (``logging.DEBUG`` or a name such as "debug")
        log_file: Optional path to a log file; it always receives DEBUG
    """
    console_level = _resolve_level(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S", use_colors=sys.stderr.isatty())
    )
    console_handler.setLevel(console_level)

    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Log level: %s", logging.getLevelName(console_level))
    if log_file:
        logger.debug("Log file: %s", log_file)
