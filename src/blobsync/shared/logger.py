import logging
import re
import sys
from datetime import datetime
from pathlib import Path

from colorama import Fore, Style, init
from starlette.requests import Request

from blobsync.shared.config import Config, load_config

__all__ = ["Logger", "log_request_error"]

config: Config = load_config()

CONSOLE_FORMAT = (
    f"{Style.BRIGHT}%(levelname)-10s "
    + f"{Style.DIM}%(name)-28s "
    + "%(module)s.%(funcName)-24s "
    + f"{Style.RESET_ALL}%(message)s"
)
# Same layout for the log file, timestamped and without ANSI codes
FILE_FORMAT = re.sub(r"\x1b\[[0-9;]*m", "", "%(asctime)s - " + CONSOLE_FORMAT)


class ColorFormatter(logging.Formatter):
    color_map = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def format(self, record):
        color = self.color_map.get(record.levelno, Fore.WHITE)
        message = super().format(record)
        return f"{color}{message}{Style.RESET_ALL}"


class Logger:
    """Per-module logger writing coloured lines to stdout and a dated file.

    Usage mirrors the rest of the code base::

        logger = Logger(__name__).get_logger()
    """

    def __init__(self, name, log_dir=config.paths.logs, level=config.logging.level):
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        # Initialize colorama
        init()

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Handlers are attached once per logger name
        if self.logger.handlers:
            return

        file_handler = logging.FileHandler(
            Path(log_dir) / f"{datetime.now().strftime('%Y-%m-%d')}.log",
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColorFormatter(CONSOLE_FORMAT))

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def get_logger(self):
        return self.logger


def log_request_error(
    logger: logging.Logger,
    request: Request,
    message: str,
    error: BaseException | str,
    **extra,
):
    """Log a failed request as ``message | key=value | ...`` pairs."""
    client = request.client.host if request.client else "unknown"
    fields = {
        "path": request.url.path,
        "method": request.method,
        "ip": client,
        **extra,
        "error": error,
    }
    pairs = " | ".join(f"{key}={value}" for key, value in fields.items())
    logger.error("%s | %s", message, pairs, stacklevel=2)
