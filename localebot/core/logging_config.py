"""Logging setup for console and rotating log files."""

import logging
import logging.handlers
import sys
from pathlib import Path
from datetime import datetime

# Log levels for different components
LOGGING_CONFIG = {
    "localebot": logging.INFO,
    "localebot.core": logging.INFO,
    "localebot.features": logging.INFO,
    "localebot.infra": logging.WARNING,

    # Reduce noise from libraries
    "telegram": logging.WARNING,
    "telegram.ext": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.ERROR,
}


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # other handlers see the plain level name
            record.levelname = levelname


def setup_logging(log_file: bool = True, debug: bool = False, log_dir: Path | str = "logs") -> None:
    """Configure root logging for the bot."""
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(
        "%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    ))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / f"localebot_{datetime.now().strftime('%Y%m%d')}.log",
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d) - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)

    for logger_name, logger_level in LOGGING_CONFIG.items():
        # --debug opens up our own packages, libraries stay quiet
        if debug and logger_name.startswith("localebot"):
            logger_level = logging.DEBUG
        logging.getLogger(logger_name).setLevel(logger_level)

    logging.getLogger(__name__).info(
        "Logging configured (console=%s, file=%s)",
        "DEBUG" if debug else "INFO",
        "ENABLED" if log_file else "DISABLED",
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with proper configuration."""
    return logging.getLogger(name)
