"""
Logging setup for tablesmith.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig


def setup_logging(
    config: Optional[LoggingConfig] = None,
    debug: bool = False,
    console: Optional[Console] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        config: Logging configuration (defaults apply when omitted)
        debug: Force DEBUG level
        console: Rich console to log to (stderr by default)
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if debug else getattr(logging, config.level)

    handlers: List[logging.Handler] = []

    if config.rich:
        console_handler: logging.Handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=debug,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(config.format))
    handlers.append(console_handler)

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(config.format))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # Driver chatter
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("mysql.connector").setLevel(logging.WARNING)
