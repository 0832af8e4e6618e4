import logging
import os

from rich.logging import RichHandler


def get_logger(name=None) -> logging.Logger:
    """
    Return a logger that writes through a single RichHandler.

    Level is INFO, or DEBUG when the DEBUG environment variable is set.
    """
    if name is None:
        name = "papas_locas"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(logging.Formatter("[%(name)s]  %(message)s"))
        handler.setLevel(log_level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
