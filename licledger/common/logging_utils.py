"""
Logging utilities for consistent logging setup across the ledger.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logger: logging.Logger, log_level: int) -> logging.Logger:
    """
    Set up a logger with a StreamHandler and standard formatter.

    No handler is added when the logger or one of its ancestors already
    has one (an application or test runner configured logging itself);
    only the level is applied then.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set

    Returns:
        The configured logger
    """
    logger.setLevel(log_level)
    if logger.hasHandlers():
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return logger
    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
