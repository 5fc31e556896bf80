"""
Logging Configuration
Logger setup shared by the command-line interface and the canvas window.
"""
import logging
import sys
from typing import Optional


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the logger of the 'mcpainter' namespace.

    Records go to stderr, and to ``log_file`` when given, so piping the CLI
    output (``mcpainter mark --json ... > cells.json``) stays clean.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    logger = logging.getLogger("mcpainter")
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once (CLI + tests)
    if logger.hasHandlers():
        logger.handlers.clear()

    # stdout carries command output (pixel keys, JSON, share strings)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
