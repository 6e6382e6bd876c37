"""
Logging configuration for the contactrows command line.

All modules log to the "contactrows" logger. Library users configure it like
any other logger; the command line calls setup_logger() to get console output
plus a timestamped log file.

Dependencies:
    - logging: Standard library for logging functionality
    - pathlib: Standard library for path handling
    - datetime: Standard library for the log file timestamp
"""

import logging
import sys
from datetime import datetime
from logging import Logger
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_NAME = "contactrows"


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True
) -> Logger:
    """
    Configure the application logger.

    The console gets short "LEVEL: message" lines at INFO and above, the log
    file gets everything down to DEBUG with timestamps.

    :param log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    :param log_file: Log file path; None writes logs/conversion_<timestamp>.log
    :param console_output: Whether to log to stdout
    :return: Configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(max(logger.level, logging.INFO))
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        logger.addHandler(console_handler)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = Path("logs") / f"conversion_{timestamp}.log"

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(file_handler)

    logger.debug("Logging initialized. Log file: %s", log_file)
    return logger


def log_conversion_summary(logger: Logger, stats: Dict[str, Any]) -> None:
    """
    Log the end-of-run summary.

    :param logger: Logger instance
    :param stats: Counters collected during the conversion
    """
    logger.info("=" * 60)
    logger.info("CONVERSION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Direction: {stats.get('direction', 'unknown')}")
    logger.info(f"Contacts converted: {stats.get('contacts', 0)}")
    logger.info(f"Records: {stats.get('records', 0)}")
    if 'normalized_phones' in stats:
        logger.info(
            f"Phones normalized: {stats['normalized_phones']}/"
            f"{stats.get('total_phones', 0)}"
        )
    logger.info("=" * 60)
