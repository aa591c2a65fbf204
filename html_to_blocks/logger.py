"""
Logging for the HTML to Blocks converter.

Every stage logs through a child of the "html_to_blocks" logger, so a line
like "html_to_blocks.normalizer - DEBUG - ..." says which stage wrote it.
Recovered problems (unclosed elements, failed extractions, text loss) are
logged at WARNING and also returned in ConversionResult.warnings.
"""

import logging
import sys
from typing import Optional


def setup_logger(
    name: str = "html_to_blocks",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger.

    The converter calls this with ConverterSettings.log_level; the CLI
    raises it to DEBUG for --verbose.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_file: Optional file that receives the same records

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Handlers are installed once; later calls only adjust the level
    if logger.handlers:
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.setLevel(level)

    # Format: timestamp - stage - level - message
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Package logger, configured at import time
logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Logger for one conversion stage, e.g. "html_to_blocks.locator".

    Args:
        module_name: Stage module name ('tokenizer', 'normalizer', 'converter', ...)
    """
    return logging.getLogger(f"html_to_blocks.{module_name}")
