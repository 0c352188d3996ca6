# mssqladmin_ng/core/utils/logbook.py

# Built-in imports
import sys

# Third party imports
from loguru import logger

VALID_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


def _format_message(record):
    """Custom formatter with compact symbols and colors."""
    level_name = record["level"].name

    symbols = {
        "TRACE": ("<dim>[*]</dim>", "dim"),
        "DEBUG": ("<dim>[*]</dim>", "dim"),
        "INFO": ("<white>[i]</white>", "white"),
        "SUCCESS": ("<green>[+]</green>", "green"),
        "WARNING": ("<yellow>[!]</yellow>", "yellow"),
        "ERROR": ("<red>[-]</red>", "red"),
        "CRITICAL": ("<red><bold>[X]</bold></red>", "red"),
    }

    symbol, color = symbols.get(level_name, ("[?]", "white"))

    return (
        "<dim>{time:YYYY-MM-DD HH:mm:ss.SSS!UTC} (UTC)</dim> "
        f"{symbol} "
        f"<{color}>{{message}}</{color}>\n"
        "{exception}"
    )


def setup_logging(level: str = "INFO") -> str:
    """
    Setup logging with compact, visually intuitive output on stderr.

    Args:
        level: Log level (TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)

    Returns:
        The level actually applied
    """
    level = level.upper()

    if level not in VALID_LEVELS:
        print(f"Invalid log level: {level}. Using INFO.", file=sys.stderr)
        level = "INFO"

    # Remove all Loguru handlers to avoid duplicates
    logger.remove()

    # enqueue=False keeps ordering with records printed on stdout
    logger.add(
        sys.stderr,
        enqueue=False,
        backtrace=True,
        diagnose=level in ("TRACE", "DEBUG"),
        level=level,
        format=_format_message,
        colorize=True,
    )

    return level
