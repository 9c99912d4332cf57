"""Logging setup for the GZCLP tracker.

Console output goes to stderr so it never mixes with rich tables on stdout.
When LOG_FILE is set, the same records are also written to a rotating file,
which keeps a trail of sync cycles between CLI runs.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    *,
    rotation: str = "5 MB",
    retention: str = "14 days",
) -> list[int]:
    """Replace loguru's default sink with the tracker's sinks.

    Args:
        level: Minimum level for every sink
        log_file: Path of the rotating log file; console only when None
        rotation: When the file rolls over (size or interval)
        retention: How long rolled files are kept

    Returns:
        Ids of the sinks added, console first
    """
    logger.remove()
    sink_ids = [logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        sink_ids.append(
            logger.add(
                path,
                format=FILE_FORMAT,
                level=level,
                rotation=rotation,
                retention=retention,
                encoding="utf-8",
            )
        )
        logger.debug(f"[CONFIG] Logging to {path}")

    return sink_ids
