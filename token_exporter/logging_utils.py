"""
Token Exporter - Logging Utilities.
"""

import json
import logging
import sys
from typing import Optional


LOG_FORMATS = ("text", "json")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    run_id: Optional[str] = None,
) -> logging.Logger:
    """
    Set up process-wide logging.

    Args:
        level: Log level name
        log_format: Output format (json or text)
        run_id: Identifier stamped on every line

    Returns:
        The package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "run_id": run_id or "",
            })
        )
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {run_id or '-'} | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    # aiohttp access/client chatter is noise at INFO
    logging.getLogger("aiohttp").setLevel(max(log_level, logging.WARNING))

    return logging.getLogger("token_exporter")


def short_address(address: str, keep: int = 6) -> str:
    """0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48 -> 0xa0b869...06eb48"""
    if len(address) <= 2 + keep * 2:
        return address
    return f"{address[:2 + keep]}...{address[-keep:]}"
