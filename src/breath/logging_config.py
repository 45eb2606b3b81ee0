"""Logging configuration for the breath CLI."""

from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "WARNING", format_json: bool = False) -> None:
    """
    Configure the root logger.

    Records go to stderr so they never interleave with game output.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Whether to output one JSON object per record
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    if format_json:
        formatter = logging.Formatter(
            '{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    # repeated calls replace the handler instead of stacking them
    for old in [h for h in root.handlers if getattr(h, "_breath", False)]:
        root.removeHandler(old)
    handler._breath = True  # type: ignore[attr-defined]
    root.addHandler(handler)


__all__ = ["setup_logging"]
