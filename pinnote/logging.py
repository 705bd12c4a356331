"""Logging helpers for pinnote."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER_CONFIGURED = False


def configure_logging(level: int = logging.INFO, force: bool = False) -> None:
    """Configure basic logging once for the application.

    ``force`` re-applies the configuration, which the CLI uses when the user
    asks for verbose output after a module already triggered the default setup.
    """

    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED and not force:
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        force=force,
    )
    _LOGGER_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name or "pinnote")


__all__ = ["configure_logging", "get_logger"]
