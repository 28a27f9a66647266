"""Logging helpers shared by the library and the command line entry point."""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER_NAME = "statement_grid"
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_configured = False


def _install_handler() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the ``statement_grid`` namespace."""
    _install_handler()
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(verbose: bool = False) -> None:
    """Switch the package log level between INFO and DEBUG."""
    _install_handler()
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(
        logging.DEBUG if verbose else logging.INFO
    )


__all__ = ["configure_logging", "get_logger"]
