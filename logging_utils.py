"""
Logging helpers for SplitLedger

Modules call get_logger(__name__). configure_logging installs a single
stream handler on the root logger the first time it runs.
"""
from __future__ import annotations
import logging
from typing import Optional

_CONFIGURED = False


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a formatted stream handler to the root logger once"""
    global _CONFIGURED
    if _CONFIGURED:
        logging.getLogger().setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger; handlers are left to the application"""
    return logging.getLogger(name)
