"""Logging setup shared by the client and the reference identity service."""
from __future__ import annotations

import logging
from typing import Optional

from versenest_auth.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# PUBLIC_INTERFACE
def configure_logging(level: Optional[str] = None) -> None:
    """Apply the configured log level to the package loggers.

    Never log passwords or tokens through these loggers.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("versenest_auth").setLevel(getattr(logging, level_name, logging.INFO))
